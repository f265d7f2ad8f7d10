"""
Developer Workstation Setup
--------------------------------------------------

Provisions an Ubuntu or macOS developer machine: system packages, dotfiles,
shell and theme, fonts, language toolchains, SSH keys and optional GUI
applications, with a Nord-themed terminal interface.
"""

VERSION = "2.0.0"
APP_NAME = "Dev Setup"
APP_SUBTITLE = "Developer Workstation Provisioning"

__version__ = VERSION
