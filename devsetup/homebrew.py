"""
Homebrew bootstrap and package selection for macOS.
"""

import os
import platform
import subprocess
from pathlib import Path
from typing import List, Optional

from devsetup import commands
from devsetup.config import SetupContext
from devsetup.errors import StepFailure
from devsetup.packages import brew_installer, cask_installer
from devsetup.selector import (
    DEFAULT_BREW_CATALOG,
    PackageCandidate,
    PackageKind,
    PackageSelector,
    install_selection,
    parse_brewfile,
)
from devsetup.toolchains import EnvironmentActivation
from devsetup.ui import print_success, print_warning

HOMEBREW_INSTALLER = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"


def homebrew_prefix(machine: Optional[str] = None) -> Path:
    machine = machine or platform.machine()
    return Path("/opt/homebrew") if machine == "arm64" else Path("/usr/local")


def homebrew_activation(prefix: Path) -> EnvironmentActivation:
    """What `brew shellenv` would export for `prefix`."""
    repository = prefix if prefix == Path("/opt/homebrew") else prefix / "Homebrew"
    return EnvironmentActivation(
        path_prepend=[str(prefix / "bin"), str(prefix / "sbin")],
        variables={
            "HOMEBREW_PREFIX": str(prefix),
            "HOMEBREW_CELLAR": str(prefix / "Cellar"),
            "HOMEBREW_REPOSITORY": str(repository),
        },
    )


def ensure_shellenv(profile: Path, prefix: Path) -> bool:
    """Add the `brew shellenv` line to `profile` unless it already mentions the prefix."""
    bin_dir = str(prefix / "bin")
    if profile.is_file() and bin_dir in profile.read_text():
        return False
    profile.parent.mkdir(parents=True, exist_ok=True)
    with open(profile, "a") as f:
        f.write(f'eval "$({bin_dir}/brew shellenv)"\n')
    return True


def load_catalog(dotfiles_dir: Path) -> List[PackageCandidate]:
    brewfile = dotfiles_dir / "Brewfile"
    if brewfile.is_file():
        catalog = parse_brewfile(brewfile)
        if catalog:
            return catalog
    print_warning("Brewfile not found in dotfiles repo, using the built-in package list")
    return DEFAULT_BREW_CATALOG


def setup_homebrew(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    prefix = homebrew_prefix()

    if commands.command_exists("brew"):
        logger.info("Homebrew is already installed. Skipping installation.")
    else:
        logger.info("Installing Homebrew...")
        env = dict(os.environ, NONINTERACTIVE="1")
        try:
            commands.run_shell(
                f'/bin/bash -c "$(curl -fsSL {HOMEBREW_INSTALLER})"',
                capture_output=False,
                env=env,
                timeout=config.COMMAND_TIMEOUT,
            )
        except subprocess.CalledProcessError:
            raise StepFailure("Homebrew installation failed")
        print_success("Homebrew installed successfully")

    if ensure_shellenv(config.USER_HOME / ".zprofile", prefix):
        logger.info("Added brew shellenv to ~/.zprofile")
    homebrew_activation(prefix).apply()

    if not commands.command_exists("brew"):
        raise StepFailure("brew command not found after installation")

    if commands.succeeds(["brew", "update"], timeout=config.COMMAND_TIMEOUT):
        logger.info("Homebrew updated")
    else:
        logger.warning("brew update failed")

    selector = PackageSelector(load_catalog(config.DOTFILES_DIR), ctx.prompter, title="Homebrew Packages")
    batch = selector.select()
    if not batch:
        return True

    failed = install_selection(
        batch,
        {PackageKind.FORMULA: brew_installer(config), PackageKind.CASK: cask_installer(config)},
    )
    if failed:
        raise StepFailure(f"Some packages failed to install: {', '.join(failed)}")
    return True
