"""
Ordered provisioning plans for each supported platform.
"""

from typing import List

from rich.markup import escape

from devsetup import apps, dotfiles, editors, fonts, homebrew, macos, shell, ssh_keys, system, toolchains
from devsetup.config import MACOS, UBUNTU, SetupContext
from devsetup.runner import Step
from devsetup.ui import NordColors, display_panel, print_warning


def next_steps_message(ctx: SetupContext) -> str:
    config = ctx.config
    public_key = config.ssh_dir / f"{config.SSH_KEY_NAME}.pub"
    lines = [
        "1. Restart your terminal or run: source ~/.zshrc",
        "2. Run 'p10k configure' to customize your Powerlevel10k theme",
        "3. Set your terminal font to 'MesloLGS NF' (12pt or preferred)",
    ]
    if public_key.is_file():
        lines.append("4. Add this SSH public key to https://github.com/settings/keys:")
        lines.append(public_key.read_text().strip())
        lines.append("5. Test the connection: ssh -T git@github.com")
    if config.PLATFORM == UBUNTU:
        lines.append("Log out and back in for docker group membership to take effect")
    return "\n".join(lines)


def final_steps(ctx: SetupContext) -> bool:
    """Switch the login shell to zsh and print what is left to do by hand."""
    try:
        shell.change_default_shell(ctx)
    finally:
        # The manual steps are shown even when chsh fails.
        display_panel(
            escape(next_steps_message(ctx)),
            NordColors.FROST_2,
            "Next Steps",
        )
    return True


def ubuntu_steps() -> List[Step]:
    return [
        Step("System packages", system.update_system),
        Step("Dotfiles repository", dotfiles.setup_dotfiles_repo),
        Step("Dotfile symlinks", dotfiles.symlink_dotfiles),
        Step("Code editor", editors.install_code_editor, interactive=True),
        Step("MesloLGS NF fonts", fonts.install_fonts),
        Step("Development tools", system.install_dev_tools),
        Step("Oh My Zsh", shell.setup_oh_my_zsh),
        Step("SSH keys", ssh_keys.setup_ssh_keys, interactive=True),
        Step("Python (pyenv)", toolchains.setup_python),
        Step("Ruby (rbenv)", toolchains.setup_ruby),
        Step("Node.js (nvm)", toolchains.setup_nodejs),
        Step("Additional applications", apps.install_additional_apps, interactive=True),
        Step("Final steps", final_steps, interactive=True),
    ]


def macos_steps() -> List[Step]:
    return [
        Step("Xcode Command Line Tools", macos.install_xcode_cli),
        Step("Dotfiles repository", dotfiles.setup_dotfiles_repo),
        Step("Dotfile symlinks", dotfiles.symlink_dotfiles),
        Step("Xcode (App Store)", macos.install_xcode_from_appstore, interactive=True),
        Step("Homebrew", homebrew.setup_homebrew, interactive=True),
        Step("Oh My Zsh", shell.setup_oh_my_zsh),
        Step("SSH keys", ssh_keys.setup_ssh_keys, interactive=True),
        Step("Python (pyenv)", toolchains.setup_python),
        Step("Ruby (rbenv)", toolchains.setup_ruby),
        Step("MesloLGS NF fonts", fonts.install_fonts),
        Step("Terminal profile", macos.setup_terminal_profile),
        Step("macOS customizations", macos.setup_macos_customizations),
        Step("Final steps", final_steps, interactive=True),
    ]


def steps_for(platform: str) -> List[Step]:
    if platform == MACOS:
        return macos_steps()
    if platform != UBUNTU:
        print_warning(f"Unknown platform {platform}; using the Ubuntu plan")
    return ubuntu_steps()
