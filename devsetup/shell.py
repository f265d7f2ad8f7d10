"""
Zsh setup: Oh My Zsh, the Powerlevel10k theme, plugins and the login shell.
"""

import os
import shutil
from pathlib import Path
from typing import List, Tuple

from devsetup import commands
from devsetup.config import SetupContext
from devsetup.errors import StepFailure
from devsetup.ui import print_success

OH_MY_ZSH_INSTALLER = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"

# (name, repository, path relative to $ZSH_CUSTOM, shallow clone)
ZSH_ADDONS: List[Tuple[str, str, str, bool]] = [
    ("Powerlevel10k", "https://github.com/romkatv/powerlevel10k.git", "themes/powerlevel10k", True),
    ("zsh-autosuggestions", "https://github.com/zsh-users/zsh-autosuggestions", "plugins/zsh-autosuggestions", False),
    ("zsh-syntax-highlighting", "https://github.com/zsh-users/zsh-syntax-highlighting.git", "plugins/zsh-syntax-highlighting", False),
]


def setup_oh_my_zsh(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    omz_dir = config.USER_HOME / ".oh-my-zsh"

    if not omz_dir.is_dir():
        logger.info("Installing Oh My Zsh...")
        env = os.environ.copy()
        env.update({"RUNZSH": "no", "CHSH": "no", "KEEP_ZSHRC": "yes"})
        commands.run_command(
            ["sh", "-c", f'curl -fsSL {OH_MY_ZSH_INSTALLER} | sh -s -- --unattended'],
            env=env,
            timeout=config.COMMAND_TIMEOUT,
        )
        if not omz_dir.is_dir():
            raise StepFailure("Oh My Zsh installer finished but ~/.oh-my-zsh is missing")
        print_success("Oh My Zsh installed")
    else:
        logger.info("Oh My Zsh already installed")

    custom_dir = omz_dir / "custom"
    for name, repo, relative, shallow in ZSH_ADDONS:
        target = custom_dir / relative
        if target.is_dir():
            logger.info(f"{name} already installed")
            continue
        logger.info(f"Installing {name}...")
        cmd = ["git", "clone"]
        if shallow:
            cmd.append("--depth=1")
        commands.run_command(cmd + [repo, str(target)], timeout=config.COMMAND_TIMEOUT)
        print_success(f"{name} installed")

    logger.info("Oh My Zsh and Powerlevel10k setup completed")
    return True


def change_default_shell(ctx: SetupContext) -> bool:
    logger = ctx.logger
    zsh = shutil.which("zsh")
    if not zsh:
        raise StepFailure("zsh is not installed; cannot change the default shell")
    current = os.environ.get("SHELL", "")
    if current and Path(current).name == "zsh":
        logger.info("Default shell is already zsh")
        return True
    logger.info("Changing default shell to zsh...")
    commands.run_command(["chsh", "-s", zsh], capture_output=False, timeout=300)
    print_success("Default shell changed to zsh")
    return True
