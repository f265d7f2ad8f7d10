"""
Dotfiles repository and Backup/Symlink Manager.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from devsetup import commands
from devsetup.backup import BackupDirectory
from devsetup.config import Config, SetupContext
from devsetup.errors import StepFailure
from devsetup.logging_utils import get_logger
from devsetup.ui import print_success, print_warning


@dataclass(frozen=True)
class DotfileMapping:
    relative_name: str
    source_path: Path
    target_path: Path


def build_mappings(config: Config) -> List[DotfileMapping]:
    return [
        DotfileMapping(
            relative_name=name,
            source_path=config.DOTFILES_DIR / name,
            target_path=config.USER_HOME / name,
        )
        for name in config.DOTFILES
    ]


class SymlinkManager:
    """
    Replace tracked configuration files in the home directory with symlinks
    into the dotfiles tree, backing up any real file that is displaced.
    """

    def __init__(
        self,
        backup: BackupDirectory,
        shell_rc: str = ".zshrc",
        logger: Optional[logging.Logger] = None,
    ):
        self.backup = backup
        self.shell_rc = shell_rc
        self.logger = logger or get_logger()

    def link(self, mapping: DotfileMapping) -> bool:
        source, target = mapping.source_path, mapping.target_path
        if not source.is_file():
            self.logger.warning(f"{mapping.relative_name} not found in dotfiles repo")
            print_warning(f"{mapping.relative_name} not found in dotfiles repo")
            return False

        try:
            if target.is_file() and not target.is_symlink():
                if mapping.relative_name == self.shell_rc:
                    message = (
                        f"Backing up existing {mapping.relative_name} "
                        f"(likely Oh My Zsh default) to {self.backup.path}"
                    )
                else:
                    message = f"Backing up existing {mapping.relative_name} to {self.backup.path}"
                self.logger.warning(message)
                print_warning(message)
                self.backup.copy_in(target, mapping.relative_name)

            if target.is_symlink() or target.exists():
                target.unlink()
            target.parent.mkdir(parents=True, exist_ok=True)
            target.symlink_to(source)
        except OSError as e:
            self.logger.warning(f"Failed to symlink {mapping.relative_name}: {e}")
            print_warning(f"Failed to symlink {mapping.relative_name}: {e}")
            return False

        self.logger.info(f"Symlinked {mapping.relative_name}")
        print_success(f"Symlinked {mapping.relative_name}")
        return True

    def link_all(self, mappings: Iterable[DotfileMapping]) -> int:
        """Link every mapping; returns how many were linked."""
        return sum(1 for mapping in mappings if self.link(mapping))


def symlink_dotfiles(ctx: SetupContext) -> bool:
    config = ctx.config
    if not config.DOTFILES_DIR.is_dir():
        raise StepFailure(f"Dotfiles directory does not exist: {config.DOTFILES_DIR}")

    manager = SymlinkManager(ctx.backup, shell_rc=config.SHELL_RC, logger=ctx.logger)
    linked = manager.link_all(build_mappings(config))
    if linked == 0:
        raise StepFailure("No dotfiles were symlinked successfully")
    ctx.logger.info(f"Dotfiles symlinked successfully ({linked} files)")
    return True


def setup_dotfiles_repo(ctx: SetupContext) -> bool:
    """Clone the dotfiles repository, or update an existing working copy."""
    config = ctx.config
    logger = ctx.logger
    dotfiles_dir = config.DOTFILES_DIR

    if dotfiles_dir.is_dir():
        logger.warning(f"Dotfiles directory already exists at {dotfiles_dir}")
        if (dotfiles_dir / ".git").is_dir():
            logger.info("Updating existing dotfiles repository...")
            for branch in ("main", "master"):
                if commands.succeeds(
                    ["git", "-C", str(dotfiles_dir), "pull", "origin", branch],
                    timeout=config.COMMAND_TIMEOUT,
                ):
                    break
            else:
                logger.warning("Could not update dotfiles repo")
                print_warning("Could not update dotfiles repo")
        else:
            logger.warning("Directory exists but is not a git repository. Moving to backup...")
            moved = ctx.backup.move_in(dotfiles_dir, "dotfiles_existing")
            logger.info(f"Moved existing directory to {moved}")
            _clone(config)
    else:
        _clone(config)

    if not dotfiles_dir.is_dir():
        raise StepFailure(f"Failed to set up dotfiles repository at {dotfiles_dir}")
    logger.info("Dotfiles repository setup completed")
    return True


def _clone(config: Config) -> None:
    get_logger().info(f"Cloning dotfiles repository {config.DOTFILES_REPO}...")
    commands.run_command(
        ["git", "clone", config.DOTFILES_REPO, str(config.DOTFILES_DIR)],
        timeout=config.COMMAND_TIMEOUT,
    )
