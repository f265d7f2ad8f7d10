"""
Package installer adapters for apt, Homebrew (formulas and casks) and snap.
"""

import logging
import subprocess
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from devsetup import commands
from devsetup.commands import tail_output
from devsetup.config import Config
from devsetup.logging_utils import LOGGER_NAME


@dataclass
class InstallResult:
    """
    Outcome of a batch install.

    On failure `packages` still lists every requested name: the package
    managers do not report which subset of a batch failed.
    """

    ok: bool
    manager: str
    packages: List[str] = field(default_factory=list)
    attempts: int = 0
    output: str = ""

    @property
    def message(self) -> str:
        if self.ok:
            return f"{self.manager}: installed {', '.join(self.packages) or 'nothing'}"
        return (
            f"{self.manager}: failed to install {', '.join(self.packages)} "
            f"after {self.attempts} attempt(s)"
        )


class PackageInstaller:
    """
    Install a batch of packages through one package manager.

    A failed batch is retried with a fixed delay, refreshing the package
    index between attempts.
    """

    def __init__(
        self,
        manager: str,
        install_cmd: List[str],
        refresh_cmd: Optional[List[str]] = None,
        query_cmd: Optional[List[str]] = None,
        attempts: int = 3,
        retry_delay: float = 10.0,
        timeout: Optional[int] = commands.DEFAULT_TIMEOUT,
        run: Optional[Callable[..., subprocess.CompletedProcess]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.manager = manager
        self.install_cmd = install_cmd
        self.refresh_cmd = refresh_cmd
        self.query_cmd = query_cmd
        self.attempts = max(1, attempts)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._run = run
        self.sleep = sleep
        self.logger = logging.getLogger(LOGGER_NAME)

    def run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        runner = self._run or commands.run_command
        return runner(cmd, check=False, timeout=self.timeout)

    def refresh(self) -> bool:
        if not self.refresh_cmd:
            return True
        try:
            result = self.run(self.refresh_cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.warning(f"{self.manager} index refresh failed: {e}")
            return False
        if result.returncode != 0:
            self.logger.warning(f"{self.manager} index refresh failed")
            return False
        return True

    def is_installed(self, name: str) -> bool:
        if not self.query_cmd:
            return False
        try:
            return self.run(self.query_cmd + [name]).returncode == 0
        except (OSError, subprocess.TimeoutExpired):
            return False

    def install(self, names: Iterable[str]) -> InstallResult:
        names = [name for name in names if name]
        if not names:
            return InstallResult(True, self.manager, [], 0)

        output = ""
        for attempt in range(1, self.attempts + 1):
            self.logger.info(f"Installing with {self.manager}: {' '.join(names)}")
            try:
                result = self.run(self.install_cmd + names)
                returncode = result.returncode
                output = "\n".join(
                    part for part in (result.stdout, result.stderr) if part
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                returncode = None
                output = str(e)

            if returncode == 0:
                return InstallResult(True, self.manager, names, attempt, output)

            self.logger.warning(
                f"Package installation failed (attempt {attempt}/{self.attempts})"
            )
            if attempt < self.attempts:
                self.logger.info(f"Retrying in {self.retry_delay:g} seconds...")
                self.sleep(self.retry_delay)
                self.refresh()

        self.logger.error(
            f"Failed to install packages after {self.attempts} attempts: {' '.join(names)}"
        )
        return InstallResult(False, self.manager, names, self.attempts, tail_output(output))


def _installer(config: Config, manager: str, **kwargs) -> PackageInstaller:
    return PackageInstaller(
        manager,
        attempts=config.INSTALL_ATTEMPTS,
        retry_delay=config.INSTALL_RETRY_DELAY,
        timeout=config.COMMAND_TIMEOUT,
        **kwargs,
    )


def apt_installer(config: Config) -> PackageInstaller:
    return _installer(
        config,
        "apt",
        install_cmd=["sudo", "apt-get", "install", "-y"],
        refresh_cmd=["sudo", "apt-get", "update"],
        query_cmd=["dpkg", "-s"],
    )


def brew_installer(config: Config) -> PackageInstaller:
    return _installer(
        config,
        "brew",
        install_cmd=["brew", "install"],
        refresh_cmd=["brew", "update"],
        query_cmd=["brew", "list"],
    )


def cask_installer(config: Config) -> PackageInstaller:
    return _installer(
        config,
        "brew cask",
        install_cmd=["brew", "install", "--cask"],
        refresh_cmd=["brew", "update"],
        query_cmd=["brew", "list", "--cask"],
    )


def snap_installer(config: Config, classic: bool = False) -> PackageInstaller:
    install_cmd = ["sudo", "snap", "install"]
    if classic:
        install_cmd.append("--classic")
    return _installer(
        config,
        "snap",
        install_cmd=install_cmd,
        query_cmd=["snap", "list"],
    )


def update_index(
    installer: PackageInstaller,
    attempts: int,
    delay: float,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Refresh a package index, retrying with a fixed delay."""
    logger = logging.getLogger(LOGGER_NAME)
    for attempt in range(1, attempts + 1):
        if installer.refresh():
            return True
        logger.warning(f"{installer.manager} update failed (attempt {attempt}/{attempts})")
        if attempt < attempts:
            sleep(delay)
    logger.error(f"Failed to update package lists after {attempts} attempts")
    return False
