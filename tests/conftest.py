"""
Shared test fixtures: temporary home, config, scripted prompts and a
recording command runner. Nothing here touches the network or a real
package manager.
"""

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

from devsetup.backup import BackupDirectory
from devsetup.config import UBUNTU, Config, SetupContext
from devsetup.ui import Prompter


class FakePrompter(Prompter):
    """Replays scripted answers; falls back to the prompt default when exhausted."""

    def __init__(self, answers: Iterable[str] = (), confirms: Iterable[bool] = ()):
        super().__init__()
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.asked: List[str] = []
        self.confirmed: List[str] = []

    def ask(self, message: str, default: str = "") -> str:
        self.asked.append(message)
        return self.answers.pop(0) if self.answers else default

    def confirm(self, message: str, default: bool = False) -> bool:
        self.confirmed.append(message)
        return self.confirms.pop(0) if self.confirms else default


class RecordingRunner:
    """
    Stand-in for `commands.run_command`.

    Return codes are consumed in order; once exhausted every call exits 0.
    """

    def __init__(self, returncodes: Iterable[int] = (), stdout: str = "", stderr: str = ""):
        self.returncodes = list(returncodes)
        self.stdout = stdout
        self.stderr = stderr
        self.calls: List[List[str]] = []

    def __call__(self, cmd, check: bool = True, timeout: Optional[int] = None, **kwargs):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        code = self.returncodes.pop(0) if self.returncodes else 0
        if check and code != 0:
            raise subprocess.CalledProcessError(code, cmd, self.stdout, self.stderr)
        return subprocess.CompletedProcess(cmd, code, self.stdout, self.stderr)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Return an empty directory standing in for $HOME."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def config(home: Path, tmp_path: Path) -> Config:
    return Config(
        PLATFORM=UBUNTU,
        USER_HOME=home,
        BACKUP_DIR=tmp_path / "backup",
        LOG_FILE=tmp_path / "devsetup.log",
        INSTALL_RETRY_DELAY=0,
        INDEX_UPDATE_DELAY=0,
    )


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def ctx(config: Config, prompter: FakePrompter) -> SetupContext:
    return SetupContext(
        config=config,
        logger=logging.getLogger("devsetup.tests"),
        prompter=prompter,
        backup=BackupDirectory(config.BACKUP_DIR),
    )


@pytest.fixture
def recorder() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def make_prompter():
    """Factory for prompters with scripted answers."""
    return FakePrompter


@pytest.fixture
def make_runner():
    """Factory for recording runners with scripted return codes."""
    return RecordingRunner
