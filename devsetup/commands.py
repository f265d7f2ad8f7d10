"""
External command execution and availability checks.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from devsetup.logging_utils import LOGGER_NAME

DEFAULT_TIMEOUT = 3600
TAIL_LINES = 5


def command_exists(cmd: str, path: Optional[str] = None) -> bool:
    """Return True when `cmd` resolves to an executable on PATH."""
    return shutil.which(cmd, path=path) is not None


def run_command(
    cmd: Sequence[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: Optional[int] = DEFAULT_TIMEOUT,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[Union[str, Path]] = None,
    input: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and returns the CompletedProcess.

    Args:
        cmd: Command and arguments as a list
        check: Whether to raise CalledProcessError on a non-zero exit
        capture_output: Whether to capture stdout/stderr
        timeout: Command timeout in seconds
        env: Environment for the command (defaults to the current one)
        cwd: Working directory
        input: Text fed to stdin

    Returns:
        CompletedProcess instance with command results
    """
    logger = logging.getLogger(LOGGER_NAME)
    cmd = [str(part) for part in cmd]
    cmd_str = " ".join(cmd)
    logger.debug(f"Running command: {cmd_str}")
    try:
        return subprocess.run(
            cmd,
            check=check,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
            env=env or os.environ.copy(),
            cwd=str(cwd) if cwd else None,
            input=input,
        )
    except subprocess.CalledProcessError as e:
        logger.debug(f"Command failed with exit code {e.returncode}: {cmd_str}")
        raise
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout} seconds: {cmd_str}")
        raise


def run_shell(script: str, **kwargs) -> subprocess.CompletedProcess:
    """Run a shell snippet through bash (used for curl-piped installers)."""
    return run_command(["bash", "-c", script], **kwargs)


def succeeds(cmd: Sequence[str], timeout: Optional[int] = 60) -> bool:
    """Run a probe command and report whether it exited with status 0."""
    try:
        result = run_command(cmd, check=False, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def tail_output(text: Optional[str], lines: int = TAIL_LINES) -> str:
    if not text:
        return ""
    return "\n".join(text.strip().splitlines()[-lines:])


def captured_output(error: BaseException) -> str:
    """Combined stdout/stderr captured by a failed subprocess call."""
    parts: List[str] = []
    for attr in ("stdout", "stderr"):
        value = getattr(error, attr, None)
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        if value:
            parts.append(value.strip())
    return "\n".join(parts)
