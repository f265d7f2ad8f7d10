import logging
import os
from pathlib import Path
from typing import Union

from rich.logging import RichHandler

from devsetup.ui import console

LOGGER_NAME = "devsetup"


def setup_logger(log_file: Union[str, Path], verbose: bool = False) -> logging.Logger:
    """
    Configure and return the application logger.

    The console handler shows informational lines only in verbose mode;
    warnings and errors are always shown. The log file receives everything.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for h in logger.handlers[:]:
        logger.removeHandler(h)
        h.close()

    console_handler = RichHandler(
        console=console, rich_tracebacks=True, show_path=False
    )
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.addHandler(console_handler)

    log_file = Path(log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        os.chmod(str(log_file), 0o600)
    except OSError as e:
        logger.warning(f"Could not set up file logging to {log_file}: {e}")

    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)
