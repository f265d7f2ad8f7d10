#!/usr/bin/env python3
"""
Dev Setup
--------------------------------------------------

Provisions a developer workstation on Ubuntu or macOS: system packages,
dotfiles, shell, fonts, language toolchains, SSH keys and optional apps.

Usage:
  devsetup [--verbose] [--fail-fast] [--yes] [--platform {auto,ubuntu,macos}]
           [--dotfiles-repo URL] [--dotfiles-dir PATH] [--log-file PATH]

Exit status is 0 when every step succeeded, otherwise the number of failed
steps (at most 100). A failed pre-flight check exits with 1.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from rich.traceback import install as install_rich_traceback

from devsetup import VERSION, plans
from devsetup.backup import BackupDirectory
from devsetup.config import MACOS, UBUNTU, Config, SetupContext, detect_platform
from devsetup.errors import PreconditionError, SetupCancelled
from devsetup.logging_utils import LOGGER_NAME, setup_logger
from devsetup.runner import StepRunner
from devsetup.system import run_preflight
from devsetup.ui import (
    DefaultPrompter,
    NordColors,
    Prompter,
    console,
    create_header,
    print_error,
    print_message,
)

MAX_EXIT_CODE = 100


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(signum, frame):
    """Log the interruption and exit with the conventional status."""
    logger = logging.getLogger(LOGGER_NAME)
    if signum == signal.SIGINT:
        logger.warning("Setup interrupted by user")
        sys.exit(130)
    logger.error(f"Setup terminated by {signal.Signals(signum).name}")
    sys.exit(143 if signum == signal.SIGTERM else 128 + signum)


def install_signal_handlers() -> None:
    for s in (signal.SIGINT, signal.SIGTERM):
        signal.signal(s, signal_handler)


# ----------------------------------------------------------------
# Argument Parsing
# ----------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devsetup",
        description="Developer workstation provisioning for Ubuntu and macOS",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show every log line and command output")
    parser.add_argument("--fail-fast", action="store_true", help="Stop at the first failed step")
    parser.add_argument("-y", "--yes", action="store_true", help="Answer every prompt with its default")
    parser.add_argument(
        "--platform",
        choices=("auto", UBUNTU, MACOS),
        default="auto",
        help="Provisioning plan to run (default: detect)",
    )
    parser.add_argument("--dotfiles-repo", help="Git URL of the dotfiles repository")
    parser.add_argument("--dotfiles-dir", type=Path, help="Where the dotfiles are cloned")
    parser.add_argument("--log-file", type=Path, help="Path of the log file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    config = Config(
        PLATFORM=detect_platform() if args.platform == "auto" else args.platform,
        DOTFILES_DIR=args.dotfiles_dir,
        LOG_FILE=args.log_file,
        VERBOSE=args.verbose,
        FAIL_FAST=args.fail_fast,
        ASSUME_YES=args.yes,
    )
    if args.dotfiles_repo:
        config.DOTFILES_REPO = args.dotfiles_repo
    return config


def exit_code(failed: int) -> int:
    return min(failed, MAX_EXIT_CODE)


# ----------------------------------------------------------------
# Main Entry Point
# ----------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    install_rich_traceback(show_locals=False)
    install_signal_handlers()

    config = config_from_args(args)
    logger = setup_logger(config.LOG_FILE, verbose=config.VERBOSE)
    prompter: Prompter = DefaultPrompter() if config.ASSUME_YES else Prompter()
    ctx = SetupContext(
        config=config,
        logger=logger,
        prompter=prompter,
        backup=BackupDirectory(config.BACKUP_DIR),
    )

    console.print(create_header())
    print_message(f"Platform: {config.PLATFORM}", NordColors.FROST_3)
    print_message(f"Log file: {config.LOG_FILE}", NordColors.FROST_3)
    logger.info(f"Starting Dev Setup v{VERSION} on {config.PLATFORM}")

    try:
        run_preflight(ctx)
        steps = plans.steps_for(config.PLATFORM)
        runner = StepRunner(ctx, fail_fast=config.FAIL_FAST, verbose=config.VERBOSE)
        report = runner.run(steps)
    except SetupCancelled as e:
        print_message(str(e), NordColors.FROST_3)
        return 0
    except PreconditionError as e:
        logger.error(str(e))
        print_error(str(e))
        return 1

    logger.info(
        f"Run finished: {report.completed} completed, {report.failed} failed, "
        f"{report.skipped} skipped of {report.total_steps}"
    )
    return exit_code(report.failed)


if __name__ == "__main__":
    sys.exit(main())
