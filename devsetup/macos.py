"""
macOS-only steps: Xcode, Dock and screenshot defaults, Terminal profile.
"""

import subprocess
import time
from pathlib import Path
from typing import List, Tuple

from devsetup import commands
from devsetup.config import SetupContext
from devsetup.errors import StepFailure
from devsetup.ui import print_message, print_success, print_warning

XCODE_APP_ID = "497799835"
XCODE_APP = Path("/Applications/Xcode.app")
XCODE_CLI_POLL_SECONDS = 5
XCODE_CLI_MAX_WAIT = 3600

# (domain, key, type flag, value)
DOCK_DEFAULTS: List[Tuple[str, str, str, str]] = [
    ("com.apple.dock", "show-recents", "-bool", "false"),
    ("com.apple.dock", "autohide-delay", "-int", "0"),
    ("com.apple.dock", "autohide-time-modifier", "-float", "0.4"),
    ("com.apple.dock", "tilesize", "-int", "64"),
    ("com.apple.dock", "magnification", "-bool", "true"),
    ("com.apple.dock", "largesize", "-int", "52"),
]

TERMINAL_PROFILE_NAME = "CustomProfile"
TERMINAL_DEFAULT_SCRIPT = (
    'tell application "Terminal"\n'
    f'    set default settings to settings set "{TERMINAL_PROFILE_NAME}"\n'
    "end tell\n"
)


def install_xcode_cli(ctx: SetupContext, sleep=time.sleep) -> bool:
    logger = ctx.logger
    if commands.succeeds(["xcode-select", "-p"]):
        logger.info("Xcode Command Line Tools already installed.")
        return True

    logger.info("Xcode Command Line Tools not found. Installing...")
    commands.succeeds(["softwareupdate", "--install-rosetta", "--agree-to-license"], timeout=None)
    commands.run_command(["xcode-select", "--install"], check=False)

    # The installer runs in its own GUI window; poll until it finishes.
    waited = 0
    while not commands.succeeds(["xcode-select", "-p"]):
        if waited >= XCODE_CLI_MAX_WAIT:
            raise StepFailure("Timed out waiting for Xcode Command Line Tools")
        sleep(XCODE_CLI_POLL_SECONDS)
        waited += XCODE_CLI_POLL_SECONDS
    print_success("Xcode Command Line Tools installed.")
    return True


def install_xcode_from_appstore(ctx: SetupContext) -> bool:
    logger = ctx.logger
    if XCODE_APP.is_dir():
        logger.info("Xcode is already installed")
        return True
    if not commands.command_exists("mas"):
        raise StepFailure("mas is not installed; install it with Homebrew to get Xcode")
    if not commands.succeeds(["mas", "account"]):
        print_warning("Not signed in to App Store. Manual installation required:")
        print_message("1. Open App Store and sign in with your Apple ID")
        print_message("2. Search for 'Xcode' and install it (~15GB)")
        raise StepFailure("Not signed in to the App Store")

    if not ctx.prompter.confirm("Install Xcode from the App Store (~15GB)?", default=False):
        logger.info("Skipping Xcode installation")
        return True

    logger.info("Installing Xcode via App Store (this may take a while)...")
    try:
        commands.run_command(["mas", "install", XCODE_APP_ID], timeout=None)
    except subprocess.CalledProcessError as e:
        raise StepFailure("Failed to install Xcode from App Store", commands.captured_output(e))

    logger.info("Accepting Xcode license...")
    if not commands.succeeds(["sudo", "xcodebuild", "-license", "accept"], timeout=300):
        print_warning("Failed to accept the Xcode license")
    logger.info("Installing additional Xcode components...")
    if not commands.succeeds(["sudo", "xcodebuild", "-runFirstLaunch"], timeout=None):
        print_warning("xcodebuild -runFirstLaunch failed")
    print_success("Xcode setup completed")
    return True


def setup_macos_customizations(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger

    logger.info("Configuring Dock...")
    failed = []
    for domain, key, kind, value in DOCK_DEFAULTS:
        if not commands.succeeds(["defaults", "write", domain, key, kind, value]):
            failed.append(key)
    commands.succeeds(["killall", "Dock"])

    logger.info("Setting up screenshot folder...")
    screenshots = config.USER_HOME / "Pictures" / "Screenshots"
    screenshots.mkdir(parents=True, exist_ok=True)
    if not commands.succeeds(
        ["defaults", "write", "com.apple.screencapture", "location", str(screenshots)]
    ):
        failed.append("screencapture location")
    commands.succeeds(["killall", "SystemUIServer"])

    if failed:
        raise StepFailure(f"Failed to apply defaults: {', '.join(failed)}")
    print_success("macOS customizations applied")
    return True


def setup_terminal_profile(ctx: SetupContext, sleep=time.sleep) -> bool:
    config, logger = ctx.config, ctx.logger
    profile = config.DOTFILES_DIR / "terminal" / f"{TERMINAL_PROFILE_NAME}.terminal"
    if not profile.is_file():
        print_warning(f"Terminal profile not found at {profile}")
        print_message("Set the Terminal font to 'MesloLGS NF' manually")
        return True

    logger.info("Importing Terminal profile...")
    commands.run_command(["open", str(profile)])
    sleep(2)
    logger.info("Setting Terminal profile as default...")
    try:
        commands.run_command(["osascript"], input=TERMINAL_DEFAULT_SCRIPT)
    except subprocess.CalledProcessError as e:
        raise StepFailure("Failed to set the default Terminal profile", commands.captured_output(e))
    print_success("Terminal profile configured")
    return True
