"""
Code editor installation for Ubuntu: Cursor (AppImage) and VS Code (.deb).
"""

import os
import platform
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import requests

from devsetup import commands, net
from devsetup.config import SetupContext
from devsetup.errors import StepFailure
from devsetup.packages import apt_installer
from devsetup.ui import NordColors, console, print_message, print_success, print_warning

CURSOR_API_URL = "https://cursor.com/api/download?platform=linux-x64&releaseTrack=stable"

VSCODE_URLS: Dict[str, str] = {
    "x64": "https://code.visualstudio.com/sha/download?build=stable&os=linux-deb-x64",
    "arm64": "https://code.visualstudio.com/sha/download?build=stable&os=linux-deb-arm64",
}

CURSOR_WRAPPER = '#!/bin/bash\nexec "$HOME/.local/bin/cursor.appimage" "$@"\n'
LOCAL_BIN_PATH_LINE = 'export PATH="$HOME/.local/bin:$PATH"\n'


def get_architecture(machine: Optional[str] = None) -> str:
    """Map `uname -m` to the names used by the download endpoints."""
    machine = (machine or platform.machine()).lower()
    if machine in ("x86_64", "amd64"):
        return "x64"
    if machine in ("aarch64", "arm64"):
        return "arm64"
    return "unknown"


def cursor_download_url(payload: Dict) -> str:
    """Extract the AppImage URL from the Cursor download API response."""
    url = payload.get("downloadUrl")
    if not isinstance(url, str) or not url:
        raise StepFailure("Cursor download API response has no downloadUrl")
    return url


def _append_path_line(rc_files: List[Path]) -> None:
    for rc in rc_files:
        try:
            if rc.exists() and LOCAL_BIN_PATH_LINE.strip() in rc.read_text():
                continue
            with open(rc, "a") as f:
                f.write(LOCAL_BIN_PATH_LINE)
        except OSError:
            continue


# ----------------------------------------------------------------
# Cursor
# ----------------------------------------------------------------
def install_cursor(ctx: SetupContext, arch: Optional[str] = None) -> bool:
    config, logger = ctx.config, ctx.logger
    arch = arch or get_architecture()
    if arch != "x64":
        raise StepFailure(
            f"Cursor only supports x64 architecture on Linux. Current architecture: {arch}"
        )

    logger.info("Downloading Cursor for x64 architecture...")
    url = cursor_download_url(net.fetch_json(CURSOR_API_URL, timeout=config.API_TIMEOUT))

    local_bin = config.local_bin
    appimage = local_bin / "cursor.appimage"
    try:
        net.download_file(url, appimage, timeout=config.DOWNLOAD_TIMEOUT)
    except (requests.RequestException, OSError) as e:
        raise StepFailure(f"Failed to download Cursor AppImage: {e}")

    wrapper = local_bin / "cursor"
    try:
        os.chmod(appimage, 0o755)
        wrapper.write_text(CURSOR_WRAPPER)
        os.chmod(wrapper, 0o755)
    except OSError as e:
        raise StepFailure(f"Failed to create Cursor wrapper script: {e}")

    if str(local_bin) not in os.environ.get("PATH", "").split(os.pathsep):
        _append_path_line([config.USER_HOME / ".bashrc", config.USER_HOME / ".zshrc"])

    print_success("Cursor editor installed successfully")
    return True


# ----------------------------------------------------------------
# VS Code
# ----------------------------------------------------------------
def install_vscode(ctx: SetupContext, arch: Optional[str] = None) -> bool:
    config, logger = ctx.config, ctx.logger
    arch = arch or get_architecture()
    url = VSCODE_URLS.get(arch)
    if not url:
        raise StepFailure(f"Unsupported architecture for VS Code: {arch}")

    logger.info(f"Downloading VS Code for {arch} architecture...")
    with tempfile.TemporaryDirectory(prefix="devsetup-") as tmp:
        deb = Path(tmp) / "vscode.deb"
        try:
            net.download_file(url, deb, timeout=config.DOWNLOAD_TIMEOUT)
        except (requests.RequestException, OSError) as e:
            raise StepFailure(f"Failed to download VS Code: {e}")

        try:
            commands.run_command(["sudo", "dpkg", "-i", str(deb)], timeout=config.COMMAND_TIMEOUT)
        except subprocess.CalledProcessError:
            logger.warning("dpkg installation failed, trying to fix dependencies...")
            try:
                commands.run_command(
                    ["sudo", "apt-get", "install", "-f", "-y"], timeout=config.COMMAND_TIMEOUT
                )
            except subprocess.CalledProcessError as e:
                raise StepFailure("Failed to install VS Code", commands.captured_output(e))

    print_success("VS Code installed successfully")
    return True


def install_code_editor(ctx: SetupContext) -> bool:
    """Offer Cursor and/or VS Code; ARM64 machines only get VS Code."""
    logger = ctx.logger
    cursor_installed = commands.command_exists("cursor") or (ctx.config.local_bin / "cursor").is_file()
    vscode_installed = commands.command_exists("code")
    if cursor_installed:
        logger.info("Cursor is already installed")
    if vscode_installed:
        logger.info("VS Code is already installed")
    if cursor_installed and vscode_installed:
        return True

    if not commands.command_exists("jq"):
        apt_installer(ctx.config).install(["jq"])

    arch = get_architecture()
    console.print()
    if arch == "arm64":
        print_message("ARM64 detected: Cursor is not available for ARM64 Linux", NordColors.YELLOW)
        choices = {"1": ["vscode"], "2": []}
        console.print(f"[{NordColors.FROST_2}]1) VS Code (supports ARM64)\n2) Skip editor installation[/]")
        reply = ctx.prompter.ask("Enter your choice (1-2)", default="1").strip()
    else:
        choices = {"1": ["cursor"], "2": ["vscode"], "3": ["cursor", "vscode"], "4": []}
        console.print(
            f"[{NordColors.FROST_2}]1) Cursor (AI-powered code editor)\n"
            "2) VS Code (Microsoft's code editor)\n"
            "3) Both\n"
            "4) Skip editor installation[/]"
        )
        reply = ctx.prompter.ask("Enter your choice (1-4)", default="2").strip()

    selected = choices.get(reply)
    if selected is None:
        print_warning("Invalid choice. Installing VS Code as default...")
        selected = ["vscode"]
    if not selected:
        logger.info("Skipping editor installation")
        return True

    installers = {"cursor": install_cursor, "vscode": install_vscode}
    failures = []
    for editor in selected:
        if editor == "cursor" and cursor_installed or editor == "vscode" and vscode_installed:
            continue
        try:
            installers[editor](ctx, arch)
        except StepFailure as e:
            logger.warning(f"{editor} installation failed, continuing...")
            failures.append(e.reason)
    if failures and len(failures) == len(selected):
        raise StepFailure("; ".join(failures))
    return True
