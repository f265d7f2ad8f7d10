"""
Optional GUI applications for Ubuntu, chosen through the package selector
and installed as snaps.
"""

from typing import List

from devsetup import commands
from devsetup.config import SetupContext
from devsetup.errors import StepFailure
from devsetup.packages import PackageInstaller, snap_installer
from devsetup.selector import PackageCandidate, PackageKind, PackageSelector, install_selection
from devsetup.ui import print_warning

# Snaps that need --classic confinement.
CLASSIC_SNAPS = frozenset({"android-studio"})

UBUNTU_APP_CATALOG: List[PackageCandidate] = [
    PackageCandidate("brave", PackageKind.CASK, "Brave web browser"),
    PackageCandidate("discord", PackageKind.CASK, "Voice and text chat"),
    PackageCandidate("spotify", PackageKind.CASK, "Music streaming"),
    PackageCandidate("android-studio", PackageKind.CASK, "Android IDE"),
    PackageCandidate("postman", PackageKind.CASK, "API development environment"),
]


def ensure_snapd(ctx: SetupContext) -> None:
    if commands.succeeds(["systemctl", "is-active", "--quiet", "snapd"]):
        return
    if not commands.succeeds(["sudo", "systemctl", "start", "snapd"]):
        ctx.logger.warning("Failed to start snapd service")


def install_additional_apps(ctx: SetupContext) -> bool:
    logger = ctx.logger
    if not commands.command_exists("snap"):
        print_warning("snap is not available; skipping additional applications")
        return True

    selector = PackageSelector(UBUNTU_APP_CATALOG, ctx.prompter, title="Additional Applications")
    batch = selector.select()
    if not batch:
        return True

    ensure_snapd(ctx)
    strict = snap_installer(ctx.config)
    classic = snap_installer(ctx.config, classic=True)

    def installer_for(candidate: PackageCandidate) -> PackageInstaller:
        return classic if candidate.name in CLASSIC_SNAPS else strict

    pending = []
    for candidate in batch:
        if strict.is_installed(candidate.name):
            logger.info(f"{candidate.name} is already installed")
        else:
            pending.append(candidate)

    failed = install_selection(pending, installer_for)
    if failed:
        raise StepFailure(f"Some applications failed to install: {', '.join(failed)}")
    return True
