"""
Pre-flight checks and Ubuntu system packages.
"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional

from devsetup import commands, net
from devsetup.config import UBUNTU, SetupContext
from devsetup.errors import PreconditionError, SetupCancelled, StepFailure
from devsetup.packages import apt_installer, update_index
from devsetup.ui import print_message, print_success, print_warning

OS_RELEASE = Path("/etc/os-release")

DOCKER_PACKAGES = ["docker-ce", "docker-ce-cli", "containerd.io", "docker-compose-plugin"]
DOCKER_KEYRING = "/usr/share/keyrings/docker-archive-keyring.gpg"
GH_KEYRING = "/usr/share/keyrings/githubcli-archive-keyring.gpg"


# ----------------------------------------------------------------
# Pre-flight
# ----------------------------------------------------------------
def check_not_root() -> None:
    """
    Refuse to run as root.

    Raises:
        PreconditionError: if the effective UID is 0
    """
    if os.geteuid() == 0:
        print_message("Please run as a regular user. sudo will be used when needed.")
        raise PreconditionError("This tool should not be run as root")


def check_internet(ctx: SetupContext) -> None:
    ctx.logger.info("Checking internet connectivity...")
    if not net.has_internet_connection():
        raise PreconditionError("No internet connection detected")


def read_os_release(path: Path = OS_RELEASE) -> Dict[str, str]:
    """Parse KEY=value pairs from an os-release file."""
    info: Dict[str, str] = {}
    if not path.is_file():
        return info
    for line in path.read_text().splitlines():
        if "=" not in line or line.lstrip().startswith("#"):
            continue
        key, _, value = line.partition("=")
        info[key.strip()] = value.strip().strip('"')
    return info


def free_disk_gb(path: Path) -> float:
    return shutil.disk_usage(str(path)).free / (1024 ** 3)


def check_system_requirements(ctx: SetupContext, os_release: Optional[Path] = None) -> None:
    """
    Disk space, home directory permissions and distribution checks.

    Low disk space and an unexpected distribution only ask for confirmation;
    declining raises SetupCancelled.
    """
    config, prompter = ctx.config, ctx.prompter

    available = free_disk_gb(Path("/"))
    if available < config.MIN_DISK_GB:
        print_warning(
            f"Low disk space detected. Available: {available:.0f}GB, "
            f"Recommended: {config.MIN_DISK_GB}GB+"
        )
        if not prompter.confirm("Continue anyway?", default=False):
            raise SetupCancelled("Setup cancelled by user")

    probe = config.USER_HOME / ".devsetup_permission_test"
    try:
        probe.mkdir(parents=True, exist_ok=True)
        probe.rmdir()
    except OSError as e:
        raise PreconditionError(f"Cannot create directories in home folder: {e}")

    if config.PLATFORM == UBUNTU:
        info = read_os_release(os_release or OS_RELEASE)
        distro = info.get("ID")
        if distro and distro != "ubuntu":
            print_warning(
                f"This tool is designed for Ubuntu. Detected: {distro} {info.get('VERSION_ID', '')}"
            )
            if not prompter.confirm("Continue anyway?", default=False):
                raise SetupCancelled("Setup cancelled by user")


def run_preflight(ctx: SetupContext) -> None:
    check_not_root()
    check_internet(ctx)
    check_system_requirements(ctx)


# ----------------------------------------------------------------
# System packages (Ubuntu)
# ----------------------------------------------------------------
def update_system(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    logger.info("Updating system packages...")
    os.environ["DEBIAN_FRONTEND"] = "noninteractive"
    os.environ["NEEDRESTART_MODE"] = "a"

    apt = apt_installer(config)
    if not update_index(apt, config.INDEX_UPDATE_ATTEMPTS, config.INDEX_UPDATE_DELAY, apt.sleep):
        raise StepFailure(
            f"Failed to update package lists after {config.INDEX_UPDATE_ATTEMPTS} attempts"
        )

    packages = list(config.ESSENTIAL_PACKAGES)
    if not commands.command_exists("psql"):
        packages += ["postgresql", "postgresql-contrib"]

    result = apt.install(packages)
    if not result.ok:
        raise StepFailure(result.message, result.output)
    print_success("System packages updated and essential tools installed")
    return True


def _add_apt_source(name: str, key_url: str, keyring: str, source_line: str, dearmor: bool) -> None:
    """Install a signing key and an apt source list entry."""
    key_cmd = f"sudo gpg --dearmor --yes -o {keyring}" if dearmor else f"sudo dd of={keyring}"
    commands.run_shell(f"curl -fsSL {key_url} | {key_cmd}", timeout=300)
    commands.run_command(["sudo", "chmod", "go+r", keyring])
    commands.run_command(
        ["sudo", "tee", f"/etc/apt/sources.list.d/{name}.list"], input=source_line + "\n"
    )


def _dpkg_architecture() -> str:
    return commands.run_command(["dpkg", "--print-architecture"]).stdout.strip()


def install_docker(ctx: SetupContext) -> bool:
    logger = ctx.logger
    if commands.command_exists("docker"):
        logger.info("Docker already installed")
        return True

    logger.info("Installing Docker...")
    codename = commands.run_command(["lsb_release", "-cs"]).stdout.strip()
    _add_apt_source(
        "docker",
        "https://download.docker.com/linux/ubuntu/gpg",
        DOCKER_KEYRING,
        f"deb [arch={_dpkg_architecture()} signed-by={DOCKER_KEYRING}] "
        f"https://download.docker.com/linux/ubuntu {codename} stable",
        dearmor=True,
    )
    apt = apt_installer(ctx.config)
    apt.refresh()
    result = apt.install(DOCKER_PACKAGES)
    if not result.ok:
        logger.warning("Failed to install Docker")
        return False

    user = os.environ.get("USER") or ctx.config.USER_HOME.name
    if commands.succeeds(["sudo", "usermod", "-aG", "docker", user]):
        print_success("Docker installed (logout/login required for group changes)")
    else:
        print_warning("Docker installed but failed to add user to docker group")
    return True


def install_github_cli(ctx: SetupContext) -> bool:
    logger = ctx.logger
    if commands.command_exists("gh"):
        logger.info("GitHub CLI already installed")
        return True

    logger.info("Installing GitHub CLI...")
    _add_apt_source(
        "github-cli",
        "https://cli.github.com/packages/githubcli-archive-keyring.gpg",
        GH_KEYRING,
        f"deb [arch={_dpkg_architecture()} signed-by={GH_KEYRING}] "
        "https://cli.github.com/packages stable main",
        dearmor=False,
    )
    apt = apt_installer(ctx.config)
    apt.refresh()
    if not apt.install(["gh"]).ok:
        logger.warning("Failed to install GitHub CLI")
        return False
    print_success("GitHub CLI installed")
    return True


def install_dev_tools(ctx: SetupContext) -> bool:
    """Docker and the GitHub CLI; the step fails only when neither is available."""
    installed = 0
    for install in (install_docker, install_github_cli):
        try:
            if install(ctx):
                installed += 1
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            ctx.logger.warning(f"{install.__name__} failed: {commands.tail_output(commands.captured_output(e))}")
        except (OSError, StepFailure) as e:
            ctx.logger.warning(f"{install.__name__} failed: {e}")
    if installed == 0:
        raise StepFailure("No development tools were installed successfully")
    ctx.logger.info(f"Development tools installation completed ({installed} tools)")
    return True
