"""
Language toolchains: pyenv (Python), rbenv (Ruby) and nvm (Node.js).

Each toolchain exposes an EnvironmentActivation describing the PATH and
variable changes its shell init script would make, so the rest of the run
can use the freshly installed tools without evaluating shell code.
"""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional

from devsetup import commands
from devsetup.config import MACOS, SetupContext
from devsetup.errors import StepFailure
from devsetup.packages import apt_installer, brew_installer
from devsetup.ui import print_success, print_warning


@dataclass
class EnvironmentActivation:
    path_prepend: List[str] = field(default_factory=list)
    variables: Dict[str, str] = field(default_factory=dict)

    def apply(self, environ: Optional[MutableMapping[str, str]] = None) -> None:
        """Apply to `environ` (os.environ by default); PATH entries are added once."""
        environ = os.environ if environ is None else environ
        environ.update(self.variables)
        entries = [p for p in environ.get("PATH", "").split(os.pathsep) if p]
        for path in reversed(self.path_prepend):
            if path in entries:
                entries.remove(path)
            entries.insert(0, path)
        environ["PATH"] = os.pathsep.join(entries)


def pyenv_activation(home: Path) -> EnvironmentActivation:
    root = home / ".pyenv"
    return EnvironmentActivation(
        path_prepend=[str(root / "bin"), str(root / "shims")],
        variables={"PYENV_ROOT": str(root)},
    )


def rbenv_activation(home: Path) -> EnvironmentActivation:
    root = home / ".rbenv"
    return EnvironmentActivation(
        path_prepend=[str(root / "bin"), str(root / "shims")],
        variables={"RBENV_ROOT": str(root)},
    )


def nvm_activation(home: Path) -> EnvironmentActivation:
    return EnvironmentActivation(variables={"NVM_DIR": str(home / ".nvm")})


PYENV_PROFILE_SNIPPET = """
# Pyenv configuration
export PYENV_ROOT="$HOME/.pyenv"
export PATH="$PYENV_ROOT/bin:$PATH"
eval "$(pyenv init --path)"
eval "$(pyenv init -)"
"""

RBENV_PROFILE_SNIPPET = """
# Rbenv configuration
export PATH="$HOME/.rbenv/bin:$PATH"
eval "$(rbenv init -)"
"""


def ensure_profile_snippet(profile: Path, marker: str, snippet: str) -> bool:
    """Append `snippet` to an existing profile unless `marker` is already there."""
    if not profile.is_file():
        return False
    if marker in profile.read_text():
        return False
    with open(profile, "a") as f:
        f.write(snippet)
    return True


def installed_versions(tool: str) -> List[str]:
    result = commands.run_command([tool, "versions", "--bare"], check=False)
    if result.returncode != 0:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


# ----------------------------------------------------------------
# Python (pyenv)
# ----------------------------------------------------------------
def setup_python(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    home = config.USER_HOME

    if config.PLATFORM == MACOS:
        if not commands.command_exists("pyenv"):
            result = brew_installer(config).install(["pyenv"])
            if not result.ok:
                raise StepFailure("Failed to install pyenv", result.output)
    else:
        deps = apt_installer(config).install(config.PYENV_BUILD_DEPS)
        if not deps.ok:
            logger.warning("Some pyenv dependencies failed to install")
        if not (home / ".pyenv").is_dir():
            logger.info("Installing pyenv...")
            commands.run_shell("curl -fsSL https://pyenv.run | bash", timeout=config.COMMAND_TIMEOUT)
            print_success("pyenv installed")
        else:
            logger.info("pyenv already installed")

    pyenv_activation(home).apply()
    if ensure_profile_snippet(config.shell_profile, "pyenv init", PYENV_PROFILE_SNIPPET):
        logger.info(f"Added pyenv initialization to {config.shell_profile}")

    if not commands.command_exists("pyenv"):
        raise StepFailure("pyenv command not found after installation")

    present = installed_versions("pyenv")
    available = []
    for version in config.PYTHON_VERSIONS:
        if version in present:
            logger.info(f"Python {version} already installed")
            available.append(version)
            continue
        logger.info(f"Installing Python {version}...")
        result = commands.run_command(
            ["pyenv", "install", "-s", version], check=False, timeout=config.COMMAND_TIMEOUT
        )
        if result.returncode == 0:
            print_success(f"Python {version} installed")
            available.append(version)
        else:
            print_warning(f"Failed to install Python {version}")

    if not available:
        raise StepFailure("No Python version could be installed")
    for version in available:
        if commands.succeeds(["pyenv", "global", version]):
            logger.info(f"Python {version} set as global default")
            break
    else:
        print_warning("Failed to set global Python version")
    return True


# ----------------------------------------------------------------
# Ruby (rbenv)
# ----------------------------------------------------------------
def setup_ruby(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    home = config.USER_HOME
    rbenv_root = home / ".rbenv"

    if config.PLATFORM == MACOS:
        if not commands.command_exists("rbenv"):
            result = brew_installer(config).install(["rbenv"])
            if not result.ok:
                raise StepFailure("Failed to install rbenv", result.output)
    else:
        deps = apt_installer(config).install(config.RBENV_BUILD_DEPS)
        if not deps.ok:
            logger.warning("Some rbenv dependencies failed to install")
        if not rbenv_root.is_dir():
            logger.info("Installing rbenv...")
            commands.run_command(
                ["git", "clone", "https://github.com/rbenv/rbenv.git", str(rbenv_root)],
                timeout=config.COMMAND_TIMEOUT,
            )
            commands.run_command(
                [
                    "git",
                    "clone",
                    "https://github.com/rbenv/ruby-build.git",
                    str(rbenv_root / "plugins" / "ruby-build"),
                ],
                timeout=config.COMMAND_TIMEOUT,
            )
            print_success("rbenv installed")
        else:
            logger.info("rbenv already installed")

    rbenv_activation(home).apply()
    if ensure_profile_snippet(config.shell_profile, "rbenv init", RBENV_PROFILE_SNIPPET):
        logger.info(f"Added rbenv initialization to {config.shell_profile}")

    if not commands.command_exists("rbenv"):
        raise StepFailure("rbenv command not found after installation")

    version = config.RUBY_VERSION
    if version in installed_versions("rbenv"):
        logger.info(f"Ruby {version} already installed")
    else:
        logger.info(f"Installing Ruby {version}...")
        try:
            commands.run_command(["rbenv", "install", version], timeout=config.COMMAND_TIMEOUT)
        except subprocess.CalledProcessError as e:
            raise StepFailure(f"Failed to install Ruby {version}", commands.captured_output(e))
        print_success(f"Ruby {version} installed")

    if not commands.succeeds(["rbenv", "global", version]):
        print_warning("Failed to set global Ruby version")
    return True


# ----------------------------------------------------------------
# Node.js (nvm)
# ----------------------------------------------------------------
def nvm_command(home: Path, script: str) -> List[str]:
    """nvm is a shell function, so every call sources nvm.sh first."""
    nvm_sh = home / ".nvm" / "nvm.sh"
    return ["bash", "-c", f'export NVM_DIR="{home / ".nvm"}"; . "{nvm_sh}" && {script}']


def setup_nodejs(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    home = config.USER_HOME
    nvm_dir = home / ".nvm"

    if not nvm_dir.is_dir():
        logger.info("Installing nvm...")
        url = f"https://raw.githubusercontent.com/nvm-sh/nvm/{config.NVM_VERSION}/install.sh"
        commands.run_shell(f"curl -fsSL {url} | bash", timeout=config.COMMAND_TIMEOUT)
        print_success("nvm installed")
    else:
        logger.info("nvm already installed")

    nvm_activation(home).apply()
    if not (nvm_dir / "nvm.sh").is_file():
        raise StepFailure("nvm not found, skipping Node.js installation")

    logger.info("Installing latest LTS Node.js...")
    try:
        commands.run_command(
            nvm_command(home, "nvm install --lts && nvm use --lts && nvm alias default node"),
            timeout=config.COMMAND_TIMEOUT,
        )
    except subprocess.CalledProcessError as e:
        raise StepFailure("Failed to install Node.js via nvm", commands.captured_output(e))

    packages = " ".join(config.NODE_GLOBAL_PACKAGES)
    if packages:
        result = commands.run_command(
            nvm_command(home, f"npm install -g {packages}"),
            check=False,
            timeout=config.COMMAND_TIMEOUT,
        )
        if result.returncode != 0:
            print_warning("Node.js installed but failed to install global packages")
            return True
    print_success("Node.js and package managers installed")
    return True
