import datetime
import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from devsetup.backup import BackupDirectory
    from devsetup.ui import Prompter

UBUNTU = "ubuntu"
MACOS = "macos"

MESLO_BASE_URL = "https://github.com/romkatv/powerlevel10k-media/raw/master"


def detect_platform() -> str:
    return MACOS if platform.system() == "Darwin" else UBUNTU


def run_timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


@dataclass
class Config:
    """Configuration settings for a provisioning run."""

    PLATFORM: str = field(default_factory=detect_platform)
    USER_HOME: Path = field(default_factory=Path.home)
    DOTFILES_REPO: str = "https://github.com/Shrishesha4/dotfiles.git"
    DOTFILES_DIR: Optional[Path] = None
    BACKUP_DIR: Optional[Path] = None
    LOG_FILE: Optional[Path] = None

    VERBOSE: bool = False
    FAIL_FAST: bool = False
    ASSUME_YES: bool = False

    DOTFILES: List[str] = field(
        default_factory=lambda: [
            ".gitconfig",
            ".yarnrc",
            ".zshrc",
            ".p10k.zsh",
            ".zprofile",
        ]
    )
    SHELL_RC: str = ".zshrc"

    ESSENTIAL_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "curl", "wget", "git", "build-essential", "software-properties-common",
            "apt-transport-https", "ca-certificates", "gnupg", "lsb-release",
            "zsh", "unzip", "tree", "htop", "neovim", "tmux", "jq", "fzf", "snapd",
        ]
    )
    BREW_ESSENTIALS: List[str] = field(
        default_factory=lambda: [
            "git", "wget", "curl", "pyenv", "rbenv", "fzf", "gh", "htop",
            "neovim", "tmux", "tree", "jq", "node", "yarn", "postgresql@15",
        ]
    )
    PYENV_BUILD_DEPS: List[str] = field(
        default_factory=lambda: [
            "make", "build-essential", "libssl-dev", "zlib1g-dev", "libbz2-dev",
            "libreadline-dev", "libsqlite3-dev", "wget", "curl", "llvm",
            "libncursesw5-dev", "xz-utils", "tk-dev", "libxml2-dev",
            "libxmlsec1-dev", "libffi-dev", "liblzma-dev",
        ]
    )
    RBENV_BUILD_DEPS: List[str] = field(
        default_factory=lambda: [
            "libssl-dev", "libreadline-dev", "zlib1g-dev", "autoconf", "bison",
            "build-essential", "libyaml-dev", "libncurses5-dev", "libffi-dev",
            "libgdbm-dev",
        ]
    )

    PYTHON_VERSIONS: List[str] = field(default_factory=lambda: ["3.13.5", "3.9.23"])
    RUBY_VERSION: str = "3.2.7"
    NVM_VERSION: str = "v0.39.4"
    NODE_GLOBAL_PACKAGES: List[str] = field(default_factory=lambda: ["yarn", "pnpm"])

    FONT_URLS: List[str] = field(
        default_factory=lambda: [
            f"{MESLO_BASE_URL}/MesloLGS%20NF%20Regular.ttf",
            f"{MESLO_BASE_URL}/MesloLGS%20NF%20Bold.ttf",
            f"{MESLO_BASE_URL}/MesloLGS%20NF%20Italic.ttf",
            f"{MESLO_BASE_URL}/MesloLGS%20NF%20Bold%20Italic.ttf",
        ]
    )

    SSH_KEY_NAME: str = "id_ed25519"
    GITHUB_SSH_HOST: str = "git@github.com"

    INSTALL_ATTEMPTS: int = 3
    INSTALL_RETRY_DELAY: float = 10.0
    INDEX_UPDATE_ATTEMPTS: int = 3
    INDEX_UPDATE_DELAY: float = 5.0
    COMMAND_TIMEOUT: int = 3600
    DOWNLOAD_TIMEOUT: int = 600
    API_TIMEOUT: int = 60
    MIN_DISK_GB: int = 5

    def __post_init__(self):
        self.USER_HOME = Path(self.USER_HOME)
        if self.DOTFILES_DIR is None:
            self.DOTFILES_DIR = self.USER_HOME / "dotfiles"
        if self.BACKUP_DIR is None:
            self.BACKUP_DIR = self.USER_HOME / f"dotfiles_backup_{run_timestamp()}"
        if self.LOG_FILE is None:
            self.LOG_FILE = self.USER_HOME / ".local" / "state" / "devsetup" / "devsetup.log"

    @property
    def ssh_dir(self) -> Path:
        return self.USER_HOME / ".ssh"

    @property
    def font_dir(self) -> Path:
        if self.PLATFORM == MACOS:
            return self.USER_HOME / "Library" / "Fonts"
        return self.USER_HOME / ".local" / "share" / "fonts"

    @property
    def local_bin(self) -> Path:
        return self.USER_HOME / ".local" / "bin"

    @property
    def shell_profile(self) -> Path:
        """Profile file that receives toolchain init snippets."""
        if self.PLATFORM == MACOS:
            return self.USER_HOME / ".zprofile"
        return self.USER_HOME / self.SHELL_RC

    @property
    def dotfiles_ssh_remote(self) -> str:
        """SSH form of DOTFILES_REPO for github.com HTTPS URLs."""
        prefix = "https://github.com/"
        if self.DOTFILES_REPO.startswith(prefix):
            return f"{self.GITHUB_SSH_HOST}:{self.DOTFILES_REPO[len(prefix):]}"
        return self.DOTFILES_REPO


@dataclass
class SetupContext:
    """Everything a step action needs; passed explicitly to every step."""

    config: Config
    logger: logging.Logger
    prompter: "Prompter"
    backup: "BackupDirectory"
