"""
SSH key setup: import keys from the dotfiles tree or generate a new pair,
write a client config, load the key into the agent and check that GitHub
accepts it.
"""

import os
import re
import shutil
import subprocess
from pathlib import Path

from devsetup import commands
from devsetup.config import MACOS, Config, SetupContext
from devsetup.errors import StepFailure
from devsetup.ui import NordColors, console, print_message, print_success, print_warning

AUTH_OK = re.compile(r"successfully authenticated", re.IGNORECASE)


def ssh_client_config(config: Config) -> str:
    keychain = "    UseKeychain yes\n" if config.PLATFORM == MACOS else ""
    return (
        "Host github.com\n"
        "    AddKeysToAgent yes\n"
        f"{keychain}"
        f"    IdentityFile ~/.ssh/{config.SSH_KEY_NAME}\n"
        "\n"
        "Host *\n"
        "    AddKeysToAgent yes\n"
        f"{keychain}"
    )


def write_private_key(path: Path, content: bytes) -> None:
    """Write key material to a file that is 0600 from the moment it exists."""
    if path.exists() or path.is_symlink():
        path.unlink()
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(content)
    # umask may have cleared bits
    os.chmod(path, 0o600)


def import_keys(ctx: SetupContext, private_src: Path, public_src: Path) -> None:
    """Copy a key pair from the dotfiles tree, backing up any existing keys."""
    config, logger = ctx.config, ctx.logger
    private_key = config.ssh_dir / config.SSH_KEY_NAME
    public_key = private_key.with_name(private_key.name + ".pub")

    for existing in (private_key, public_key):
        if existing.is_file():
            logger.warning(f"Backing up existing {existing.name}...")
            ctx.backup.copy_in(existing, existing.name)

    try:
        write_private_key(private_key, private_src.read_bytes())
        shutil.copyfile(public_src, public_key)
        os.chmod(public_key, 0o644)
    except OSError as e:
        raise StepFailure(f"Failed to copy SSH keys from dotfiles: {e}")
    print_success("SSH keys configured successfully")


def generate_key(ctx: SetupContext, email: str) -> None:
    config = ctx.config
    private_key = config.ssh_dir / config.SSH_KEY_NAME
    ctx.logger.info("Generating new SSH key...")
    try:
        commands.run_command(
            ["ssh-keygen", "-t", "ed25519", "-C", email, "-f", str(private_key), "-N", ""],
            timeout=120,
        )
    except subprocess.CalledProcessError as e:
        raise StepFailure("Failed to generate SSH key", commands.captured_output(e))
    os.chmod(private_key, 0o600)
    os.chmod(private_key.with_name(private_key.name + ".pub"), 0o644)
    print_success("New SSH key generated successfully")

    public_key = private_key.with_name(private_key.name + ".pub").read_text().strip()
    console.print(f"\n[bold {NordColors.GREEN}]Your new SSH public key:[/]")
    console.print(public_key, style=NordColors.YELLOW, markup=False)
    print_message(
        "Add this key to your GitHub account at: https://github.com/settings/ssh/new",
        NordColors.FROST_3,
    )


def add_to_agent(ctx: SetupContext, private_key: Path) -> bool:
    if not (commands.command_exists("ssh-agent") and commands.command_exists("ssh-add")):
        return False
    if not os.environ.get("SSH_AUTH_SOCK"):
        result = commands.run_command(["ssh-agent", "-s"], check=False, timeout=30)
        for name, value in re.findall(r"(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;]+);", result.stdout or ""):
            os.environ[name] = value
    cmd = ["ssh-add", str(private_key)]
    if ctx.config.PLATFORM == MACOS:
        cmd.insert(1, "--apple-use-keychain")
    if commands.succeeds(cmd, timeout=30):
        return True
    ctx.logger.warning("Failed to add key to SSH agent")
    return False


def verify_github_access(ctx: SetupContext) -> bool:
    """
    Ask GitHub whether it accepts the key.

    `ssh -T` always exits non-zero because no shell is granted; the verdict
    is read from the greeting text instead.
    """
    try:
        result = commands.run_command(
            ["ssh", "-T", "-o", "StrictHostKeyChecking=accept-new", "-o", "BatchMode=yes",
             ctx.config.GITHUB_SSH_HOST],
            check=False,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        ctx.logger.warning(f"GitHub SSH check could not run: {e}")
        return False
    output = f"{result.stdout or ''}\n{result.stderr or ''}"
    return bool(AUTH_OK.search(output))


def setup_ssh_keys(ctx: SetupContext) -> bool:
    config, logger = ctx.config, ctx.logger
    ssh_dir = config.ssh_dir
    try:
        ssh_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(ssh_dir, 0o700)
    except OSError as e:
        raise StepFailure(f"Failed to create {ssh_dir}: {e}")

    private_key = ssh_dir / config.SSH_KEY_NAME
    public_key = private_key.with_name(private_key.name + ".pub")
    private_src = config.DOTFILES_DIR / config.SSH_KEY_NAME
    public_src = private_src.with_name(private_src.name + ".pub")

    if private_src.is_file() and public_src.is_file():
        logger.info("Copying SSH keys from dotfiles...")
        import_keys(ctx, private_src, public_src)
    else:
        logger.warning("SSH keys not found in dotfiles repo")
        if private_key.is_file():
            logger.info(f"Existing SSH key found at {private_key}")
        elif ctx.prompter.confirm("Would you like to generate a new SSH key pair?", default=False):
            email = ctx.prompter.ask("Enter your email address for the SSH key")
            if email:
                generate_key(ctx, email)
            else:
                print_warning("No email provided. Skipping SSH key generation")
        else:
            print_message(
                'Generate keys manually with: ssh-keygen -t ed25519 -C "your_email@example.com"',
                NordColors.FROST_3,
            )

    if not private_key.is_file():
        return True

    ssh_config = ssh_dir / "config"
    if not ssh_config.exists():
        logger.info("Creating SSH config...")
        ssh_config.write_text(ssh_client_config(config))
        os.chmod(ssh_config, 0o600)

    add_to_agent(ctx, private_key)

    if (config.DOTFILES_DIR / ".git").is_dir() and public_key.is_file():
        logger.info("Switching dotfiles repo remote to SSH...")
        if commands.succeeds(
            ["git", "-C", str(config.DOTFILES_DIR), "remote", "set-url", "origin",
             config.dotfiles_ssh_remote]
        ):
            logger.info("Dotfiles repo remote set to SSH")
        else:
            logger.warning("Failed to switch dotfiles repo to SSH")

    if verify_github_access(ctx):
        print_success("GitHub accepted the SSH key")
    else:
        print_warning("GitHub did not accept the SSH key yet; add the public key to your account")
    return True
