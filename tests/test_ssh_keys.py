"""
Tests for SSH key setup and the GitHub identity check.
"""

import os
import subprocess

from devsetup import commands, ssh_keys
from devsetup.config import MACOS


def _completed(stdout="", stderr="", code=1):
    return subprocess.CompletedProcess(["ssh"], code, stdout, stderr)


class TestGithubIdentity:
    def test_greeting_on_stderr_passes(self, ctx, monkeypatch):
        greeting = "Hi octocat! You've successfully authenticated, but GitHub does not provide shell access."
        monkeypatch.setattr(commands, "run_command", lambda cmd, **kw: _completed(stderr=greeting))
        assert ssh_keys.verify_github_access(ctx)

    def test_permission_denied_fails(self, ctx, monkeypatch):
        monkeypatch.setattr(
            commands,
            "run_command",
            lambda cmd, **kw: _completed(stderr="git@github.com: Permission denied (publickey)."),
        )
        assert not ssh_keys.verify_github_access(ctx)

    def test_timeout_fails(self, ctx, monkeypatch):
        def timeout(cmd, **kw):
            raise subprocess.TimeoutExpired(cmd, 30)

        monkeypatch.setattr(commands, "run_command", timeout)
        assert not ssh_keys.verify_github_access(ctx)


class TestClientConfig:
    def test_linux(self, config):
        text = ssh_keys.ssh_client_config(config)
        assert "IdentityFile ~/.ssh/id_ed25519" in text
        assert "UseKeychain" not in text

    def test_macos_uses_keychain(self, config):
        config.PLATFORM = MACOS
        assert "UseKeychain yes" in ssh_keys.ssh_client_config(config)


class TestSetupSshKeys:
    def _quiet(self, monkeypatch):
        monkeypatch.setattr(ssh_keys, "add_to_agent", lambda ctx, key: True)
        monkeypatch.setattr(ssh_keys, "verify_github_access", lambda ctx: False)

    def test_keys_copied_from_dotfiles_with_backup(self, ctx, monkeypatch):
        self._quiet(monkeypatch)
        config = ctx.config
        config.DOTFILES_DIR.mkdir()
        (config.DOTFILES_DIR / "id_ed25519").write_text("PRIVATE")
        (config.DOTFILES_DIR / "id_ed25519.pub").write_text("ssh-ed25519 AAAA me")
        config.ssh_dir.mkdir()
        (config.ssh_dir / "id_ed25519").write_text("OLD")

        assert ssh_keys.setup_ssh_keys(ctx)

        private_key = config.ssh_dir / "id_ed25519"
        assert private_key.read_text() == "PRIVATE"
        assert private_key.stat().st_mode & 0o777 == 0o600
        assert (config.BACKUP_DIR / "id_ed25519.backup").read_text() == "OLD"
        ssh_config = config.ssh_dir / "config"
        assert ssh_config.stat().st_mode & 0o777 == 0o600

    def test_existing_config_is_kept(self, ctx, monkeypatch):
        self._quiet(monkeypatch)
        config = ctx.config
        config.ssh_dir.mkdir()
        (config.ssh_dir / "id_ed25519").write_text("KEY")
        (config.ssh_dir / "config").write_text("Host example\n")

        ssh_keys.setup_ssh_keys(ctx)
        assert (config.ssh_dir / "config").read_text() == "Host example\n"

    def test_declined_generation(self, ctx, monkeypatch, make_prompter):
        self._quiet(monkeypatch)
        ctx.prompter = make_prompter(confirms=[False])
        calls = []
        monkeypatch.setattr(commands, "run_command", lambda cmd, **kw: calls.append(cmd))

        assert ssh_keys.setup_ssh_keys(ctx)
        assert calls == []
        assert not (ctx.config.ssh_dir / "config").exists()

    def test_generate_new_key(self, ctx, monkeypatch, make_prompter):
        self._quiet(monkeypatch)
        ctx.prompter = make_prompter(answers=["me@example.com"], confirms=[True])
        calls = []

        def fake_keygen(cmd, **kw):
            calls.append(cmd)
            key = ctx.config.ssh_dir / "id_ed25519"
            key.write_text("PRIVATE")
            key.with_name("id_ed25519.pub").write_text("ssh-ed25519 AAAA me@example.com")

        monkeypatch.setattr(commands, "run_command", fake_keygen)
        assert ssh_keys.setup_ssh_keys(ctx)
        assert calls[0][:3] == ["ssh-keygen", "-t", "ed25519"]
        assert "me@example.com" in calls[0]
        assert (ctx.config.ssh_dir / "config").exists()


class TestWritePrivateKey:
    def test_created_owner_only(self, tmp_path, monkeypatch):
        modes = []
        real_open = os.open

        def spy(path, flags, mode=0o777, *args, **kwargs):
            modes.append(mode)
            return real_open(path, flags, mode, *args, **kwargs)

        monkeypatch.setattr(os, "open", spy)
        key = tmp_path / "id_ed25519"
        ssh_keys.write_private_key(key, b"PRIVATE")

        assert modes == [0o600]
        assert key.read_bytes() == b"PRIVATE"
        assert key.stat().st_mode & 0o777 == 0o600

    def test_replaces_world_readable_file(self, tmp_path):
        key = tmp_path / "id_ed25519"
        key.write_text("OLD")
        os.chmod(key, 0o644)
        ssh_keys.write_private_key(key, b"NEW")
        assert key.read_bytes() == b"NEW"
        assert key.stat().st_mode & 0o777 == 0o600
