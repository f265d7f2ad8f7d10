"""
Tests for pre-flight checks and system package updates.
"""

import subprocess
import textwrap

import pytest

from devsetup import commands, net, system
from devsetup.config import MACOS
from devsetup.errors import PreconditionError, SetupCancelled, StepFailure


@pytest.fixture
def os_release(tmp_path):
    def write(distro):
        path = tmp_path / "os-release"
        path.write_text(
            textwrap.dedent(
                f"""\
                NAME="{distro.title()}"
                ID={distro}
                VERSION_ID="24.04"
                """
            )
        )
        return path

    return write


@pytest.fixture
def plenty_of_disk(monkeypatch):
    monkeypatch.setattr(system, "free_disk_gb", lambda path: 100.0)


class TestPreflight:
    def test_root_is_refused(self, monkeypatch):
        monkeypatch.setattr(system.os, "geteuid", lambda: 0)
        with pytest.raises(PreconditionError):
            system.check_not_root()

    def test_no_internet(self, ctx, monkeypatch):
        monkeypatch.setattr(net, "has_internet_connection", lambda: False)
        with pytest.raises(PreconditionError):
            system.check_internet(ctx)

    def test_ubuntu_passes_without_prompt(self, ctx, os_release, plenty_of_disk):
        system.check_system_requirements(ctx, os_release("ubuntu"))
        assert ctx.prompter.confirmed == []

    def test_other_distro_declined(self, ctx, os_release, plenty_of_disk):
        with pytest.raises(SetupCancelled):
            system.check_system_requirements(ctx, os_release("fedora"))

    def test_other_distro_accepted(self, ctx, os_release, plenty_of_disk, make_prompter):
        ctx.prompter = make_prompter(confirms=[True])
        system.check_system_requirements(ctx, os_release("debian"))
        assert len(ctx.prompter.confirmed) == 1

    def test_distro_ignored_on_macos(self, ctx, os_release, plenty_of_disk):
        ctx.config.PLATFORM = MACOS
        system.check_system_requirements(ctx, os_release("fedora"))

    def test_low_disk_declined(self, ctx, os_release, monkeypatch):
        monkeypatch.setattr(system, "free_disk_gb", lambda path: 1.0)
        with pytest.raises(SetupCancelled):
            system.check_system_requirements(ctx, os_release("ubuntu"))

    def test_read_os_release(self, os_release):
        info = system.read_os_release(os_release("ubuntu"))
        assert info["ID"] == "ubuntu"
        assert info["VERSION_ID"] == "24.04"


class TestUpdateSystem:
    @pytest.fixture(autouse=True)
    def _restore_env(self, monkeypatch):
        monkeypatch.setenv("DEBIAN_FRONTEND", "")
        monkeypatch.setenv("NEEDRESTART_MODE", "")

    def test_postgres_added_when_psql_missing(self, ctx, monkeypatch, make_runner):
        run = make_runner()
        monkeypatch.setattr(commands, "run_command", run)
        monkeypatch.setattr(commands, "command_exists", lambda cmd, path=None: False)

        assert system.update_system(ctx)
        assert run.calls[0] == ["sudo", "apt-get", "update"]
        install = run.calls[1]
        assert install[:4] == ["sudo", "apt-get", "install", "-y"]
        assert "zsh" in install
        assert "postgresql" in install

    def test_update_failure_fails_step(self, ctx, monkeypatch, make_runner):
        run = make_runner([1, 1, 1])
        monkeypatch.setattr(commands, "run_command", run)
        with pytest.raises(StepFailure, match="package lists"):
            system.update_system(ctx)
        assert len(run.calls) == 3


class TestDevTools:
    def test_both_present(self, ctx, monkeypatch):
        monkeypatch.setattr(commands, "command_exists", lambda cmd, path=None: True)
        assert system.install_dev_tools(ctx)

    def test_none_installed_fails(self, ctx, monkeypatch):
        monkeypatch.setattr(system, "install_docker", lambda c: False)
        monkeypatch.setattr(system, "install_github_cli", lambda c: False)
        with pytest.raises(StepFailure):
            system.install_dev_tools(ctx)

    @pytest.mark.parametrize(
        "error",
        [
            subprocess.TimeoutExpired(["lsb_release", "-cs"], 30),
            FileNotFoundError(2, "No such file or directory", "lsb_release"),
            StepFailure("Docker repository unavailable"),
        ],
    )
    def test_docker_error_still_tries_github_cli(self, ctx, monkeypatch, error):
        attempted = []

        def broken_docker(c):
            raise error

        monkeypatch.setattr(system, "install_docker", broken_docker)
        monkeypatch.setattr(system, "install_github_cli", lambda c: attempted.append("gh") or True)
        assert system.install_dev_tools(ctx)
        assert attempted == ["gh"]
