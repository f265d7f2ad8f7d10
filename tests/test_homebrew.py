"""
Tests for the Homebrew step and the Ubuntu application picker.
"""

import pytest

from devsetup import apps, commands, homebrew
from devsetup.errors import StepFailure
from devsetup.packages import InstallResult
from devsetup.selector import DEFAULT_BREW_CATALOG, PackageKind


class TestHomebrewHelpers:
    def test_shellenv_added_once(self, home):
        profile = home / ".zprofile"
        prefix = homebrew.homebrew_prefix("arm64")
        assert homebrew.ensure_shellenv(profile, prefix)
        assert not homebrew.ensure_shellenv(profile, prefix)
        assert profile.read_text() == 'eval "$(/opt/homebrew/bin/brew shellenv)"\n'

    def test_catalog_from_brewfile(self, tmp_path):
        (tmp_path / "Brewfile").write_text('brew "ripgrep"\ncask "firefox"\n')
        catalog = homebrew.load_catalog(tmp_path)
        assert [(c.name, c.kind) for c in catalog] == [
            ("ripgrep", PackageKind.FORMULA),
            ("firefox", PackageKind.CASK),
        ]

    def test_builtin_catalog_without_brewfile(self, tmp_path):
        assert homebrew.load_catalog(tmp_path) is DEFAULT_BREW_CATALOG


class FakeSnap:
    def __init__(self, installed=()):
        self.installed_names = set(installed)
        self.calls = []

    def is_installed(self, name):
        return name in self.installed_names

    def install(self, names):
        self.calls.extend(names)
        return InstallResult(True, "snap", list(names), 1)


class TestAdditionalApps:
    def test_classic_confinement_for_android_studio(self, ctx, monkeypatch, make_prompter):
        strict_snap, classic_snap = FakeSnap(installed={"brave"}), FakeSnap()
        monkeypatch.setattr(commands, "command_exists", lambda cmd, path=None: True)
        monkeypatch.setattr(apps, "ensure_snapd", lambda c: None)
        monkeypatch.setattr(
            apps, "snap_installer", lambda config, classic=False: classic_snap if classic else strict_snap
        )
        ctx.prompter = make_prompter(answers=["1 4 5", "install"], confirms=[True])

        assert apps.install_additional_apps(ctx)
        assert classic_snap.calls == ["android-studio"]
        assert strict_snap.calls == ["postman"]

    def test_no_snap(self, ctx, monkeypatch, make_prompter):
        monkeypatch.setattr(commands, "command_exists", lambda cmd, path=None: False)
        ctx.prompter = make_prompter()
        assert apps.install_additional_apps(ctx)
        assert ctx.prompter.asked == []

    def test_failed_apps_fail_the_step(self, ctx, monkeypatch, make_prompter):
        class FailingSnap(FakeSnap):
            def install(self, names):
                self.calls.extend(names)
                return InstallResult(False, "snap", list(names), 3)

        snap = FailingSnap()
        monkeypatch.setattr(commands, "command_exists", lambda cmd, path=None: True)
        monkeypatch.setattr(apps, "ensure_snapd", lambda c: None)
        monkeypatch.setattr(apps, "snap_installer", lambda config, classic=False: snap)
        ctx.prompter = make_prompter(answers=["2 3", "install"], confirms=[True])

        with pytest.raises(StepFailure) as excinfo:
            apps.install_additional_apps(ctx)
        assert snap.calls == ["discord", "spotify"]
        assert "discord, spotify" in excinfo.value.reason
