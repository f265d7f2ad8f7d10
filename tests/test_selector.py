"""
Tests for the interactive package selector.
"""

import textwrap

from devsetup.packages import InstallResult
from devsetup.selector import (
    DEFAULT_BREW_CATALOG,
    PackageCandidate,
    PackageKind,
    PackageSelector,
    install_selection,
    parse_brewfile,
    parse_indices,
    partition_by_kind,
)

F = PackageKind.FORMULA
C = PackageKind.CASK


def _catalog():
    return [
        PackageCandidate("git", F),
        PackageCandidate("jq", F),
        PackageCandidate("iterm2", C),
        PackageCandidate("tmux", F),
        PackageCandidate("docker", C),
    ]


class FakeInstaller:
    def __init__(self, fail=()):
        self.fail = set(fail)
        self.installed = []

    def install(self, names):
        self.installed.extend(names)
        ok = not (set(names) & self.fail)
        return InstallResult(ok, "fake", list(names), 1)


class TestParseIndices:
    def test_numbers_and_ranges(self):
        assert parse_indices("1 5 12") == [1, 5, 12]
        assert parse_indices("1-3 7") == [1, 2, 3, 7]

    def test_reversed_range_is_normalised(self):
        assert parse_indices("3-1") == [1, 2, 3]

    def test_invalid_token_rejects_line(self):
        assert parse_indices("1 two 3") is None
        assert parse_indices("1-") is None
        assert parse_indices("") is None


class TestPackageSelector:
    def test_all_then_clear(self, prompter):
        selector = PackageSelector(_catalog(), prompter)
        assert selector.handle("all") == PackageSelector.UPDATED
        assert len(selector.selected) == 5
        selector.handle("CLEAR")
        assert selector.selected == []

    def test_toggle_twice_restores(self, prompter):
        selector = PackageSelector(_catalog(), prompter)
        selector.handle("2")
        assert [c.name for c in selector.selected] == ["jq"]
        selector.handle("2")
        assert selector.selected == []

    def test_out_of_range_ignored(self, prompter):
        selector = PackageSelector(_catalog(), prompter)
        assert selector.handle("1 0 99") == PackageSelector.UPDATED
        assert [c.name for c in selector.selected] == ["git"]

    def test_invalid_line_changes_nothing(self, prompter):
        selector = PackageSelector(_catalog(), prompter)
        selector.handle("1")
        assert selector.handle("2 banana") == PackageSelector.REJECTED
        assert [c.name for c in selector.selected] == ["git"]

    def test_catalog_is_not_mutated(self, prompter):
        catalog = _catalog()
        PackageSelector(catalog, prompter).handle("all")
        assert not any(c.selected for c in catalog)

    def test_range_install_confirm(self, make_prompter):
        prompter = make_prompter(answers=["1-3", "install"], confirms=[True])
        batch = PackageSelector(_catalog(), prompter).select()
        assert [c.name for c in batch] == ["git", "jq", "iterm2"]
        groups = partition_by_kind(batch)
        assert [c.name for c in groups[F]] == ["git", "jq"]
        assert [c.name for c in groups[C]] == ["iterm2"]

    def test_declined_confirmation_installs_nothing(self, make_prompter):
        prompter = make_prompter(answers=["all", "install"], confirms=[False])
        batch = PackageSelector(_catalog(), prompter).select()
        assert batch == []
        installer = FakeInstaller()
        assert install_selection(batch, {F: installer, C: installer}) == []
        assert installer.installed == []

    def test_quit(self, make_prompter):
        prompter = make_prompter(answers=["1", "quit"])
        assert PackageSelector(_catalog(), prompter).select() == []
        assert prompter.confirmed == []

    def test_empty_selection_skips_confirmation(self, make_prompter):
        prompter = make_prompter(answers=["install"])
        assert PackageSelector(_catalog(), prompter).select() == []
        assert prompter.confirmed == []

    def test_empty_catalog(self, make_prompter):
        prompter = make_prompter()
        assert PackageSelector([], prompter).select() == []
        assert prompter.asked == []

    def test_defaults_select_everything(self, make_prompter):
        # With no scripted answers the prompt defaults are "all" then "install".
        prompter = make_prompter(confirms=[True])
        batch = PackageSelector(_catalog(), prompter).select()
        assert len(batch) == 5


class TestInstallSelection:
    def test_routes_by_kind_and_reports_failures(self):
        formulas = FakeInstaller(fail={"jq"})
        casks = FakeInstaller()
        batch = [c for c in _catalog()]
        failed = install_selection(batch, {F: formulas, C: casks})
        assert formulas.installed == ["git", "jq", "tmux"]
        assert casks.installed == ["iterm2", "docker"]
        assert failed == ["jq"]

    def test_callable_installer(self):
        classic = FakeInstaller()
        strict = FakeInstaller()
        batch = [PackageCandidate("android-studio", C), PackageCandidate("spotify", C)]
        install_selection(batch, lambda c: classic if c.name == "android-studio" else strict)
        assert classic.installed == ["android-studio"]
        assert strict.installed == ["spotify"]


class TestBrewfile:
    def test_parse_in_file_order(self, tmp_path):
        brewfile = tmp_path / "Brewfile"
        brewfile.write_text(
            textwrap.dedent(
                """\
                tap "homebrew/bundle"
                brew "git"
                cask "iterm2"
                # brew "commented"
                brew "postgresql@15", restart_service: true
                mas "Xcode", id: 497799835
                """
            )
        )
        catalog = parse_brewfile(brewfile)
        assert [(c.name, c.kind) for c in catalog] == [
            ("git", F),
            ("iterm2", C),
            ("postgresql@15", F),
        ]

    def test_default_catalog_has_both_kinds(self):
        kinds = {c.kind for c in DEFAULT_BREW_CATALOG}
        assert kinds == {F, C}


class TestOperatorInput:
    def test_markup_in_input_is_rejected_and_prompt_repeats(self, make_prompter):
        prompter = make_prompter(answers=["[/]", "[bold]x", "1", "install"], confirms=[True])
        batch = PackageSelector(_catalog(), prompter).select()
        assert [c.name for c in batch] == ["git"]
        assert len(prompter.asked) == 4

    def test_non_ascii_digits_are_rejected(self, make_prompter):
        prompter = make_prompter(answers=["²", "1-²", "2", "install"], confirms=[True])
        batch = PackageSelector(_catalog(), prompter).select()
        assert [c.name for c in batch] == ["jq"]

    def test_only_ascii_digits_parse(self):
        assert parse_indices("²") is None
        assert parse_indices("٣") is None

    def test_huge_range_is_clipped_to_catalog(self):
        assert parse_indices("1-99999999999", limit=5) == [1, 2, 3, 4, 5]
        assert parse_indices("99999999999-4", limit=5) == [4, 5]
        assert parse_indices("7-99999999999", limit=5) == []

    def test_huge_range_selects_everything(self, prompter):
        selector = PackageSelector(_catalog(), prompter)
        assert selector.handle("0-99999999999") == PackageSelector.UPDATED
        assert len(selector.selected) == 5

    def test_brewfile_names_with_brackets_are_printed(self, tmp_path, make_prompter):
        brewfile = tmp_path / "Brewfile"
        brewfile.write_text('brew "odd[/]name"\ncask "[bold]app"\n')
        prompter = make_prompter(answers=["all", "show", "install"], confirms=[True])
        batch = PackageSelector(parse_brewfile(brewfile), prompter).select()
        assert [c.name for c in batch] == ["odd[/]name", "[bold]app"]
        installer = FakeInstaller(fail={"[bold]app"})
        assert install_selection(batch, {F: installer, C: installer}) == ["[bold]app"]
