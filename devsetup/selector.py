"""
Interactive Package Selector
--------------------------------------------------

Shows a numbered checklist of candidate packages and lets the operator pick
a subset with a small command language:

  1 5 12        toggle individual packages
  1-10          toggle an inclusive range
  all           select every package
  show          list the current selection
  clear         deselect everything
  install       finish selecting and continue
  quit          leave without installing anything

The selector never installs anything itself; it returns the confirmed
batch and `install_selection` hands each entry to a package installer.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from devsetup.logging_utils import get_logger
from devsetup.packages import PackageInstaller
from devsetup.ui import (
    NordColors,
    Prompter,
    console,
    print_error,
    print_message,
    print_success,
    print_warning,
)


class PackageKind(Enum):
    FORMULA = "formula"
    CASK = "cask"

    @property
    def label(self) -> str:
        return "Formulas (CLI tools)" if self is PackageKind.FORMULA else "Casks (GUI apps)"


@dataclass
class PackageCandidate:
    name: str
    kind: PackageKind
    description: str = ""
    selected: bool = False


DEFAULT_BREW_CATALOG: List[PackageCandidate] = [
    PackageCandidate("git", PackageKind.FORMULA, "Distributed version control"),
    PackageCandidate("wget", PackageKind.FORMULA, "Network file retriever"),
    PackageCandidate("curl", PackageKind.FORMULA, "URL transfer tool"),
    PackageCandidate("pyenv", PackageKind.FORMULA, "Python version management"),
    PackageCandidate("rbenv", PackageKind.FORMULA, "Ruby version management"),
    PackageCandidate("fzf", PackageKind.FORMULA, "Fuzzy finder"),
    PackageCandidate("gh", PackageKind.FORMULA, "GitHub command-line tool"),
    PackageCandidate("htop", PackageKind.FORMULA, "Interactive process viewer"),
    PackageCandidate("neovim", PackageKind.FORMULA, "Vim-fork text editor"),
    PackageCandidate("tmux", PackageKind.FORMULA, "Terminal multiplexer"),
    PackageCandidate("tree", PackageKind.FORMULA, "Directory listing as a tree"),
    PackageCandidate("jq", PackageKind.FORMULA, "JSON processor"),
    PackageCandidate("node", PackageKind.FORMULA, "JavaScript runtime"),
    PackageCandidate("yarn", PackageKind.FORMULA, "JavaScript package manager"),
    PackageCandidate("postgresql@15", PackageKind.FORMULA, "PostgreSQL server"),
    PackageCandidate("mas", PackageKind.FORMULA, "Mac App Store command-line interface"),
    PackageCandidate("visual-studio-code", PackageKind.CASK, "Code editor"),
    PackageCandidate("iterm2", PackageKind.CASK, "Terminal emulator"),
    PackageCandidate("brave-browser", PackageKind.CASK, "Web browser"),
    PackageCandidate("docker", PackageKind.CASK, "Docker Desktop"),
    PackageCandidate("postman", PackageKind.CASK, "API development environment"),
    PackageCandidate("android-studio", PackageKind.CASK, "Android IDE"),
    PackageCandidate("notion", PackageKind.CASK, "Notes and workspace"),
    PackageCandidate("rectangle", PackageKind.CASK, "Window manager"),
]

BREWFILE_LINE = re.compile(r'^\s*(brew|cask)\s+"([^"]+)"')

CONTROL_COMMANDS = ("all", "show", "clear", "install", "quit")

INDEX_TOKEN = re.compile(r"[0-9]+")
RANGE_TOKEN = re.compile(r"([0-9]+)-([0-9]+)")


def parse_brewfile(path: Union[str, Path]) -> List[PackageCandidate]:
    """Read `brew "x"` and `cask "x"` entries from a Brewfile, in file order."""
    candidates = []
    for line in Path(path).read_text().splitlines():
        match = BREWFILE_LINE.match(line)
        if not match:
            continue
        kind = PackageKind.CASK if match.group(1) == "cask" else PackageKind.FORMULA
        candidates.append(PackageCandidate(match.group(2), kind))
    return candidates


def parse_indices(line: str, limit: Optional[int] = None) -> Optional[List[int]]:
    """
    Parse a line of 1-based indices and inclusive ranges.

    Returns the indices in input order (ranges expanded, reversed ranges
    read low to high), or None when any token is neither an index nor a
    range. Only ASCII digits are accepted.

    Args:
        line: The operator's input
        limit: When given, ranges are clipped to 1..limit before they are
            expanded. Single indices are returned as typed.
    """
    tokens = line.split()
    if not tokens:
        return None
    indices: List[int] = []
    for token in tokens:
        if INDEX_TOKEN.fullmatch(token):
            indices.append(int(token))
            continue
        match = RANGE_TOKEN.fullmatch(token)
        if not match:
            return None
        low, high = sorted((int(match.group(1)), int(match.group(2))))
        if limit is not None:
            low, high = max(low, 1), min(high, limit)
        indices.extend(range(low, high + 1))
    return indices


def partition_by_kind(
    batch: Iterable[PackageCandidate],
) -> Dict[PackageKind, List[PackageCandidate]]:
    groups: Dict[PackageKind, List[PackageCandidate]] = {kind: [] for kind in PackageKind}
    for candidate in batch:
        groups[candidate.kind].append(candidate)
    return groups


class PackageSelector:
    UPDATED = "updated"
    SHOWN = "shown"
    REJECTED = "rejected"
    INSTALL = "install"
    QUIT = "quit"

    def __init__(
        self,
        catalog: Iterable[PackageCandidate],
        prompter: Prompter,
        title: str = "Packages",
    ):
        # Work on copies so the static catalog is never mutated.
        self.candidates = [replace(candidate) for candidate in catalog]
        self.prompter = prompter
        self.title = title

    @property
    def selected(self) -> List[PackageCandidate]:
        return [c for c in self.candidates if c.selected]

    def toggle(self, indices: Iterable[int]) -> None:
        total = len(self.candidates)
        for index in indices:
            if 1 <= index <= total:
                candidate = self.candidates[index - 1]
                candidate.selected = not candidate.selected

    def select_all(self) -> None:
        for candidate in self.candidates:
            candidate.selected = True

    def clear(self) -> None:
        for candidate in self.candidates:
            candidate.selected = False

    def handle(self, line: str) -> str:
        """Apply one line of input and report what happened."""
        command = line.strip().lower()
        if command == "all":
            self.select_all()
            return self.UPDATED
        if command == "clear":
            self.clear()
            return self.UPDATED
        if command == "show":
            self.show_selection()
            return self.SHOWN
        if command == "install":
            return self.INSTALL
        if command == "quit":
            return self.QUIT

        indices = parse_indices(command, limit=len(self.candidates))
        if indices is None:
            print_error(
                f"Invalid input: {escape(line.strip()) or '(empty)'}. "
                "Use numbers, ranges like 1-5, or one of: " + ", ".join(CONTROL_COMMANDS)
            )
            return self.REJECTED
        self.toggle(indices)
        return self.UPDATED

    def _cell(self, number: int, candidate: PackageCandidate) -> Text:
        marker_style = NordColors.GREEN if candidate.selected else NordColors.POLAR_NIGHT_4
        text = Text()
        text.append("[x] " if candidate.selected else "[ ] ", style=f"bold {marker_style}")
        text.append(f"{number:>2}. ", style=NordColors.FROST_3)
        text.append(candidate.name, style=f"bold {NordColors.SNOW_STORM_2}")
        if candidate.kind is PackageKind.CASK:
            text.append(" (cask)", style=NordColors.PURPLE)
        if candidate.description:
            text.append(f" {candidate.description}", style="dim")
        return text

    def render(self) -> None:
        """Print the catalog as a numbered two-column checklist."""
        table = Table(
            title=f"{self.title} ({len(self.selected)}/{len(self.candidates)} selected)",
            show_header=False,
            expand=True,
            border_style=NordColors.FROST_4,
        )
        table.add_column(ratio=1)
        table.add_column(ratio=1)
        half = (len(self.candidates) + 1) // 2
        for row in range(half):
            left = self._cell(row + 1, self.candidates[row])
            right_index = row + half
            right = (
                self._cell(right_index + 1, self.candidates[right_index])
                if right_index < len(self.candidates)
                else Text("")
            )
            table.add_row(left, right)
        console.print(table)
        console.print(
            f"[{NordColors.FROST_2}]Numbers (1 5 12) or ranges (1-10) toggle packages; "
            f"commands: {', '.join(CONTROL_COMMANDS)}[/]"
        )

    def show_selection(self) -> None:
        selected = self.selected
        if not selected:
            print_message("Nothing selected yet", NordColors.FROST_3)
            return
        print_message(
            f"Selected ({len(selected)}): " + ", ".join(escape(c.name) for c in selected)
        )

    def print_summary(self, batch: List[PackageCandidate]) -> None:
        console.print(f"\n[bold {NordColors.PURPLE}]Installation Summary[/]")
        for kind, group in partition_by_kind(batch).items():
            if group:
                names = ", ".join(escape(c.name) for c in group)
                print_message(f"{kind.label} ({len(group)}): {names}")

    def select(self) -> List[PackageCandidate]:
        """
        Run the selection loop.

        Returns:
            The confirmed batch; empty when the catalog is empty, nothing was
            selected, the operator quit, or the confirmation was declined.
        """
        logger = get_logger()
        if not self.candidates:
            print_warning(f"No {self.title.lower()} available to select")
            return []

        self.render()
        while True:
            default = "install" if self.selected else "all"
            action = self.handle(self.prompter.ask("Selection", default=default))
            if action == self.QUIT:
                print_message("Selection cancelled; nothing will be installed")
                return []
            if action == self.INSTALL:
                break
            if action == self.UPDATED:
                self.render()

        batch = self.selected
        if not batch:
            print_message("No packages selected. Skipping installation.")
            return []

        self.print_summary(batch)
        if not self.prompter.confirm("Proceed with installation?", default=True):
            print_message("Installation declined; nothing will be installed")
            return []
        logger.info(f"Selected for installation: {', '.join(c.name for c in batch)}")
        return batch


def install_selection(
    batch: Iterable[PackageCandidate],
    installers: Union[
        Mapping[PackageKind, PackageInstaller],
        Callable[[PackageCandidate], PackageInstaller],
    ],
) -> List[str]:
    """
    Install each selected package with the installer for its kind.

    Returns:
        Names of the packages that failed to install
    """
    logger = get_logger()
    if callable(installers):
        installer_for = installers
    else:
        installer_for = lambda candidate: installers[candidate.kind]

    failed = []
    for candidate in batch:
        result = installer_for(candidate).install([candidate.name])
        if result.ok:
            print_success(f"Installed {escape(candidate.name)}")
        else:
            logger.warning(f"Failed to install {candidate.name}")
            print_warning(f"Failed to install {escape(candidate.name)}")
            failed.append(candidate.name)
    return failed
