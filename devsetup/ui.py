"""
Console helpers: Nord palette, banner, styled messages and prompts.
"""

import shutil
from typing import Optional

import pyfiglet
from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style as PtStyle
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.style import Style
from rich.text import Text

from devsetup import APP_NAME, APP_SUBTITLE, VERSION


# ----------------------------------------------------------------
# Nord-Themed Colors
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette for consistent theming throughout the application."""

    POLAR_NIGHT_1 = "#2E3440"
    POLAR_NIGHT_4 = "#4C566A"

    SNOW_STORM_1 = "#D8DEE9"
    SNOW_STORM_2 = "#E5E9F0"

    FROST_1 = "#8FBCBB"
    FROST_2 = "#88C0D0"
    FROST_3 = "#81A1C1"
    FROST_4 = "#5E81AC"

    RED = "#BF616A"
    ORANGE = "#D08770"
    YELLOW = "#EBCB8B"
    GREEN = "#A3BE8C"
    PURPLE = "#B48EAD"


console: Console = Console(highlight=False)


# ----------------------------------------------------------------
# Banner and Messages
# ----------------------------------------------------------------
def create_header() -> Panel:
    """
    Create the ASCII art header shown at startup.

    Returns:
        Panel containing the styled header
    """
    term_width = shutil.get_terminal_size().columns
    adjusted_width = min(term_width - 4, 80)
    ascii_art = ""
    for font in ["slant", "small", "standard", "digital", "big"]:
        try:
            fig = pyfiglet.Figlet(font=font, width=adjusted_width)
            ascii_art = fig.renderText(APP_NAME)
            if ascii_art.strip():
                break
        except Exception:
            continue

    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = [
        NordColors.FROST_1,
        NordColors.FROST_2,
        NordColors.FROST_3,
        NordColors.FROST_4,
    ]
    styled_text = ""
    for i, line in enumerate(ascii_lines):
        color = colors[i % len(colors)]
        escaped_line = line.replace("[", "\\[").replace("]", "\\]")
        styled_text += f"[bold {color}]{escaped_line}[/]\n"

    border = f"[{NordColors.FROST_3}]{'━' * max(adjusted_width - 6, 10)}[/]"
    styled_text = border + "\n" + styled_text + border
    return Panel(
        Text.from_markup(styled_text),
        border_style=Style(color=NordColors.FROST_1),
        padding=(1, 2),
        title=f"[bold {NordColors.SNOW_STORM_2}]v{VERSION}[/]",
        title_align="right",
        subtitle=f"[bold {NordColors.SNOW_STORM_1}]{APP_SUBTITLE}[/]",
        subtitle_align="center",
    )


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    """
    Print a styled message.

    Args:
        text: The message to display
        style: The color style to use
        prefix: The prefix symbol
    """
    console.print(f"[{style}]{prefix} {text}[/{style}]")


def print_step(message: str) -> None:
    """Print a step description."""
    print_message(message, NordColors.FROST_3, "➜")


def print_success(message: str) -> None:
    """Print a success message."""
    print_message(message, NordColors.GREEN, "✓")


def print_warning(message: str) -> None:
    """Print a warning message."""
    print_message(message, NordColors.YELLOW, "⚠")


def print_error(message: str) -> None:
    """Print an error message."""
    print_message(message, NordColors.RED, "✗")


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    """
    Display a message in a styled panel.

    Args:
        message: The message to display
        style: The color style to use
        title: Optional panel title
    """
    panel = Panel(
        Text.from_markup(f"[bold {style}]{message}[/]"),
        border_style=Style(color=style),
        padding=(1, 2),
        title=f"[bold {style}]{title}[/]" if title else None,
    )
    console.print(panel)


# ----------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------
def get_prompt_style() -> PtStyle:
    return PtStyle.from_dict({"prompt": f"bold {NordColors.PURPLE}"})


class Prompter:
    """
    Interactive terminal prompts.

    Steps never read from the terminal directly; they go through a prompter
    so that answers can be supplied by the non-interactive variant or by
    tests.
    """

    def __init__(self) -> None:
        self.history = InMemoryHistory()

    def ask(self, message: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        answer = pt_prompt(
            f"{message}{suffix}: ",
            history=self.history,
            style=get_prompt_style(),
        ).strip()
        return answer or default

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(
            f"[bold {NordColors.FROST_2}]{message}[/]",
            default=default,
            console=console,
        )


class DefaultPrompter(Prompter):
    """Answers every prompt with its default value (unattended runs)."""

    def ask(self, message: str, default: str = "") -> str:
        print_message(f"{message}: {default or '(empty)'}", NordColors.SNOW_STORM_1, "→")
        return default

    def confirm(self, message: str, default: bool = False) -> bool:
        print_message(
            f"{message} {'yes' if default else 'no'}", NordColors.SNOW_STORM_1, "→"
        )
        return default
