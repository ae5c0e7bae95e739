"""
CLI output and prompt helpers built on rich and questionary.

Environment handling:
- Detects TTY vs pipe/CI and never prompts when not interactive
- Respects NO_COLOR and FORCE_COLOR environment variables
"""

from __future__ import annotations

import os
import sys

import questionary
from questionary import Style as QStyle
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

STACKYARD_THEME = Theme(
    {
        "info": "#88C0D0",
        "success": "#A3BE8C",
        "warning": "#EBCB8B",
        "error": "#BF616A bold",
        "highlight": "#B48EAD",
        "muted": "#D8DEE9",
    }
)

console = Console(
    theme=STACKYARD_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)

PROMPT_STYLE = QStyle(
    [
        ("qmark", "fg:#88C0D0 bold"),
        ("question", "bold"),
        ("answer", "fg:#A3BE8C"),
        ("pointer", "fg:#88C0D0 bold"),
        ("highlighted", "fg:#81A1C1 bold"),
        ("selected", "fg:#A3BE8C"),
    ]
)

# Status value -> theme style
STATUS_STYLES = {
    "created": "success",
    "failed": "error",
    "creating": "info",
    "pending_creation": "muted",
    "pending_destroy": "warning",
    "destroyed": "muted",
}


def is_interactive() -> bool:
    """Check if we're in an interactive terminal environment."""
    ci_vars = ["CI", "GITHUB_ACTIONS", "JENKINS_URL", "GITLAB_CI", "CIRCLECI", "TRAVIS"]
    if any(os.environ.get(var) for var in ci_vars):
        return False
    return sys.stdin.isatty() and sys.stdout.isatty()


# === Output Formatting ===


def success(message: str) -> None:
    console.print(f"[success]✓ {message}[/success]")


def error(message: str) -> None:
    console.print(f"[error]✗ {message}[/error]")


def warning(message: str) -> None:
    console.print(f"[warning]⚠ {message}[/warning]")


def info(message: str) -> None:
    console.print(f"[info]ℹ {message}[/info]")


def header(title: str) -> None:
    """Print a section header."""
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", border_style="cyan"))


def print_table(
    title: str,
    columns: list[str],
    rows: list[list[str]],
    show_header: bool = True,
) -> None:
    """Print a formatted table."""
    table = Table(title=title, show_header=show_header)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*row)
    console.print(table)


def styled_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "muted")
    return f"[{style}]{status}[/{style}]"


# === Interactive Prompts ===


def confirm(message: str, default: bool = False) -> bool:
    """Ask for confirmation."""
    return questionary.confirm(message, default=default, style=PROMPT_STYLE).ask() or False


def select(message: str, choices: list[str], default: str | None = None) -> str | None:
    """Select from a list of choices; ``None`` when the prompt is cancelled."""
    return questionary.select(
        message,
        choices=choices,
        default=default,
        style=PROMPT_STYLE,
    ).ask()
