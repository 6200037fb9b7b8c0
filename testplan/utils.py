"""Shared console helpers for the test plan extractor.

All diagnostic output goes through a single Rich console bound to stderr so
that callers capturing stdout (renderers, exporters) never see extraction
chatter.  Recoverable failures are reported with :func:`print_warning`;
escalation and progress notes use :func:`print_status`.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {escape(message)}")


def print_status(message: str) -> None:
    """Print a dimmed progress/status line."""
    console.print(f"  [dim]{escape(message)}[/dim]")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Shorten *text* to at most *limit* characters, appending *suffix*.

    Examples::

        truncate("abcdef", 5)  -> "ab..."
        truncate("abc", 5)     -> "abc"
    """
    if len(text) <= limit:
        return text
    return text[: max(limit - len(suffix), 0)] + suffix
