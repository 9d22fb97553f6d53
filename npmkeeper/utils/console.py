"""
Rich console output for npmkeeper.

Everything the ``plan`` command shows the user goes through here: status
lines, the plan table, peer conflicts and packages the registry could not
serve. Diagnostics belong in :mod:`npmkeeper.utils.logger` instead.

Color follows the usual terminal conventions: ``NO_COLOR`` and ``CI``
disable it, ``FORCE_COLOR`` enables it even when stdout is not a TTY.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence

from rich.table import Table
from rich.theme import Theme
from rich.console import Console

if TYPE_CHECKING:
    from npmkeeper.models.violation import PeerViolation

# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------

NPMKEEPER_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "highlight": "bold magenta",
        "package": "bold cyan",
        "update.major": "red",
        "update.minor": "yellow",
        "update.patch": "green",
        "update.new": "cyan",
        "update.downgrade": "bold red",
        "update.other": "yellow",
        "violation.forward": "magenta",
        "violation.reverse": "blue",
    }
)

#: update type -> theme style used by :func:`colorize_update_type`
UPDATE_TYPE_STYLES: Dict[str, str] = {
    "major": "update.major",
    "minor": "update.minor",
    "patch": "update.patch",
    "new": "update.new",
    "downgrade": "update.downgrade",
    "update": "update.other",
}

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    """Return the process-wide console, creating it on first use."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=NPMKEEPER_THEME,
                    no_color=not use_color,
                    highlight=use_color,
                )
    return _console


def reconfigure_console() -> None:
    """Drop the cached console so the next print re-reads the environment."""
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    return _get_console()


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------


def _print_status(style: str, prefix: str, message: str) -> None:
    _get_console().print(f"{prefix} {message}", style=style)


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _print_status("success", prefix, message)


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _print_status("error", prefix, message)


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _print_status("warning", prefix, message)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    caption: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
    row_styler: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None,
    show_row_lines: bool = False,
) -> None:
    """Render row dictionaries as a Rich table.

    Args:
        data: Rows; nothing is printed when empty.
        headers: Column order. Defaults to the keys of the first row.
        title: Table title.
        caption: Table caption.
        column_styles: ``header -> add_column kwargs`` (``style``,
            ``justify``, ``no_wrap``, ``width``, ``overflow``).
        row_styler: Callback returning a style for a row, or ``None``.
        show_row_lines: Draw horizontal lines between rows.
    """
    if not data:
        return

    columns = headers if headers is not None else list(data[0])
    styles = column_styles or {}

    table = Table(
        title=title,
        caption=caption,
        header_style="bold",
        show_lines=show_row_lines,
    )
    for header in columns:
        options = styles.get(header, {})
        table.add_column(
            header,
            style=options.get("style"),
            justify=options.get("justify", "default"),
            no_wrap=options.get("no_wrap", False),
            width=options.get("width"),
            overflow=options.get("overflow", "fold"),
        )

    for row in data:
        table.add_row(
            *(str(row.get(header, "")) for header in columns),
            style=row_styler(row) if row_styler else None,
        )

    _get_console().print(table)


def print_violations(violations: Sequence["PeerViolation"]) -> None:
    """Render peer dependency conflicts, one row per violation.

    Widened ranges are shown with an ``(extended)`` marker next to the
    range the dependent actually declares.
    """
    if not violations:
        return

    table = Table(title="Peer Dependency Conflicts", header_style="bold", show_lines=False)
    table.add_column("Check", no_wrap=True)
    table.add_column("Package", style="package", no_wrap=True)
    table.add_column("Peer", style="package", no_wrap=True)
    table.add_column("Requires", justify="center")
    table.add_column("Would Install", justify="center", style="error")

    for violation in violations:
        kind = violation.kind.value
        required = violation.required_range
        if violation.is_extended:
            required += " [dim](extended)[/dim]"
        table.add_row(
            f"[violation.{kind}]{kind}[/violation.{kind}]",
            violation.dependent,
            violation.peer,
            required,
            violation.would_install,
        )

    _get_console().print(table)


def print_unresolved(names: Iterable[str]) -> None:
    """Warn about packages left out of the plan for lack of registry data."""
    for name in sorted(names):
        print_warning(f"Package {name} could not be fetched from the registry")


def colorize_update_type(update_type: str) -> str:
    """Wrap *update_type* in Rich markup for its theme style.

    Unknown types (``same``, ``unknown``) are returned unchanged.
    """
    style = UPDATE_TYPE_STYLES.get(update_type.lower())
    return f"[{style}]{update_type}[/{style}]" if style else update_type
