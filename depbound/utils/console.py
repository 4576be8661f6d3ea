"""
Terminal output for depbound, built on Rich.

Everything the user is meant to read goes through here: status lines,
version lists and tables, and the list of dependents behind a conflict.
Diagnostics belong to :mod:`depbound.utils.logger` instead.

All helpers share one lazily created :class:`~rich.console.Console`.
Call :func:`reconfigure_console` after changing ``NO_COLOR`` so the next
call picks the new setting up.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from rich.markup import escape
from rich.table import Table
from rich.theme import Theme
from rich.console import Console

DEPBOUND_THEME = Theme(
    {
        "error": "bold red",
        "warning": "bold yellow",
        "header": "bold cyan",
        "item": "bold blue",
        "package": "bold",
        "requirement": "cyan",
        "dim": "dim",
    }
)

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    """Color only on an interactive terminal outside CI, unless NO_COLOR is set."""
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                _console = Console(
                    theme=DEPBOUND_THEME,
                    no_color=not _should_use_color(),
                    highlight=False,
                )
    return _console


def reconfigure_console() -> None:
    """Drop the shared console; the next output call builds a fresh one."""
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    """Return the shared Rich console, e.g. for ``print_json``."""
    return _get_console()


# ---------------------------------------------------------------------------
# Status lines
# ---------------------------------------------------------------------------


def _print_status(message: str, prefix: str, style: str) -> None:
    # Messages quote requirements such as "[1.0, 2.0)"; never parse them as markup
    _get_console().print(f"{escape(prefix)} {escape(message)}", style=style)


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _print_status(message, prefix, "error")


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _print_status(message, prefix, "warning")


# ---------------------------------------------------------------------------
# Structured output
# ---------------------------------------------------------------------------


def print_header_and_items(header: str, items: Iterable[Any]) -> None:
    """Print ``header:``, a blank line, then one line per item.

    Example output::

        Compatible versions of serde:

        1.3.5
        1.3.0
    """
    console = _get_console()
    console.print(f"{escape(header)}:", style="header")
    console.print()
    for item in items:
        console.print(escape(str(item)), style="item")


def print_dependents(dependents: Sequence[Any], *, title: Optional[str] = None) -> None:
    """List dependents as ``name version requirement`` rows.

    Args:
        dependents: Objects with ``package.name``, ``package.version`` and
            ``constraint.text`` (see :class:`depbound.models.Dependent`).
        title: Optional heading, printed on its own line as ``title:``.
    """
    if not dependents:
        return

    console = _get_console()
    if title:
        console.print(f"{escape(title)}:", style="header")

    table = Table(box=None, show_header=False, pad_edge=False)
    table.add_column(style="package", no_wrap=True)
    table.add_column(style="dim", no_wrap=True)
    table.add_column(style="requirement")

    for dependent in dependents:
        table.add_row(
            escape(dependent.package.name),
            f"v{escape(str(dependent.package.version))}",
            escape(dependent.constraint.text),
        )

    console.print(table)


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    caption: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
    row_styler: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None,
) -> None:
    """Render a list of row dicts as a Rich table.

    Cell values may contain Rich markup.

    Args:
        data: Rows; nothing is printed when empty.
        headers: Column order. Defaults to the keys of the first row.
        title: Table title.
        caption: Table caption.
        column_styles: Per-column ``style``, ``justify`` and ``no_wrap``.
        row_styler: Callback returning a style for a row, or ``None``.
    """
    if not data:
        return

    columns = headers if headers is not None else list(data[0])
    styles = column_styles or {}

    # Widen narrow tables so the title and caption stay on one line
    min_width = max(len(title or ""), len(caption or "")) or None

    table = Table(title=title, caption=caption, header_style="bold", min_width=min_width)
    for column in columns:
        options = styles.get(column, {})
        table.add_column(
            column,
            style=options.get("style"),
            justify=options.get("justify", "default"),
            no_wrap=options.get("no_wrap", False),
        )

    for row in data:
        table.add_row(
            *(str(row.get(column, "")) for column in columns),
            style=row_styler(row) if row_styler else None,
        )

    _get_console().print(table)
