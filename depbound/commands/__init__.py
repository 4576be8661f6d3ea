"""CLI subcommands for depbound."""

from __future__ import annotations

from depbound.commands.compat import compat

__all__ = ["compat"]
