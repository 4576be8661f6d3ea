"""
Shared context object for depbound CLI commands.

The group callback builds one :class:`DepBoundContext` per invocation and
hands it to subcommands through Click's context mechanism.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from depbound.config import DepBoundConfig


class DepBoundContext:
    """Global context object for depbound CLI commands.

    Attributes:
        config_path: Path to the depbound configuration file, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Loaded configuration (defaults when no file was found).
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: DepBoundConfig = DepBoundConfig()


#: Click decorator for injecting :class:`DepBoundContext` into commands.
pass_context = click.make_pass_decorator(DepBoundContext, ensure=True)
