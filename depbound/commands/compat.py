"""Compat command implementation for depbound.

Lists the published versions of a crate that satisfy the requirement of
every package in ``Cargo.lock`` that depends on it.

The command orchestrates three core components:

1. **LockfileParser**: reads the resolved snapshot.
2. **CratesIoDataStore**: fetches each dependent's declared requirement
   and the crate's releases, backed by the on-disk :class:`ResponseCache`.
3. **CompatibilityFinder**: combines the requirements and locates the
   matching releases.

Typical usage::

    # Five newest compatible versions of serde
    $ depbound compat serde

    # Every compatible version, yanked ones included, as JSON
    $ depbound compat serde --count all --include-yanked --format json

    # Only versions that build with Rust 1.60
    $ depbound compat tokio --max-rust-version 1.60
"""

from __future__ import annotations

import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from depbound.config import parse_count
from depbound.context import pass_context, DepBoundContext
from depbound.exceptions import ConfigError, ConflictError, DepBoundError
from depbound.models import PublishedVersion
from depbound.core import (
    CompatibilityFinder,
    CompatResult,
    CratesIoDataStore,
    LockfileParser,
    ResponseCache,
    select_versions,
)
from depbound.utils import (
    HTTPClient,
    get_logger,
    get_raw_console,
    print_dependents,
    print_error,
    print_header_and_items,
    print_table,
)

logger = get_logger("commands.compat")


@click.command()
@click.argument("dependency")
@click.option(
    "--path",
    "-p",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="DEPBOUND_LOCKFILE",
    help="Path to Cargo.lock.  [default: Cargo.lock]",
)
@click.option(
    "--include-yanked",
    "-i",
    is_flag=True,
    help="Include yanked versions.",
)
@click.option(
    "--count",
    "-n",
    default=None,
    metavar="N|all",
    help="Number of versions to list, or 'all'.  [default: 5]",
)
@click.option(
    "--max-rust-version",
    "-m",
    default=None,
    envvar="DEPBOUND_MAX_RUST_VERSION",
    help="Hide versions that require a newer Rust toolchain.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "simple", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Do not read or write the on-disk response cache.",
)
@pass_context
def compat(
    ctx: DepBoundContext,
    dependency: str,
    path: Optional[Path],
    include_yanked: bool,
    count: Optional[str],
    max_rust_version: Optional[str],
    format: str,
    no_cache: bool,
) -> None:
    """Find all versions of DEPENDENCY compatible with the lockfile.

    Every registry package in the lockfile that depends on DEPENDENCY
    contributes its declared version requirement. The command lists the
    published versions that satisfy all of them, newest first, or names
    the dependents whose requirements cannot be met together.

    Options left unset fall back to the configuration file.
    """
    config = ctx.config

    try:
        resolved_count = config.count if count is None else parse_count(count)
    except ConfigError as exc:
        raise click.BadParameter(exc.message, param_hint="'--count'") from exc

    lockfile = path if path is not None else Path(config.lockfile)
    cache = (
        ResponseCache(ttl=config.cache_ttl) if config.cache and not no_cache else None
    )

    try:
        result = asyncio.run(_compat_async(dependency, lockfile, cache))
        versions = select_versions(
            result,
            include_yanked=include_yanked or config.include_yanked,
            max_rust_version=max_rust_version or config.max_rust_version,
            count=resolved_count,
        )

    except ConflictError as e:
        if format == "json":
            _display_json_conflict(e)
        else:
            print_error(f"{e}")
            print_dependents(e.dependents, title="Dependents involved")
        sys.exit(1)
    except DepBoundError as e:
        print_error(f"{e}")
        logger.debug("Error details: %s", e.details or "<none>")
        sys.exit(1)

    # Dispatch to the appropriate renderer
    if format == "table":
        _display_table(result, versions)
    elif format == "simple":
        _display_simple(result, versions)
    else:  # json
        _display_json(result, versions)


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _compat_async(
    dependency: str,
    lockfile: Path,
    cache: Optional[ResponseCache],
) -> CompatResult:
    """Read the lockfile and run the search against crates.io.

    Raises:
        DepBoundError: Any failure along the way.
    """
    logger.info("Reading %s...", lockfile)
    packages = LockfileParser().parse_file(lockfile)
    logger.info("Found %d locked package(s)", len(packages))

    async with HTTPClient() as http:
        store = CratesIoDataStore(http, cache=cache)
        return await CompatibilityFinder(store).find(dependency, packages)


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _create_table_row(version: PublishedVersion) -> Dict[str, str]:
    return {
        "Version": str(version.number),
        "Yanked": "[red]yes[/red]" if version.yanked else "[dim]-[/dim]",
        "Min Rust": version.rust_version or "[dim]-[/dim]",
    }


def _display_table(result: CompatResult, versions: List[PublishedVersion]) -> None:
    """Render the selected versions as a Rich table.

    Example::

                 Compatible versions of serde
        ┏━━━━━━━━━━┳━━━━━━━━┳━━━━━━━━━━┓
        ┃ Version  ┃ Yanked ┃ Min Rust ┃
        ┡━━━━━━━━━━╇━━━━━━━━╇━━━━━━━━━━┩
        │ 1.0.193  │ -      │ 1.31     │
        │ 1.0.192  │ -      │ 1.31     │
        └──────────┴────────┴──────────┘
          >=1.0.100, <2.0.0 from 3 dependent(s)
    """
    column_styles: Dict[str, Dict[str, Any]] = {
        "Version": {"style": "bold cyan", "no_wrap": True},
        "Yanked": {"justify": "center"},
        "Min Rust": {"justify": "center"},
    }

    print_table(
        [_create_table_row(version) for version in versions],
        headers=["Version", "Yanked", "Min Rust"],
        title=f"Compatible versions of {result.target}",
        caption=(
            f"{result.combined.bound.to_requirement()} "
            f"from {len(result.dependents)} dependent(s)"
        ),
        column_styles=column_styles,
    )


def _display_simple(result: CompatResult, versions: List[PublishedVersion]) -> None:
    """Print a header followed by one version per line."""
    print_header_and_items(
        f"Compatible versions of {result.target}",
        (str(version.number) for version in versions),
    )


def _display_json(result: CompatResult, versions: List[PublishedVersion]) -> None:
    """Render the result as JSON for machine consumption.

    Example::

        {
          "target": "serde",
          "bound": {"lower": {...}, "upper": {...}},
          "requirement": ">=1.0.100, <2.0.0",
          "dependents": [{"name": "toml", "version": "0.8.8", "requirement": "^1.0.100"}],
          "versions": [{"version": "1.0.193", "yanked": false, "rust_version": "1.31"}]
        }
    """
    data = {
        "target": result.target,
        "bound": result.combined.bound.to_json(),
        "requirement": result.combined.bound.to_requirement(),
        "dependents": [dependent.to_json() for dependent in result.dependents],
        "versions": [version.to_json() for version in versions],
    }
    get_raw_console().print_json(json.dumps(data))


def _display_json_conflict(error: ConflictError) -> None:
    data = {
        "target": error.target,
        "error": error.message,
        "dependents": error.to_json(),
    }
    get_raw_console().print_json(json.dumps(data))
