"""
Command-line entry point for depbound.

The ``depbound`` group sets up color, logging and configuration once per
invocation and stores them in a :class:`DepBoundContext`; subcommands
such as ``compat`` read everything else from there. :func:`main` maps
failures to process exit codes.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import click

from depbound.config import DepBoundConfig, load_config
from depbound.__version__ import __version__
from depbound.context import DepBoundContext
from depbound.exceptions import ConfigError, DepBoundError
from depbound.utils.logger import get_logger, level_for_verbosity, setup_logging
from depbound.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")

#: Exit code after Ctrl+C, as a shell reports SIGINT.
EXIT_INTERRUPTED = 130


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="DEPBOUND_CONFIG",
    help="Read settings from this file instead of the discovered depbound.toml.",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Log progress to stderr (-v for info, -vv for debug).",
)
@click.option(
    "--color/--no-color",
    default=True,
    envvar="DEPBOUND_COLOR",
    help="Enable or disable colored output.",
)
@click.version_option(__version__, prog_name="depbound", message="%(prog)s %(version)s")
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: int, color: bool) -> None:
    """depbound: find the versions of a crate that all of its dependents accept.

    \b
    Examples:
      depbound compat serde
      depbound compat tokio --count all --include-yanked
      depbound -v compat log --max-rust-version 1.60

    Run ``depbound COMMAND --help`` for the options of a command.
    """
    _apply_color(color)
    setup_logging(level=level_for_verbosity(verbose), verbose=verbose > 1)

    loaded = _load_config_or_exit(config)

    state = DepBoundContext()
    state.config_path = config or loaded.source_path
    state.color = color
    state.verbose = verbose
    state.config = loaded
    ctx.obj = state

    logger.debug(
        "depbound %s (config: %s, verbosity: %d, color: %s)",
        __version__,
        state.config_path or "<defaults>",
        verbose,
        color,
    )


def _apply_color(color: bool) -> None:
    # Rich and the log formatter both read NO_COLOR
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()


def _load_config_or_exit(path: Optional[Path]) -> DepBoundConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc


from depbound.commands.compat import compat  # noqa: E402

cli.add_command(compat)


def main() -> int:
    """Run the CLI and return its exit code.

    ``0`` on success, ``1`` for depbound and unexpected errors, the Click
    exit code (``2``) for usage errors and ``130`` after an interrupt.
    """
    try:
        cli(standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except (click.exceptions.Abort, KeyboardInterrupt):
        print_warning("\nOperation cancelled by user")
        return EXIT_INTERRUPTED
    except DepBoundError as exc:
        print_error(str(exc))
        logger.debug("Error details: %s", exc.details or "<none>", exc_info=True)
        return 1
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
