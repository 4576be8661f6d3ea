"""
Utility helpers for depbound.

This package provides reusable utilities used across depbound, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Async HTTP client utilities
- Version comparison helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from depbound.utils.filesystem import (
    get_data_dir,
    safe_read_file,
    safe_write_file,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from depbound.utils.logger import (
    disable_logging,
    level_for_verbosity,
    get_logger,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from depbound.utils.console import (
    get_raw_console,
    print_dependents,
    print_error,
    print_header_and_items,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from depbound.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from depbound.utils.version_utils import (
    MAX_VERSION,
    MIN_VERSION,
    compare_precedence,
    parse_rust_version,
    precedence_key,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_dependents",
    "print_error",
    "print_table",
    "print_warning",
    "print_header_and_items",
    "get_raw_console",
    "reconfigure_console",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "level_for_verbosity",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "get_data_dir",
    # HTTP
    "HTTPClient",
    # Version utilities
    "MIN_VERSION",
    "MAX_VERSION",
    "compare_precedence",
    "parse_rust_version",
    "precedence_key",
]
