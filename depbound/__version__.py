"""
depbound version information.

This module provides a single source of truth for the package version.
It follows Semantic Versioning: https://semver.org/

Version format:
    MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]
"""

from __future__ import annotations

from semantic_version import Version

# ---------------------------------------------------------------------------
# Main version (single source of truth)
# ---------------------------------------------------------------------------

__version__ = "0.1.0"


# ---------------------------------------------------------------------------
# Structured version metadata
# ---------------------------------------------------------------------------

_parsed = Version(__version__)

VERSION_INFO = {
    "major": _parsed.major,
    "minor": _parsed.minor,
    "patch": _parsed.patch,
    "prerelease": ".".join(_parsed.prerelease) or None,
}


# ---------------------------------------------------------------------------
# Human-readable version (for CLI)
# ---------------------------------------------------------------------------

VERSION_STRING = f"depbound {__version__}"
