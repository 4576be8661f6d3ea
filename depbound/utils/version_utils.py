"""
Version comparison utilities for depbound.

Registry versions follow Semantic Versioning and are handled with
``semantic_version``; comparisons always go through *precedence*, which
ignores build metadata. Rust toolchain versions (``rust-version`` fields)
are looser dotted numbers and are handled with ``packaging``.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from packaging.version import InvalidVersion, Version as ToolchainVersion
from semantic_version import Version

from depbound.constants import MAX_VERSION_COMPONENT

#: Smallest boundary version (0.0.0, no prerelease).
MIN_VERSION: Version = Version(major=0, minor=0, patch=0, prerelease=(), build=())

#: Largest boundary version (u64::MAX in every component, no prerelease).
MAX_VERSION: Version = Version(
    major=MAX_VERSION_COMPONENT,
    minor=MAX_VERSION_COMPONENT,
    patch=MAX_VERSION_COMPONENT,
    prerelease=(),
    build=(),
)


def precedence_key(version: Version) -> Tuple[Any, ...]:
    """Return the SemVer precedence sort key of *version*.

    Two versions that differ only in build metadata share the same key.

    Examples:
        >>> precedence_key(Version("1.0.0+a")) == precedence_key(Version("1.0.0+b"))
        True
        >>> precedence_key(Version("1.0.0-rc.1")) < precedence_key(Version("1.0.0"))
        True
    """
    # semantic_version appends the build identifiers as a fifth element
    return version.precedence_key[:4]


def compare_precedence(a: Version, b: Version) -> int:
    """Three-way comparison of two versions by precedence (-1, 0 or 1)."""
    key_a = precedence_key(a)
    key_b = precedence_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def make_version(
    major: int,
    minor: int = 0,
    patch: int = 0,
    prerelease: Tuple[str, ...] = (),
) -> Version:
    """Build a full (non-partial) version without build metadata."""
    return Version(
        major=major,
        minor=minor,
        patch=patch,
        prerelease=tuple(prerelease),
        build=(),
    )


def parse_rust_version(value: Optional[str]) -> Optional[ToolchainVersion]:
    """Parse a Rust toolchain version such as ``"1.70"`` or ``"1.56.1"``.

    Missing components compare as zero, so ``"1.70"`` equals ``"1.70.0"``.

    Returns:
        The parsed version, or ``None`` when *value* is empty or invalid.

    Examples:
        >>> parse_rust_version("1.70") == parse_rust_version("1.70.0")
        True
        >>> parse_rust_version("latest") is None
        True
    """
    if not value:
        return None
    try:
        parsed = ToolchainVersion(value.strip())
    except InvalidVersion:
        return None
    if parsed.is_prerelease or parsed.is_devrelease or parsed.local:
        return None
    return parsed
