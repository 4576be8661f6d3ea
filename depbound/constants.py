"""
Centralized constants for depbound.

This module defines immutable configuration values used across depbound,
including registry endpoints, network settings, cache policy, version
limits, and logging formats. All values are intended to be treated as
read-only.
"""

from typing import Final, Tuple

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests. crates.io rejects
#: requests without a descriptive agent.
USER_AGENT_TEMPLATE: Final[str] = "depbound/{version} (dependency compatibility checker)"

# ---------------------------------------------------------------------------
# crates.io endpoints
# ---------------------------------------------------------------------------

#: Crate metadata, including every published version.
CRATES_IO_CRATE_API: Final[str] = "https://crates.io/api/v1/crates/{crate}"

#: Declared dependencies of one published version.
CRATES_IO_DEPENDENCIES_API: Final[str] = (
    "https://crates.io/api/v1/crates/{crate}/{version}/dependencies"
)

#: Source prefixes of lockfile packages that are published on a registry.
REGISTRY_SOURCE_PREFIXES: Final[Tuple[str, ...]] = ("registry+", "sparse+")

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Minimum delay between requests (crates.io crawler policy: 1 req/s).
DEFAULT_RATE_LIMIT_DELAY: Final[float] = 1.0

# ---------------------------------------------------------------------------
# Cache configuration
# ---------------------------------------------------------------------------

#: Age in seconds after which a cached registry response is refetched.
DEFAULT_CACHE_TTL: Final[int] = 60 * 60 * 24 * 7  # 1 week

#: Directory name (under the user data directory) holding cached responses.
CACHE_DIR_TEMPLATE: Final[str] = "depbound-{version}"

# ---------------------------------------------------------------------------
# Version limits
# ---------------------------------------------------------------------------

#: Largest component value a registry version may carry (u64).
MAX_VERSION_COMPONENT: Final[int] = 2**64 - 1

# ---------------------------------------------------------------------------
# CLI defaults
# ---------------------------------------------------------------------------

#: Default lockfile path.
DEFAULT_LOCKFILE: Final[str] = "Cargo.lock"

#: Number of versions listed when ``--count`` is not given.
DEFAULT_COUNT: Final[int] = 5

#: Whether yanked releases are listed by default.
DEFAULT_INCLUDE_YANKED: Final[bool] = False

#: Whether the on-disk response cache is used by default.
DEFAULT_USE_CACHE: Final[bool] = True

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading lockfiles.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
