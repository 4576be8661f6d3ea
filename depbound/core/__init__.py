"""
Core functionality exports for depbound.

This module provides convenient access to the core subsystems of depbound.
Importing from here keeps user-facing imports clean and stable:

    from depbound.core import CompatibilityFinder, LockfileParser
"""

from __future__ import annotations

from depbound.core.cache import ResponseCache
from depbound.core.data_store import CratesIoDataStore
from depbound.core.lockfile import LockedPackage, LockfileParser, dependents_of
from depbound.core.bound import (
    CombinedBound,
    combine_bounds,
    compute_combined_bound,
    locate_versions,
    translate_constraint,
)
from depbound.core.compat import (
    CompatibilityFinder,
    CompatResult,
    DependencyProvider,
    fetch_constraint,
    select_versions,
)

__all__ = [
    "LockfileParser",
    "LockedPackage",
    "dependents_of",
    "ResponseCache",
    "CratesIoDataStore",
    "CombinedBound",
    "translate_constraint",
    "combine_bounds",
    "compute_combined_bound",
    "locate_versions",
    "DependencyProvider",
    "CompatibilityFinder",
    "CompatResult",
    "fetch_constraint",
    "select_versions",
]
