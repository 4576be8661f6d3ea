"""
depbound: compatible version ranges for locked dependencies

depbound inspects a resolved ``Cargo.lock`` snapshot and answers one
question: which published releases of a given crate satisfy the version
requirements declared by every package that currently depends on it?

When no release fits, depbound reports exactly which dependents are
responsible, together with the requirement text each of them declares.

Public API:
    >>> from depbound import compute_combined_bound, locate_versions
"""

from __future__ import annotations

from depbound.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "depbound Contributors"
__license__ = "Apache-2.0"
__description__ = "Find the release range of a crate that all of its dependents accept."

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

from depbound.core.bound import (  # noqa: E402
    combine_bounds,
    compute_combined_bound,
    locate_versions,
    translate_constraint,
)

__all__ = [
    "__version__",
    "translate_constraint",
    "combine_bounds",
    "compute_combined_bound",
    "locate_versions",
]
