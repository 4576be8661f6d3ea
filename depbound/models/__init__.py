"""
Unified data model exports for depbound.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``depbound.models`` instead of individual submodules.

Example:
    >>> from depbound.models import Bound, Dependent, parse_constraint
"""

from __future__ import annotations

from depbound.models.bound import Bound, Range
from depbound.models.constraint import Comparator, Constraint, Op, parse_constraint
from depbound.models.dependent import (
    DeclaredDependency,
    Dependent,
    PackageId,
    PublishedVersion,
)

__all__ = [
    "Bound",
    "Range",
    "Comparator",
    "Constraint",
    "Op",
    "parse_constraint",
    "DeclaredDependency",
    "Dependent",
    "PackageId",
    "PublishedVersion",
]
