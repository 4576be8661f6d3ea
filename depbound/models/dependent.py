"""
Dependency graph data models for depbound.

These are the records exchanged between the lockfile reader, the
registry provider and the bound engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from semantic_version import Version

from depbound.models.constraint import Constraint
from depbound.utils.version_utils import precedence_key


def _normalize_name(name: str) -> str:
    """Normalize a crate name the way crates.io does for lookups.

    crates.io treats ``-`` and ``_`` as equivalent and ignores case.
    """
    return name.lower().replace("_", "-")


@dataclass(frozen=True)
class PackageId:
    """Identity of one package in the snapshot.

    Args:
        name: Crate name as written in the lockfile.
        version: Exact locked version string.
    """

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"


@dataclass(frozen=True)
class Dependent:
    """A snapshot package together with its requirement on the target.

    Args:
        package: Identity of the depending package.
        constraint: Its declared requirement on the target.
    """

    package: PackageId
    constraint: Constraint

    def to_display_string(self) -> str:
        """Return a human-readable description of the requirement."""
        return f"{self.package} requires {self.constraint.text}"

    def to_json(self) -> Dict[str, str]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.package.name,
            "version": self.package.version,
            "requirement": self.constraint.text,
        }

    def __str__(self) -> str:
        return self.to_display_string()


@dataclass(frozen=True)
class DeclaredDependency:
    """One dependency as declared by a published package version.

    Args:
        crate_id: Name of the depended-upon crate.
        req: Requirement string, e.g. ``"^1.0"``.
        kind: ``"normal"``, ``"build"`` or ``"dev"``.
        optional: Whether the dependency is behind a feature.
    """

    crate_id: str
    req: str
    kind: str = "normal"
    optional: bool = False

    def matches(self, name: str) -> bool:
        """Return True if this dependency targets crate *name*."""
        return _normalize_name(self.crate_id) == _normalize_name(name)


@dataclass(frozen=True)
class PublishedVersion:
    """One published release of the target crate.

    Sort by :attr:`sort_key`, the precedence of :attr:`number` (build
    metadata ignored).

    Args:
        number: Release version.
        yanked: Whether the release has been yanked.
        rust_version: Declared minimum supported Rust version, if any.
    """

    number: Version
    yanked: bool = False
    rust_version: Optional[str] = None

    _key: Tuple[Any, ...] = field(init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_key", precedence_key(self.number))

    @property
    def sort_key(self) -> Tuple[Any, ...]:
        return self._key

    def to_json(self) -> Dict[str, Any]:
        return {
            "version": str(self.number),
            "yanked": self.yanked,
            "rust_version": self.rust_version,
        }

    def __str__(self) -> str:
        return str(self.number)
