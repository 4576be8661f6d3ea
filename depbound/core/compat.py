"""Compatible-version search across a lockfile snapshot.

Ties the pieces together:

1. find the registry packages in the lockfile that depend on the target
   (:func:`~depbound.core.lockfile.dependents_of`);
2. ask a :class:`DependencyProvider` for the requirement each of them
   declares on the target (:func:`fetch_constraint`);
3. combine those requirements and locate them among the target's
   published releases (:mod:`depbound.core.bound`);
4. narrow the result for display (:func:`select_versions`).

Steps 1, 2 and the release lookup are the only I/O; the bound engine
itself runs on already fetched data.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from depbound.core.bound import CombinedBound, compute_combined_bound, locate_versions
from depbound.core.lockfile import LockedPackage, dependents_of
from depbound.models.constraint import Constraint, parse_constraint
from depbound.models.dependent import (
    DeclaredDependency,
    Dependent,
    PackageId,
    PublishedVersion,
)
from depbound.utils.logger import get_logger
from depbound.utils.version_utils import parse_rust_version
from depbound.exceptions import (
    ConstraintParseError,
    DependencyMismatchError,
    InvalidToolchainVersionError,
    NoMatchingDependentError,
    OnlyYankedVersionsError,
    UnsatisfiableToolchainVersionError,
)

logger = get_logger("compat")

# Public API
__all__ = [
    "DependencyProvider",
    "CompatResult",
    "CompatibilityFinder",
    "fetch_constraint",
    "select_versions",
]


class DependencyProvider(Protocol):
    """Source of published dependency metadata."""

    async def get_dependencies(self, name: str, version: str) -> List[DeclaredDependency]:
        ...

    async def get_versions(self, name: str) -> List[PublishedVersion]:
        ...


async def fetch_constraint(
    provider: DependencyProvider,
    dependent_id: PackageId,
    target: str,
) -> Constraint:
    """Return the requirement that *dependent_id* declares on *target*.

    Raises:
        DependencyMismatchError: The provider lists no dependency on
            *target* for that release.
        ConstraintParseError: The declared requirement is malformed.
        ProviderError: The lookup failed.
    """
    declared = await provider.get_dependencies(dependent_id.name, dependent_id.version)

    for dependency in declared:
        if dependency.matches(target):
            logger.debug("%s requires %s %s", dependent_id, target, dependency.req)
            try:
                return parse_constraint(dependency.req)
            except ConstraintParseError as exc:
                raise ConstraintParseError(
                    f"Dependent {dependent_id} declares an invalid requirement "
                    f"on {target}: {exc.message}",
                    constraint=exc.constraint,
                    package=dependent_id,
                ) from exc

    raise DependencyMismatchError(target, dependent_id)


@dataclass(frozen=True)
class CompatResult:
    """Outcome of a successful compatibility search.

    Attributes:
        target: Name of the examined crate.
        combined: Combined bound and its boundary owners.
        low: Index of the oldest compatible release in :attr:`versions`.
        high: Index of the newest compatible release in :attr:`versions`.
        versions: Every published release, sorted ascending.
    """

    target: str
    combined: CombinedBound
    low: int
    high: int
    versions: Tuple[PublishedVersion, ...]

    @property
    def dependents(self) -> Tuple[Dependent, ...]:
        return self.combined.dependents

    def candidates(self) -> List[PublishedVersion]:
        """Compatible releases, newest first."""
        return list(reversed(self.versions[self.low : self.high + 1]))


class CompatibilityFinder:
    """Find the releases of a crate that every dependent in a lockfile accepts.

    Args:
        provider: Registry metadata source.

    Example::

        >>> finder = CompatibilityFinder(store)
        >>> result = await finder.find("serde", LockfileParser().parse_file("Cargo.lock"))
        >>> [str(v) for v in result.candidates()[:2]]
        ['1.0.193', '1.0.192']
    """

    def __init__(self, provider: DependencyProvider) -> None:
        self.provider = provider

    async def collect_dependents(
        self,
        target: str,
        packages: Sequence[LockedPackage],
    ) -> List[Dependent]:
        """Fetch the requirement of every lockfile dependent of *target*.

        Raises:
            NoMatchingDependentError: No registry package depends on *target*.
        """
        locked = dependents_of(list(packages), target)
        if not locked:
            raise NoMatchingDependentError(target)

        results = await asyncio.gather(
            *(fetch_constraint(self.provider, package.package_id, target) for package in locked),
            return_exceptions=True,
        )
        return self._process_constraint_results(locked, results)

    def _process_constraint_results(
        self,
        locked: List[LockedPackage],
        results: List[Any],
    ) -> List[Dependent]:
        """Pair gathered requirements with their dependents.

        The first failure in snapshot order is re-raised, whichever lookup
        finished first.
        """
        dependents: List[Dependent] = []

        for package, result in zip(locked, results):
            if isinstance(result, BaseException):
                logger.debug("Requirement lookup for %s failed: %s", package.package_id, result)
                raise result
            dependents.append(Dependent(package=package.package_id, constraint=result))

        return dependents

    async def find(self, target: str, packages: Sequence[LockedPackage]) -> CompatResult:
        """Compute the compatible release range of *target*.

        Raises:
            NoMatchingDependentError: Nothing in *packages* depends on *target*.
            DependencyMismatchError: The registry disagrees with the lockfile.
            ConflictError: The dependents' requirements cannot all be met.
            ProviderError: A registry lookup failed.
        """
        dependents = await self.collect_dependents(target, packages)
        combined = compute_combined_bound(dependents, target)

        published = await self.provider.get_versions(target)
        versions = tuple(sorted(published, key=lambda version: version.sort_key))

        low, high = locate_versions(combined, versions)
        logger.debug(
            "%d of %d release(s) of %s satisfy %s",
            high - low + 1,
            len(versions),
            target,
            combined.bound,
        )

        return CompatResult(
            target=target,
            combined=combined,
            low=low,
            high=high,
            versions=versions,
        )


def select_versions(
    result: CompatResult,
    include_yanked: bool = False,
    max_rust_version: Optional[str] = None,
    count: Optional[int] = None,
) -> List[PublishedVersion]:
    """Narrow the compatible releases of *result* for display.

    Args:
        result: A successful :meth:`CompatibilityFinder.find` result.
        include_yanked: Keep yanked releases.
        max_rust_version: Drop releases that declare a higher minimum Rust
            version. Releases whose declaration cannot be parsed are kept.
        count: Maximum number of releases to return; ``None`` for all.

    Returns:
        Releases newest first.

    Raises:
        OnlyYankedVersionsError: Every compatible release is yanked.
        InvalidToolchainVersionError: *max_rust_version* is not a version.
        UnsatisfiableToolchainVersionError: No remaining release supports
            *max_rust_version*.
    """
    selected = [
        version for version in result.candidates() if include_yanked or not version.yanked
    ]
    if not selected:
        raise OnlyYankedVersionsError(result.target)

    if max_rust_version is not None:
        limit = parse_rust_version(max_rust_version)
        if limit is None:
            raise InvalidToolchainVersionError(max_rust_version)

        selected = [version for version in selected if _supports_toolchain(version, limit)]
        if not selected:
            raise UnsatisfiableToolchainVersionError(max_rust_version)

    return selected if count is None else selected[:count]


def _supports_toolchain(version: PublishedVersion, limit) -> bool:
    required = parse_rust_version(version.rust_version)
    return required is None or required <= limit
