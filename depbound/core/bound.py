"""Version bound engine for depbound.

Combines the requirements that every direct dependent declares on one
target crate into a single interval, then maps that interval onto the
crate's published releases.

The engine is a pure, synchronous computation over already fetched data:

1. **Translate**: each comparator becomes a :class:`~depbound.models.Bound`;
   the comparators of one requirement are intersected
   (:func:`translate_constraint`).
2. **Combine**: the bounds of all dependents are folded into one while
   remembering which dependent last tightened each boundary
   (:func:`compute_combined_bound`).
3. **Attribute**: an empty intersection is reported with the dependents
   responsible for it, never as a bare failure.
4. **Locate**: the combined interval is mapped onto an inclusive index
   range of the sorted release list (:func:`locate_versions`).

It does not take disjoint requirement sets into account (two dependents
that use two semver-incompatible copies of the crate are reported as
incompatible), and it never proposes moving other dependents to a
different version.

Typical usage::

    combined = compute_combined_bound(dependents, target="serde")
    low, high = locate_versions(combined, sorted_versions)
    compatible = sorted_versions[low : high + 1]
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from depbound.models.bound import Bound, Range
from depbound.models.constraint import Comparator, Constraint, Op
from depbound.models.dependent import Dependent, PackageId, PublishedVersion
from depbound.utils.logger import get_logger
from depbound.utils.version_utils import (
    MAX_VERSION,
    MIN_VERSION,
    compare_precedence,
    make_version,
    precedence_key,
)
from depbound.exceptions import (
    ConflictError,
    EmptyConstraintError,
    MultiDependentsUnsatisfiableError,
    NoMatchingDependentError,
    NonOverlappingBoundsError,
    PairwiseDependentsUnsatisfiableError,
    SingleDependentUnsatisfiableError,
    UnsupportedOperatorError,
)

logger = get_logger("bound")

# Public API
__all__ = [
    "CombinedBound",
    "bound_from_comparator",
    "translate_constraint",
    "tighter_lower",
    "tighter_upper",
    "is_empty",
    "combine_bounds",
    "compute_combined_bound",
    "version_index_range",
    "locate_versions",
]


# ---------------------------------------------------------------------------
# Constraint-to-bound translation
# ---------------------------------------------------------------------------


def _own_version(comparator: Comparator) -> Range:
    """Inclusive boundary at the comparator's own (zero-filled) version."""
    return Range(
        make_version(
            comparator.major,
            comparator.minor or 0,
            comparator.patch or 0,
            comparator.prerelease,
        ),
        True,
    )


def _exclusive_own_version(comparator: Comparator) -> Range:
    return Range(_own_version(comparator).version, False)


_MIN = Range(MIN_VERSION, True)
_MAX = Range(MAX_VERSION, True)


def _caret(comparator: Comparator) -> Bound:
    return Bound(
        lower=_own_version(comparator),
        upper=Range(make_version(comparator.major + 1), False),
    )


def _tilde(comparator: Comparator) -> Bound:
    return Bound(
        lower=_own_version(comparator),
        upper=Range(make_version(comparator.major, (comparator.minor or 0) + 1), False),
    )


def _exact(comparator: Comparator) -> Bound:
    return Bound(lower=_own_version(comparator), upper=_own_version(comparator))


def _greater(comparator: Comparator) -> Bound:
    return Bound(lower=_exclusive_own_version(comparator), upper=_MAX)


def _greater_eq(comparator: Comparator) -> Bound:
    return Bound(lower=_own_version(comparator), upper=_MAX)


def _less(comparator: Comparator) -> Bound:
    return Bound(lower=_MIN, upper=_exclusive_own_version(comparator))


def _less_eq(comparator: Comparator) -> Bound:
    return Bound(lower=_MIN, upper=_own_version(comparator))


def _wildcard(comparator: Comparator) -> Bound:
    return Bound(lower=_MIN, upper=_MAX)


_TRANSLATORS: Dict[str, Callable[[Comparator], Bound]] = {
    Op.CARET: _caret,
    Op.TILDE: _tilde,
    Op.EXACT: _exact,
    Op.GREATER: _greater,
    Op.GREATER_EQ: _greater_eq,
    Op.LESS: _less,
    Op.LESS_EQ: _less_eq,
    Op.WILDCARD: _wildcard,
}


def bound_from_comparator(
    comparator: Comparator,
    package: Optional[PackageId] = None,
) -> Bound:
    """Translate one comparator into the interval it admits.

    Missing minor/patch components count as ``0``. The comparator's
    prerelease is kept on the boundary derived from its own version; the
    bumped upper boundaries of ``^`` and ``~`` never carry one.

    Raises:
        UnsupportedOperatorError: The operator is not one of
            ``^ ~ = > >= < <= *``.

    Examples:
        >>> str(bound_from_comparator(parse_constraint("^1.2").comparators[0]))
        '>=1.2.0, <2.0.0'
        >>> str(bound_from_comparator(parse_constraint("~1.2.3").comparators[0]))
        '>=1.2.3, <1.3.0'
    """
    translator = _TRANSLATORS.get(comparator.op)
    if translator is None:
        raise UnsupportedOperatorError(comparator, package)
    return translator(comparator)


def translate_constraint(
    constraint: Constraint,
    package: Optional[PackageId] = None,
) -> Bound:
    """Intersect all comparators of one requirement into a single bound.

    Args:
        constraint: The requirement to translate.
        package: Owner of the requirement, used only to attribute errors.

    Raises:
        EmptyConstraintError: The requirement has no comparators.
        NonOverlappingBoundsError: The comparators contradict each other.
        UnsupportedOperatorError: A comparator uses an unknown operator.
    """
    if not constraint.comparators:
        raise EmptyConstraintError(package)

    first, *rest = constraint.comparators
    accumulated = bound_from_comparator(first, package)

    for comparator in rest:
        merged = _intersect(accumulated, bound_from_comparator(comparator, package))
        if merged is None:
            raise NonOverlappingBoundsError(constraint.text, package)
        accumulated = merged

    return accumulated


# ---------------------------------------------------------------------------
# Boundary tightening
#
# On equal versions the exclusive boundary is the tighter one in both roles.
# ---------------------------------------------------------------------------


def _tightens_lower(current: Range, candidate: Range) -> bool:
    order = compare_precedence(candidate.version, current.version)
    if order != 0:
        return order > 0
    return current.inclusive and not candidate.inclusive


def _tightens_upper(current: Range, candidate: Range) -> bool:
    order = compare_precedence(candidate.version, current.version)
    if order != 0:
        return order < 0
    return current.inclusive and not candidate.inclusive


def tighter_lower(a: Range, b: Range) -> Range:
    """Return the more restrictive of two lower boundaries (``a`` on a tie)."""
    return b if _tightens_lower(a, b) else a


def tighter_upper(a: Range, b: Range) -> Range:
    """Return the more restrictive of two upper boundaries (``a`` on a tie)."""
    return b if _tightens_upper(a, b) else a


def is_empty(bound: Bound) -> bool:
    """Return True if no version can satisfy *bound*.

    Equal boundary versions leave a single admissible version only when
    both sides are inclusive.
    """
    order = compare_precedence(bound.lower.version, bound.upper.version)
    if order != 0:
        return order > 0
    return not (bound.lower.inclusive and bound.upper.inclusive)


def _intersect(a: Bound, b: Bound) -> Optional[Bound]:
    merged = Bound(
        lower=tighter_lower(a.lower, b.lower),
        upper=tighter_upper(a.upper, b.upper),
    )
    return None if is_empty(merged) else merged


def combine_bounds(a: Bound, b: Bound) -> Bound:
    """Intersect two bounds.

    Raises:
        NonOverlappingBoundsError: The intersection is empty.
    """
    merged = _intersect(a, b)
    if merged is None:
        raise NonOverlappingBoundsError(f"{a.to_requirement()}, {b.to_requirement()}")
    return merged


# ---------------------------------------------------------------------------
# Folding across dependents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CombinedBound:
    """Intersection of every dependent's requirement on one target.

    Attributes:
        target: Name of the constrained crate.
        bound: The combined (non-empty) interval.
        dependents: Dependents in fold order.
        lower_index: Index of the dependent that owns ``bound.lower``.
        upper_index: Index of the dependent that owns ``bound.upper``.
    """

    target: str
    bound: Bound
    dependents: Tuple[Dependent, ...]
    lower_index: int
    upper_index: int

    @property
    def lower_owner(self) -> Dependent:
        return self.dependents[self.lower_index]

    @property
    def upper_owner(self) -> Dependent:
        return self.dependents[self.upper_index]


def compute_combined_bound(
    dependents: Sequence[Dependent],
    target: str,
) -> CombinedBound:
    """Fold all dependents' requirements into one interval.

    The fold keeps, next to the accumulated interval, the index of the
    last dependent that tightened each boundary. It stops at the first
    dependent whose requirement empties the interval.

    Args:
        dependents: Direct dependents of *target*, in snapshot order.
        target: Name of the constrained crate (used in diagnostics).

    Returns:
        The combined bound and its boundary owners.

    Raises:
        NoMatchingDependentError: *dependents* is empty.
        EmptyConstraintError: A dependent declares an empty requirement.
        NonOverlappingBoundsError: A dependent's requirement contradicts
            itself.
        UnsupportedOperatorError: A requirement uses an unknown operator.
        PairwiseDependentsUnsatisfiableError: The new dependent clashes
            with exactly one earlier dependent.
        MultiDependentsUnsatisfiableError: The new dependent clashes with
            several earlier dependents.
    """
    if not dependents:
        raise NoMatchingDependentError(target)

    bounds = [
        translate_constraint(dependent.constraint, package=dependent.package)
        for dependent in dependents
    ]

    lower, upper = bounds[0].lower, bounds[0].upper
    lower_index = upper_index = 0

    for index in range(1, len(bounds)):
        candidate = bounds[index]

        if _tightens_lower(lower, candidate.lower):
            lower, lower_index = candidate.lower, index
        if _tightens_upper(upper, candidate.upper):
            upper, upper_index = candidate.upper, index

        if is_empty(Bound(lower, upper)):
            logger.debug(
                "%s empties the bound on %s",
                dependents[index].package,
                target,
            )
            raise _attribute_fold_conflict(target, dependents, bounds, index)

    combined = CombinedBound(
        target=target,
        bound=Bound(lower, upper),
        dependents=tuple(dependents),
        lower_index=lower_index,
        upper_index=upper_index,
    )
    logger.debug(
        "Combined bound on %s: %s (lower from %s, upper from %s)",
        target,
        combined.bound,
        combined.lower_owner.package,
        combined.upper_owner.package,
    )
    return combined


# ---------------------------------------------------------------------------
# Conflict attribution
# ---------------------------------------------------------------------------


def _attribute_fold_conflict(
    target: str,
    dependents: Sequence[Dependent],
    bounds: Sequence[Bound],
    index: int,
) -> ConflictError:
    """Name every earlier dependent that the dependent at *index* excludes."""
    new = bounds[index]
    conflicting: List[Tuple[Dependent, bool]] = []

    for position in range(index):
        other = bounds[position]
        # other's lower lies above new's upper -> other owns the lower side
        above = is_empty(Bound(other.lower, new.upper))
        below = is_empty(Bound(new.lower, other.upper))
        if above or below:
            conflicting.append((dependents[position], above))

    if len(conflicting) == 1:
        other_dependent, other_is_lower = conflicting[0]
        if other_is_lower:
            lower, upper = other_dependent, dependents[index]
        else:
            lower, upper = dependents[index], other_dependent
        return PairwiseDependentsUnsatisfiableError(target=target, lower=lower, upper=upper)

    return MultiDependentsUnsatisfiableError(
        target=target,
        dependent=dependents[index],
        conflicting=[dependent for dependent, _ in conflicting],
    )


def _attribute_unreleased(combined: CombinedBound) -> ConflictError:
    """Explain a valid bound that no published release falls into."""
    if combined.lower_index == combined.upper_index:
        return SingleDependentUnsatisfiableError(
            target=combined.target,
            dependent=combined.lower_owner,
        )
    return PairwiseDependentsUnsatisfiableError(
        target=combined.target,
        lower=combined.lower_owner,
        upper=combined.upper_owner,
        unreleased=True,
    )


# ---------------------------------------------------------------------------
# Concrete version location
# ---------------------------------------------------------------------------


def version_index_range(
    bound: Bound,
    published: Sequence[PublishedVersion],
) -> Tuple[int, int]:
    """Map *bound* onto an inclusive index range of *published*.

    *published* must be sorted ascending by precedence. The result is
    degenerate (``low > high``) when no entry lies in the interval; the
    upper index is ``-1`` when every entry lies above it.

    Examples:
        >>> version_index_range(bound, versions)  # [1.2.0, 1.3.0, 1.3.5, 1.4.0]
        (1, 2)
    """
    keys = [version.sort_key for version in published]

    # Releases differing only in build metadata share a key
    lower_key = precedence_key(bound.lower.version)
    if bound.lower.inclusive:
        low = bisect_left(keys, lower_key)
    else:
        low = bisect_right(keys, lower_key)

    upper_key = precedence_key(bound.upper.version)
    if bound.upper.inclusive:
        high = bisect_right(keys, upper_key) - 1
    else:
        high = bisect_left(keys, upper_key) - 1

    return low, high


def locate_versions(
    combined: CombinedBound,
    published: Sequence[PublishedVersion],
) -> Tuple[int, int]:
    """Find the published releases that satisfy every dependent.

    Args:
        combined: Result of :func:`compute_combined_bound`.
        published: Releases of the target, sorted ascending.

    Returns:
        Inclusive ``(low, high)`` indices into *published*.

    Raises:
        SingleDependentUnsatisfiableError: The bound comes from a single
            dependent and no release satisfies it.
        PairwiseDependentsUnsatisfiableError: The lower and upper owners
            overlap, but no release lies in the overlap.
    """
    low, high = version_index_range(combined.bound, published)
    if low > high:
        raise _attribute_unreleased(combined)
    return low, high
