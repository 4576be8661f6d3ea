"""
Version requirement data models for depbound.

A :class:`Constraint` is the requirement one dependent declares on the
target crate, e.g. ``">=1.2, <1.5"``. It is a conjunction of
:class:`Comparator` atoms, each an operator plus a possibly partial
version. Parsing follows Cargo's requirement grammar:

- ``^1.2.3``, ``~1.2``, ``=1.2.3``, ``>1``, ``>=1.2``, ``<2``, ``<=2.1``
- ``*``, ``1.*``, ``1.2.x`` (wildcards)
- a bare version such as ``1.2`` means ``^1.2``
- comparators are separated by commas

Operator tokens outside that grammar are kept verbatim so that the
bound translator can report them precisely.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from semantic_version import Version

from depbound.exceptions import ConstraintParseError


class Op:
    """Comparator operator tokens."""

    CARET = "^"
    TILDE = "~"
    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    WILDCARD = "*"


_WILDCARDS = frozenset({"*", "x", "X"})

# operator prefix, then the version text
_COMPARATOR_RE = re.compile(r"^(?P<op>[^\w*]*)\s*(?P<version>.*)$")

_VERSION_RE = re.compile(
    r"^(?P<major>\d+|[*xX])"
    r"(?:\.(?P<minor>\d+|[*xX])"
    r"(?:\.(?P<patch>\d+|[*xX]))?)?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


@dataclass(frozen=True)
class Comparator:
    """One operator + version atom of a requirement.

    Args:
        op: Operator token (see :class:`Op`).
        major: Major version; ``0`` for a bare ``*``.
        minor: Minor version, ``None`` when omitted.
        patch: Patch version, ``None`` when omitted.
        prerelease: Prerelease identifiers, carried into the bound.
        text: The comparator as written.
    """

    op: str
    major: int = 0
    minor: Optional[int] = None
    patch: Optional[int] = None
    prerelease: Tuple[str, ...] = ()
    text: str = ""

    def __str__(self) -> str:
        return self.text or self.op


@dataclass(frozen=True)
class Constraint:
    """A conjunction of comparators declared by one dependent.

    Args:
        comparators: Comparators, all of which must hold.
        text: The original requirement string.
    """

    comparators: Tuple[Comparator, ...] = field(default_factory=tuple)
    text: str = ""

    def __len__(self) -> int:
        return len(self.comparators)

    def __str__(self) -> str:
        return self.text


def parse_constraint(text: str) -> Constraint:
    """Parse a Cargo-style requirement string.

    Args:
        text: Requirement such as ``"^1.2"`` or ``">=1.0, <2"``. An empty
            string yields a constraint with no comparators.

    Returns:
        The parsed :class:`Constraint`.

    Raises:
        ConstraintParseError: A comparator's version is malformed.

    Examples:
        >>> [c.op for c in parse_constraint(">=1.2, <1.5").comparators]
        ['>=', '<']
        >>> parse_constraint("1.2").comparators[0].op
        '^'
    """
    stripped = text.strip()
    if not stripped:
        return Constraint(comparators=(), text=text)

    comparators: List[Comparator] = []
    for part in stripped.split(","):
        part = part.strip()
        if not part:
            raise ConstraintParseError(
                f"Empty comparator in requirement {text!r}",
                constraint=text,
            )
        comparators.append(_parse_comparator(part, text))

    return Constraint(comparators=tuple(comparators), text=stripped)


def _parse_comparator(part: str, full_text: str) -> Comparator:
    """Split one comparator into operator and partial version."""
    match = _COMPARATOR_RE.match(part)
    if match is None:  # pragma: no cover - the pattern matches any string
        raise ConstraintParseError(f"Invalid comparator {part!r}", constraint=full_text)

    op = match.group("op").strip()
    version_text = match.group("version").strip()

    if not version_text:
        raise ConstraintParseError(
            f"Comparator {part!r} has no version",
            constraint=full_text,
        )

    version = _VERSION_RE.match(version_text)
    if version is None:
        raise ConstraintParseError(
            f"Invalid version {version_text!r} in requirement {full_text!r}",
            constraint=full_text,
        )

    components = [version.group(name) for name in ("major", "minor", "patch")]
    wildcard_at = next(
        (index for index, value in enumerate(components) if value in _WILDCARDS),
        None,
    )

    if wildcard_at is not None:
        # Components after a wildcard must also be wildcards or absent
        if any(value is not None and value not in _WILDCARDS for value in components[wildcard_at:]):
            raise ConstraintParseError(
                f"Invalid wildcard version {version_text!r}",
                constraint=full_text,
            )
        if op and op != Op.EXACT:
            raise ConstraintParseError(
                f"Wildcard version {version_text!r} cannot be combined with {op!r}",
                constraint=full_text,
            )
        numbers = [int(value) for value in components[:wildcard_at]]
        numbers += [None] * (3 - len(numbers))
        return Comparator(
            op=Op.WILDCARD,
            major=numbers[0] or 0,
            minor=numbers[1],
            patch=numbers[2],
            text=part,
        )

    major, minor, patch = (int(value) if value is not None else None for value in components)
    prerelease = tuple(version.group("pre").split(".")) if version.group("pre") else ()

    if prerelease:
        # Delegate identifier validation (e.g. leading zeroes) to semantic_version
        try:
            Version(major=major, minor=minor or 0, patch=patch or 0, prerelease=prerelease)
        except ValueError as exc:
            raise ConstraintParseError(
                f"Invalid prerelease in {version_text!r}: {exc}",
                constraint=full_text,
            ) from exc

    return Comparator(
        op=op or Op.CARET,
        major=major,
        minor=minor,
        patch=patch,
        prerelease=prerelease,
        text=part,
    )
