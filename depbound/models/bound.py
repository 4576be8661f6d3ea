"""
Version interval data models for depbound.

A :class:`Range` is one boundary of an interval; whether it means
"at least" or "at most" depends on the role it plays inside a
:class:`Bound`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union

from semantic_version import Version


@dataclass(frozen=True)
class Range:
    """One interval boundary.

    Args:
        version: Boundary version.
        inclusive: Whether *version* itself lies inside the interval.
    """

    version: Version
    inclusive: bool

    def to_json(self) -> Dict[str, Union[str, bool]]:
        return {"version": str(self.version), "inclusive": self.inclusive}


@dataclass(frozen=True)
class Bound:
    """A version interval with explicit inclusive/exclusive endpoints.

    Args:
        lower: Lower boundary.
        upper: Upper boundary.
    """

    lower: Range
    upper: Range

    def to_requirement(self) -> str:
        """Render the interval as a requirement string.

        Example:
            >>> bound.to_requirement()
            '>=1.3.0, <1.4.0'
        """
        lower_op = ">=" if self.lower.inclusive else ">"
        upper_op = "<=" if self.upper.inclusive else "<"
        return f"{lower_op}{self.lower.version}, {upper_op}{self.upper.version}"

    def to_json(self) -> Dict[str, Dict[str, Union[str, bool]]]:
        return {"lower": self.lower.to_json(), "upper": self.upper.to_json()}

    def __str__(self) -> str:
        return self.to_requirement()
