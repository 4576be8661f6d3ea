"""Cargo.lock reader.

A ``Cargo.lock`` is a TOML document holding one ``[[package]]`` table per
resolved package::

    [[package]]
    name = "serde_json"
    version = "1.0.108"
    source = "registry+https://github.com/rust-lang/crates.io-index"
    dependencies = [
     "itoa",
     "serde 1.0.193",
     "ryu 1.0.15 (registry+https://github.com/rust-lang/crates.io-index)",
    ]

Only the dependency *names* are kept; the lockfile records which version
was resolved, not the requirement that produced it. Requirements are
looked up on the registry, so packages without a registry ``source``
(workspace members, path and git dependencies) cannot be examined and are
skipped by :func:`dependents_of`.

Typical usage::

    packages = LockfileParser().parse_file("Cargo.lock")
    for package in dependents_of(packages, "serde"):
        print(package.name, package.version)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import tomli as tomllib

from depbound.constants import REGISTRY_SOURCE_PREFIXES
from depbound.exceptions import ParseError
from depbound.models.dependent import PackageId
from depbound.utils.filesystem import safe_read_file
from depbound.utils.logger import get_logger

logger = get_logger("lockfile")

# Public API
__all__ = ["LockedPackage", "LockfileParser", "dependents_of"]


@dataclass(frozen=True)
class LockedPackage:
    """One ``[[package]]`` entry of a lockfile.

    Args:
        name: Package name.
        version: Resolved version.
        source: Where the package comes from, ``None`` for local packages.
        dependencies: Names of the packages it depends on.
    """

    name: str
    version: str
    source: Optional[str] = None
    dependencies: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_registry(self) -> bool:
        """True if the package was resolved from a crate registry."""
        return self.source is not None and self.source.startswith(REGISTRY_SOURCE_PREFIXES)

    @property
    def package_id(self) -> PackageId:
        return PackageId(self.name, self.version)

    def depends_on(self, name: str) -> bool:
        return name in self.dependencies


class LockfileParser:
    """Parser for ``Cargo.lock`` files.

    Example::

        >>> parser = LockfileParser()
        >>> packages = parser.parse_file("Cargo.lock")
        >>> [p.name for p in packages if p.depends_on("serde")]
        ['serde_json', 'toml']
    """

    def __init__(self) -> None:
        self.logger = get_logger("lockfile")

    def parse_file(self, file_path: Union[str, Path]) -> List[LockedPackage]:
        """Parse a lockfile from disk.

        Raises:
            FileOperationError: The file does not exist or cannot be read.
            ParseError: The file is not a valid lockfile.
        """
        path = Path(file_path)
        self.logger.debug("Parsing lockfile: %s", path)
        return self.parse_string(safe_read_file(path), source_file_path=str(path))

    def parse_string(
        self,
        content: str,
        source_file_path: Optional[str] = None,
    ) -> List[LockedPackage]:
        """Parse lockfile text.

        Args:
            content: TOML text of the lockfile.
            source_file_path: Optional path used in error messages.

        Returns:
            One :class:`LockedPackage` per ``[[package]]`` table, in file
            order.

        Raises:
            ParseError: The text is not TOML, has no ``[[package]]`` array,
                or an entry lacks its name or version.
        """
        try:
            document = tomllib.loads(content)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(
                f"Invalid lockfile: {exc}",
                line_number=getattr(exc, "lineno", None),
                file_path=source_file_path,
            ) from exc

        entries = document.get("package")
        if not isinstance(entries, list):
            raise ParseError(
                "Lockfile has no [[package]] entries",
                file_path=source_file_path,
            )

        packages = [self._build_package(entry, source_file_path) for entry in entries]
        self.logger.debug("Parsed %d package(s)", len(packages))
        return packages

    def _build_package(
        self,
        entry: Any,
        source_file_path: Optional[str],
    ) -> LockedPackage:
        if not isinstance(entry, dict):
            raise ParseError(
                "Lockfile [[package]] entry is not a table",
                line_content=repr(entry),
                file_path=source_file_path,
            )

        name = entry.get("name")
        version = entry.get("version")
        if not isinstance(name, str) or not isinstance(version, str):
            raise ParseError(
                "Lockfile package entry is missing its name or version",
                line_content=_describe_entry(entry),
                file_path=source_file_path,
            )

        source = entry.get("source")
        raw_dependencies = entry.get("dependencies", [])
        if not isinstance(raw_dependencies, list) or not all(
            isinstance(item, str) for item in raw_dependencies
        ):
            raise ParseError(
                f"Invalid dependency list for {name} {version}",
                line_content=_describe_entry(entry),
                file_path=source_file_path,
            )

        return LockedPackage(
            name=name,
            version=version,
            source=source if isinstance(source, str) else None,
            dependencies=tuple(_dependency_name(item) for item in raw_dependencies),
        )


def _dependency_name(entry: str) -> str:
    # "name", "name version" or "name version (source)"
    return entry.split(" ", 1)[0]


def _describe_entry(entry: Dict[str, Any]) -> str:
    return ", ".join(f"{key}={value!r}" for key, value in entry.items() if key != "dependencies")


def dependents_of(packages: List[LockedPackage], target: str) -> List[LockedPackage]:
    """Return the registry packages that directly depend on *target*.

    Local and git packages that depend on *target* are skipped; their
    requirements are not published anywhere depbound can read them.
    """
    result: List[LockedPackage] = []

    for package in packages:
        if not package.depends_on(target):
            continue
        if not package.is_registry:
            logger.info(
                "Skipping %s %s: not a registry package (source: %s)",
                package.name,
                package.version,
                package.source or "local",
            )
            continue
        result.append(package)

    logger.debug("Found %d registry dependent(s) of %s", len(result), target)
    return result
