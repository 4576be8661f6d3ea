"""
Custom exception hierarchy for depbound.

This module defines structured exception types used across depbound.
All exceptions inherit from :class:`DepBoundError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.

The conflict errors (:class:`ConflictError` and subclasses) always carry
the identity and the original requirement text of every dependent they
implicate; they are never raised as a bare "no solution" flag.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Mapping, MutableMapping, Optional, Sequence

if TYPE_CHECKING:
    from depbound.models.constraint import Comparator
    from depbound.models.dependent import Dependent, PackageId


class DepBoundError(Exception):
    """Base exception for all depbound errors.

    All depbound-specific exceptions should inherit from this class.
    It supports structured metadata via ``details`` for richer error
    reporting and debugging.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class ParseError(DepBoundError):
    """Raised when a lockfile cannot be parsed.

    Args:
        message: Error description.
        line_number: Line number where parsing failed.
        line_content: Raw content of the problematic entry.
        file_path: Path to the file being parsed.
    """

    __slots__ = ("line_number", "line_content", "file_path")

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "line", line_number)
        _add_if(details, "content", line_content)
        _add_if(details, "file", file_path)

        super().__init__(message, details)

        self.line_number = line_number
        self.line_content = line_content
        self.file_path = file_path


class ConstraintParseError(DepBoundError):
    """Raised when a version requirement string is malformed.

    Args:
        message: Error description.
        constraint: The offending requirement text.
        package: Dependent that declared the requirement, when known.
    """

    __slots__ = ("constraint", "package")

    def __init__(
        self,
        message: str,
        *,
        constraint: str,
        package: Optional["PackageId"] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {"constraint": constraint}
        if package is not None:
            details["package"] = str(package)
        super().__init__(message, details)
        self.constraint = constraint
        self.package = package


class ConfigError(DepBoundError):
    """Raised when a configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class FileOperationError(DepBoundError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/write).
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


# ---------------------------------------------------------------------------
# Network / provider errors
# ---------------------------------------------------------------------------


class NetworkError(DepBoundError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised when the package registry reports a missing resource.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name


class ProviderError(DepBoundError):
    """Raised when a registry lookup fails.

    Wraps whatever the fetch layer raised without interpreting it, so the
    caller always learns which lookup failed.

    Args:
        message: Error description.
        package_name: Package whose data was being fetched.
        package_version: Version being fetched, for per-version lookups.
        original_error: Underlying exception.
    """

    __slots__ = ("package_name", "package_version", "original_error")

    def __init__(
        self,
        message: str,
        *,
        package_name: str,
        package_version: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {"package": package_name}
        _add_if(details, "version", package_version)

        super().__init__(message, details)

        self.package_name = package_name
        self.package_version = package_version
        self.original_error = original_error


# ---------------------------------------------------------------------------
# Bound translation errors
# ---------------------------------------------------------------------------


def _describe(package: Optional["PackageId"]) -> str:
    return f"dependent {package}" if package is not None else "a dependent"


class UnsupportedOperatorError(DepBoundError):
    """Raised when a comparator uses an operator outside the supported set."""

    __slots__ = ("comparator", "package")

    def __init__(
        self,
        comparator: "Comparator",
        package: Optional["PackageId"] = None,
    ) -> None:
        super().__init__(
            f"The version requirement of {_describe(package)} uses unsupported "
            f"operator {comparator.op!r} in {comparator.text!r}",
        )
        self.comparator = comparator
        self.package = package


class EmptyConstraintError(DepBoundError):
    """Raised when a dependent declares a requirement with no comparators."""

    __slots__ = ("package",)

    def __init__(self, package: Optional["PackageId"] = None) -> None:
        super().__init__(f"The version requirement of {_describe(package)} is empty")
        self.package = package


class NonOverlappingBoundsError(DepBoundError):
    """Raised when one requirement contradicts itself (e.g. ``>1.0.0, <1.0.0``)."""

    __slots__ = ("constraint", "package")

    def __init__(self, constraint: str, package: Optional["PackageId"] = None) -> None:
        super().__init__(
            f"The {_describe(package)} has invalid version requirements {constraint}"
        )
        self.constraint = constraint
        self.package = package


# ---------------------------------------------------------------------------
# Snapshot consistency errors
# ---------------------------------------------------------------------------


class NoMatchingDependentError(DepBoundError):
    """Raised when no package in the snapshot depends on the target."""

    __slots__ = ("target",)

    def __init__(self, target: str) -> None:
        super().__init__(f"No package in the lockfile depends on {target}")
        self.target = target


class DependencyMismatchError(DepBoundError):
    """Raised when the lockfile claims an edge the registry does not list."""

    __slots__ = ("target", "package")

    def __init__(self, target: str, package: "PackageId") -> None:
        super().__init__(
            f"{package} depends on {target} in the lockfile, "
            "but the registry lists no such dependency"
        )
        self.target = target
        self.package = package


# ---------------------------------------------------------------------------
# Conflict errors
# ---------------------------------------------------------------------------


def _format_dependent(dependent: "Dependent") -> str:
    return f"{dependent.package} with requirement {dependent.constraint.text}"


class ConflictError(DepBoundError):
    """Base class for unsatisfiable combinations of dependents.

    Attributes:
        target: Name of the package whose version could not be selected.
        dependents: Every dependent implicated in the conflict.
    """

    __slots__ = ("target", "dependents")

    def __init__(self, message: str, *, target: str, dependents: Sequence["Dependent"]) -> None:
        super().__init__(message)
        self.target = target
        self.dependents: List["Dependent"] = list(dependents)

    def to_json(self) -> List[dict]:
        """Return the implicated dependents as JSON-serializable dicts."""
        return [dependent.to_json() for dependent in self.dependents]


class SingleDependentUnsatisfiableError(ConflictError):
    """One dependent's requirement matches no published release of the target."""

    __slots__ = ("dependent",)

    def __init__(self, *, target: str, dependent: "Dependent") -> None:
        super().__init__(
            f"The dependent {_format_dependent(dependent)}\n"
            f"does not match any published version of {target}",
            target=target,
            dependents=[dependent],
        )
        self.dependent = dependent


class PairwiseDependentsUnsatisfiableError(ConflictError):
    """The owner of the lower boundary and the owner of the upper boundary clash.

    Attributes:
        lower: Dependent that owns the surviving lower boundary.
        upper: Dependent that owns the surviving upper boundary.
        unreleased: ``True`` when the two requirements overlap but no
            published release lies in the overlap.
    """

    __slots__ = ("lower", "upper", "unreleased")

    def __init__(
        self,
        *,
        target: str,
        lower: "Dependent",
        upper: "Dependent",
        unreleased: bool = False,
    ) -> None:
        reason = (
            f"no published version of {target} lies within both requirements"
            if unreleased
            else f"no version of {target} satisfies those requirements"
        )
        super().__init__(
            f"A version of {target} could not be selected due to "
            f"{_format_dependent(lower)}\n"
            f"being incompatible with {_format_dependent(upper)}, {reason}",
            target=target,
            dependents=[lower, upper],
        )
        self.lower = lower
        self.upper = upper
        self.unreleased = unreleased


class MultiDependentsUnsatisfiableError(ConflictError):
    """A new dependent clashes with several previously accepted dependents.

    Attributes:
        dependent: The dependent whose requirement emptied the combined bound.
        conflicting: Earlier dependents whose boundaries it invalidates.
    """

    __slots__ = ("dependent", "conflicting")

    def __init__(
        self,
        *,
        target: str,
        dependent: "Dependent",
        conflicting: Sequence["Dependent"],
    ) -> None:
        listing = "".join(f"  {_format_dependent(other)}\n" for other in conflicting)
        super().__init__(
            f"A version of {target} could not be selected due to "
            f"{_format_dependent(dependent)}\n"
            f"being incompatible with:\n"
            f"{listing}"
            f"no version of {target} matches those requirements",
            target=target,
            dependents=[dependent, *conflicting],
        )
        self.dependent = dependent
        self.conflicting: List["Dependent"] = list(conflicting)


# ---------------------------------------------------------------------------
# Selection errors
# ---------------------------------------------------------------------------


class OnlyYankedVersionsError(DepBoundError):
    """Raised when every compatible release has been yanked."""

    __slots__ = ("target",)

    def __init__(self, target: str) -> None:
        super().__init__(
            f"Only yanked versions of {target} satisfy the dependents' requirements"
        )
        self.target = target


class InvalidToolchainVersionError(DepBoundError):
    """Raised when the requested maximum Rust version cannot be parsed."""

    __slots__ = ("version",)

    def __init__(self, version: str) -> None:
        super().__init__(f"The max rust version {version} is not valid")
        self.version = version


class UnsatisfiableToolchainVersionError(DepBoundError):
    """Raised when no compatible release supports the requested Rust version."""

    __slots__ = ("version",)

    def __init__(self, version: str) -> None:
        super().__init__(
            f"No compatible version supports a max rust version of {version}"
        )
        self.version = version
