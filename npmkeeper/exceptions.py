"""
Custom exception hierarchy for npmkeeper.

This module defines structured exception types used across npmkeeper.
All exceptions inherit from :class:`NpmKeeperError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, Optional, Sequence

if TYPE_CHECKING:
    from npmkeeper.models.violation import PeerViolation


class NpmKeeperError(Exception):
    """Base exception for all npmkeeper errors.

    All npmkeeper-specific exceptions should inherit from this class.
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
        # Internally normalize to a mutable dict
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


class ManifestError(NpmKeeperError):
    """Raised when a package manifest or registry document is malformed.

    Args:
        message: Error description.
        package_name: Name of the package whose document is malformed.
        field: Offending field, if known.
    """

    __slots__ = ("package_name", "field")

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package_name)
        _add_if(details, "field", field)

        super().__init__(message, details)

        self.package_name = package_name
        self.field = field


class NetworkError(NpmKeeperError):
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
    """Raised for failures related to the npm registry.

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


class FileOperationError(NpmKeeperError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed (read/parse).
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


class ConfigError(NpmKeeperError):
    """Raised when a configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Offending option name, if any.
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
        _add_if(details, "config", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class PackageNotInWorkspaceError(NpmKeeperError):
    """Raised when a package has no range in the workspace ``package.json``.

    Without a declared range there is no baseline to resolve the installed
    version from, so the whole analysis is aborted.
    """

    __slots__ = ("package_name",)

    def __init__(self, package_name: str) -> None:
        super().__init__(f"Package {package_name!r} was not found in package.json.")
        self.package_name = package_name


class VersionResolutionError(NpmKeeperError):
    """Raised when no installed version or manifest can be determined."""

    __slots__ = ("package_name", "version")

    def __init__(
        self,
        message: str,
        *,
        package_name: str,
        version: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {"package": package_name}
        _add_if(details, "version", version)

        super().__init__(message, details)

        self.package_name = package_name
        self.version = version


class IncompatiblePeerDependenciesError(NpmKeeperError):
    """Raised once, after a full validation pass, when peers are unsatisfied.

    The message enumerates every violation so callers can surface it
    verbatim.

    Args:
        violations: Every forward and reverse violation that was found.
    """

    __slots__ = ("violations",)

    def __init__(self, violations: Sequence["PeerViolation"]) -> None:
        self.violations = list(violations)
        lines = ["Incompatible peer dependencies found. Use --force to proceed."]
        lines.extend(f"  - {v.to_display_string()}" for v in self.violations)
        super().__init__("\n".join(lines))
