"""Custom exception classes for keyset pagination."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base pagination exception.

    All custom exceptions should inherit from this class. The fields follow
    RFC 7807 Problem Details so a transport layer can map them directly to a
    problem response.

    Attributes:
        status_code: HTTP status code suggested for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
            raise AppException(
            status_code=400,
            detail="Resume token is malformed",
            type="invalid-resume-token",
            extra={"reason": "bad padding"},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for HTTP status code.

        Args:
            status_code: HTTP status code.

        Returns:
            Human-readable title for the status code.
        """
        titles = {
            400: "Bad Request",
            422: "Unprocessable Entity",
            500: "Internal Server Error",
        }
        return titles.get(status_code, "Error")


class ValidationException(AppException):
    """Exception raised for invalid pagination arguments.

    Example:
            raise ValidationException(
            detail="limit must be a positive integer",
            extra={"field": "limit", "value": 0}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=422,
            detail=detail,
            type=type,
            title="Validation Error",
            instance=instance,
            extra=extra,
        )


class UnsupportedSortException(AppException):
    """Exception raised when a sort specification cannot be paginated.

    Only plain ``{field: direction}`` mappings over scalar fields are
    supported. Array-valued fields, ``$meta`` sorts and pipeline sorts are
    rejected.

    Example:
            raise UnsupportedSortException(
            detail="Sort field 'tags' holds an array value",
            extra={"field": "tags"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "unsupported-sort",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Unsupported Sort",
            instance=instance,
            extra=extra,
        )


class InvalidResumeTokenException(AppException):
    """Exception raised when a resume token or resume point cannot be used.

    Covers corrupted, tampered or foreign tokens as well as structurally
    invalid resume points. Callers decide whether to surface the error or
    restart pagination; nothing falls back to the first page silently.
    """

    def __init__(
        self,
        detail: str = "Resume token is invalid",
        type: str = "invalid-resume-token",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Invalid Resume Token",
            instance=instance,
            extra=extra,
        )


class ConfigurationException(AppException):
    """Exception raised for unusable pagination configuration.

    Example:
            raise ConfigurationException(
            detail="Token encryption is enabled but no encryption key is configured",
            extra={"setting": "PAGINATION_ENCRYPTION_KEY"}
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "configuration-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=500,
            detail=detail,
            type=type,
            title="Configuration Error",
            instance=instance,
            extra=extra,
        )


__all__ = [
    "AppException",
    "ConfigurationException",
    "InvalidResumeTokenException",
    "UnsupportedSortException",
    "ValidationException",
]
