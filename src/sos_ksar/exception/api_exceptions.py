"""Custom exceptions for SOS Ksar.

All custom exceptions inherit from SosKsarException so the error handler
can map them to a consistent HTTP response. Authentication (401) and
authorization (403) failures are distinct types so callers never have to
parse a message to tell them apart.
"""

from typing import Any, Dict, Iterable, Optional


class SosKsarException(Exception):
    """Base exception for all SOS Ksar errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize SOS Ksar exception.

        Args:
            message: Human-readable error message
            code: Error code for programmatic handling
            status_code: HTTP status code
            field: Field name if validation error
            details: Additional error context
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(message)


# Authentication & Authorization Errors (401, 403)
class UnauthorizedError(SosKsarException):
    """No valid session; the caller should re-authenticate."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "UNAUTHORIZED"),
            status_code=401,
            **kwargs,
        )


class InvalidCredentialsError(UnauthorizedError):
    """Email/password sign-in failed."""

    def __init__(self, message: str = "Invalid email or password.", **kwargs):
        super().__init__(message=message, code="INVALID_CREDENTIALS", **kwargs)


class ForbiddenError(SosKsarException):
    """Valid session, but the role is not allowed to perform the operation."""

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "FORBIDDEN"),
            status_code=403,
            **kwargs,
        )

    @classmethod
    def for_role(cls, role: str) -> "ForbiddenError":
        return cls(f"Role '{role}' required", details={"required_roles": [role]})

    @classmethod
    def for_roles(cls, roles: Iterable[str]) -> "ForbiddenError":
        roles = list(roles)
        quoted = ", ".join(f"'{role}'" for role in roles)
        return cls(f"One of roles {quoted} required", details={"required_roles": roles})


# Resource Errors (404, 409)
class NotFoundError(SosKsarException):
    """Requested entity (report, user, inventory item) does not exist."""

    def __init__(self, resource: str, resource_id: Any, **kwargs):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "resource_id": str(resource_id)},
            **kwargs,
        )


class ResourceAlreadyExistsError(SosKsarException):
    """Resource already exists."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message, code="RESOURCE_ALREADY_EXISTS", status_code=409, **kwargs
        )


class InvalidTransitionError(SosKsarException):
    """Report status change outside the lifecycle transition table."""

    def __init__(self, current: str, target: str, **kwargs):
        super().__init__(
            message=f"Cannot change report status from '{current}' to '{target}'",
            code="INVALID_TRANSITION",
            status_code=409,
            details={"current": current, "target": target},
            **kwargs,
        )


# Validation Errors (422)
class ValidationError(SosKsarException):
    """Malformed input to a creation or update operation."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "VALIDATION_ERROR"),
            status_code=422,
            field=field,
            **kwargs,
        )


# Infrastructure Errors (503)
class InfrastructureError(SosKsarException):
    """Identity provider or store unavailable. Never a security decision."""

    def __init__(self, message: str = "Authentication backend unavailable", **kwargs):
        super().__init__(
            message=message,
            code=kwargs.pop("code", "INFRASTRUCTURE_ERROR"),
            status_code=503,
            **kwargs,
        )


# Configuration Errors
class ConfigurationError(SosKsarException):
    """Configuration error."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message, code="CONFIGURATION_ERROR", status_code=500, **kwargs
        )
