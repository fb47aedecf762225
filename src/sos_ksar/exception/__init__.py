"""Exception handling package.

This package provides custom exception classes that the error handler
middleware maps to HTTP responses.
"""

from sos_ksar.exception.api_exceptions import (
    ConfigurationError,
    ForbiddenError,
    InfrastructureError,
    InvalidCredentialsError,
    InvalidTransitionError,
    NotFoundError,
    ResourceAlreadyExistsError,
    SosKsarException,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "ForbiddenError",
    "InfrastructureError",
    "InvalidCredentialsError",
    "InvalidTransitionError",
    "NotFoundError",
    "ResourceAlreadyExistsError",
    "SosKsarException",
    "UnauthorizedError",
    "ValidationError",
]
