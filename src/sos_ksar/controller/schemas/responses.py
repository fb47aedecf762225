"""Response schemas for the SOS Ksar API.

This module provides consistent response formats for success and error cases.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(None, description="Field name if validation error")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error context"
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = Field(False, description="Always false for errors")
    error: ErrorDetail = Field(..., description="Error details")
    errors: Optional[List[ErrorDetail]] = Field(
        None, description="Multiple errors (e.g., validation)"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now, description="Error timestamp (UTC)"
    )
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    path: Optional[str] = Field(None, description="API path that caused the error")
    method: Optional[str] = Field(None, description="HTTP method")
    stack_trace: Optional[str] = Field(
        None, description="Stack trace (development only)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": {
                    "code": "FORBIDDEN",
                    "message": "Role 'admin' required",
                    "details": {"required_roles": ["admin"]},
                },
                "timestamp": "2026-02-18T00:00:00Z",
                "request_id": "req_abc123",
                "path": "/api/users",
                "method": "GET",
            }
        }
    }


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success response format."""

    success: bool = Field(True, description="Always true for success")
    data: T = Field(..., description="Response data")
    message: Optional[str] = Field(None, description="Optional success message")
    timestamp: datetime = Field(
        default_factory=_utc_now, description="Response timestamp (UTC)"
    )


def success_response(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Create a success response."""
    return SuccessResponse[Any](data=data, message=message).model_dump(
        mode="json", exclude_none=True
    )


def error_response(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    errors: Optional[List[ErrorDetail]] = None,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    stack_trace: Optional[str] = None,
) -> Dict[str, Any]:
    """Create an error response."""
    return ErrorResponse(
        error=ErrorDetail(code=code, message=message, field=field, details=details),
        errors=errors,
        request_id=request_id,
        path=path,
        method=method,
        stack_trace=stack_trace,
    ).model_dump(mode="json", exclude_none=True)
