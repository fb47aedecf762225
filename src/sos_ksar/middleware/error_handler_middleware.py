"""Error handling middleware for the SOS Ksar API.

Turns any exception escaping the app (including the route gate) into the
standard JSON error envelope and tags every response with X-Request-ID.
"""

import logging
import traceback
import uuid

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from sos_ksar.controller.schemas.responses import ErrorDetail, error_response
from sos_ksar.exception.api_exceptions import SosKsarException

logger = logging.getLogger(__name__)

HTTP_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_SERVER_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


class ErrorHandlerMiddleware:
    """Pure ASGI middleware to catch and format all exceptions."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response_started = False

        async def send_with_request_id(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception as exc:
            if response_started:
                raise
            response = self.handle_exception(request, exc, request_id)
            await response(scope, receive, send)

    def handle_exception(
        self, request: Request, exc: Exception, request_id: str
    ) -> JSONResponse:
        """Map an exception to a JSON error response.

        Args:
            request: Request that caused the exception
            exc: Exception that was raised
            request_id: Request ID for tracing

        Returns:
            JSONResponse with the error envelope
        """
        debug_mode = getattr(request.app.state, "debug", False)
        environment = getattr(request.app.state, "environment", "production")
        show_stack_trace = debug_mode or environment == "development"

        path = request.url.path
        method = request.method
        log_extra = {
            "request_id": request_id,
            "path": path,
            "method": method,
            "exception_type": type(exc).__name__,
        }

        if isinstance(exc, SosKsarException) and exc.status_code < 500:
            logger.warning(f"{method} {path} rejected: {exc.code}", extra=log_extra)
        else:
            logger.error(
                f"Error processing request: {method} {path}",
                extra=log_extra,
                exc_info=True,
            )

        stack_trace = traceback.format_exc() if show_stack_trace else None

        if isinstance(exc, SosKsarException):
            content = error_response(
                code=exc.code,
                message=exc.message,
                field=exc.field,
                details=exc.details or None,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        elif isinstance(exc, (RequestValidationError, PydanticValidationError)):
            errors = [
                ErrorDetail(
                    code="VALIDATION_ERROR",
                    message=error["msg"],
                    field=" -> ".join(str(loc) for loc in error["loc"]),
                    details={"type": error["type"]},
                )
                for error in exc.errors()
            ]
            content = error_response(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                errors=errors,
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_422_UNPROCESSABLE_CONTENT

        elif isinstance(exc, StarletteHTTPException):
            content = error_response(
                code=HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR"),
                message=str(exc.detail),
                details={"status_code": exc.status_code},
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = exc.status_code

        else:
            content = error_response(
                code="INTERNAL_ERROR",
                message=str(exc) if show_stack_trace else "An internal error occurred",
                details=(
                    {"exception_type": type(exc).__name__} if show_stack_trace else None
                ),
                request_id=request_id,
                path=path,
                method=method,
                stack_trace=stack_trace,
            )
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        return JSONResponse(
            status_code=status_code,
            content=content,
            headers={"X-Request-ID": request_id},
        )
