"""Command center API endpoints (volunteers and admins).

Endpoints:
  GET  /api/command-center/reports                         - all reports with reporter
  GET  /api/command-center/inventory                       - all inventory lines
  POST /api/command-center/reports/{report_id}/take-charge - pending → in_progress
  POST /api/command-center/reports/{report_id}/resolve     - in_progress → resolved

Authorization runs inside CommandCenterService, so every endpoint answers
with the action result shape; the HTTP status follows the result code.
"""

from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from sos_ksar.middleware.authorization_middleware import get_request_context
from sos_ksar.service.command_center_service import ActionResult

router = APIRouter(tags=["command-center"])

RESULT_STATUS_CODES = {
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_CONTENT,
    "INFRASTRUCTURE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _to_response(result: ActionResult) -> JSONResponse:
    body: Dict[str, Any] = {"success": result.success}
    if result.success:
        body["data"] = result.data
        if result.message:
            body["message"] = result.message
        return JSONResponse(status_code=status.HTTP_200_OK, content=body)

    body["error"] = result.error
    body["code"] = result.code
    return JSONResponse(
        status_code=RESULT_STATUS_CODES.get(
            result.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        ),
        content=body,
    )


@router.get("/api/command-center/reports")
async def get_reports(request: Request):
    service = request.app.state.command_center_service
    return _to_response(await service.get_reports(get_request_context(request)))


@router.get("/api/command-center/inventory")
async def get_inventory(request: Request):
    service = request.app.state.command_center_service
    return _to_response(await service.get_inventory(get_request_context(request)))


@router.post("/api/command-center/reports/{report_id}/take-charge")
async def take_charge(report_id: str, request: Request):
    """Take charge of a pending report.

    The id is passed through as text; the action rejects anything that is
    not a positive integer with "Invalid report ID.".
    """
    service = request.app.state.command_center_service
    return _to_response(
        await service.take_charge(get_request_context(request), report_id)
    )


@router.post("/api/command-center/reports/{report_id}/resolve")
async def mark_resolved(report_id: str, request: Request):
    """Mark an in-progress report as resolved."""
    service = request.app.state.command_center_service
    return _to_response(
        await service.mark_resolved(get_request_context(request), report_id)
    )
