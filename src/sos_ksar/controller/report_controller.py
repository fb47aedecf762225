"""SOS report API endpoints.

Endpoints:
  POST /api/reports                     - submit a report (any signed-in user)
  GET  /api/reports/mine                - caller's own reports
  GET  /api/reports                     - all reports (volunteer/admin)
  GET  /api/reports/stats               - counts by status and type (volunteer/admin)
  GET  /api/reports/{report_id}         - one report (volunteer/admin)
  POST /api/reports/{report_id}/cancel  - cancel a non-terminal report (volunteer/admin)
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from sos_ksar.constants import ReportType
from sos_ksar.controller.schemas.responses import success_response
from sos_ksar.middleware.authorization_middleware import (
    require_authenticated,
    require_responder,
)
from sos_ksar.service.report_service import serialize_report
from sos_ksar.service.session_resolver import SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


class CreateReportRequest(BaseModel):
    """New SOS report.

    Attributes:
        type: Incident type
        location: Where help is needed
        description: What happened
    """

    type: ReportType
    location: str = Field(..., max_length=1000)
    description: str = Field(..., max_length=5000)


@router.post("/api/reports", status_code=status.HTTP_201_CREATED)
async def create_report(
    body: CreateReportRequest,
    request: Request,
    user: SessionUser = Depends(require_authenticated),
):
    """Submit a report as the signed-in user.

    Raises:
        ValidationError: 422 for a blank location or description
        NotFoundError: 404 if the caller's user row is gone
    """
    report_service = request.app.state.report_service
    report = await report_service.create_report(
        user_id=int(user.id),
        report_type=body.type.value,
        location=body.location,
        description=body.description,
    )
    return success_response(serialize_report(report), "SOS report created.")


@router.get("/api/reports/mine")
async def list_my_reports(
    request: Request, user: SessionUser = Depends(require_authenticated)
):
    report_service = request.app.state.report_service
    reports = await report_service.list_for_user(int(user.id))
    return success_response([serialize_report(report) for report in reports])


@router.get("/api/reports", dependencies=[Depends(require_responder)])
async def list_reports(request: Request):
    report_service = request.app.state.report_service
    return success_response(await report_service.list_all())


@router.get("/api/reports/stats", dependencies=[Depends(require_responder)])
async def report_stats(request: Request):
    report_service = request.app.state.report_service
    return success_response(await report_service.stats())


@router.get("/api/reports/{report_id}", dependencies=[Depends(require_responder)])
async def get_report(report_id: int, request: Request):
    report_service = request.app.state.report_service
    report = await report_service.get_report(report_id)
    return success_response(serialize_report(report))


@router.post(
    "/api/reports/{report_id}/cancel", dependencies=[Depends(require_responder)]
)
async def cancel_report(report_id: int, request: Request):
    """Cancel a pending or in-progress report.

    Raises:
        NotFoundError: 404 for an unknown report
        InvalidTransitionError: 409 if the report is already resolved or cancelled
    """
    report_service = request.app.state.report_service
    report = await report_service.cancel_report(report_id)
    return success_response(serialize_report(report), "Report cancelled.")
