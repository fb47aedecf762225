"""Page endpoints.

Each page returns a JSON page context seeded once from the server-resolved
session; a UI renders from that and keeps no session state of its own.
Gated pages sit behind the route gate and still run the guards here.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from sos_ksar.constants import (
    DASHBOARD_PATH,
    ROLE_VALUES,
    InventoryItem,
    ReportType,
    UserRole,
)
from sos_ksar.exception import ForbiddenError, NotFoundError
from sos_ksar.middleware.authorization_middleware import (
    get_optional_user,
    get_request_context,
    require_admin,
    require_authenticated,
)
from sos_ksar.service.inventory_service import serialize_item
from sos_ksar.service.report_service import serialize_report
from sos_ksar.service.session_resolver import SessionUser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


class PageUser(BaseModel):
    id: str
    email: str
    role: str


class PageContext(BaseModel):
    """Everything a page needs to render.

    Attributes:
        page: Page identifier
        user: Signed-in user, None on public pages when anonymous
        data: Page-specific payload
    """

    page: str
    user: Optional[PageUser] = None
    data: Dict[str, Any] = Field(default_factory=dict)


def _page(page: str, user: Optional[SessionUser], **data: Any) -> PageContext:
    page_user = (
        PageUser(id=user.id, email=user.email, role=user.role) if user else None
    )
    return PageContext(page=page, user=page_user, data=data)


@router.get("/", response_model=PageContext)
async def home_page(user: Optional[SessionUser] = Depends(get_optional_user)):
    return _page("home", user)


@router.get("/auth", response_model=PageContext)
async def auth_page(
    request: Request, user: Optional[SessionUser] = Depends(get_optional_user)
):
    """Sign-in / sign-up page. Lists the roles open to self sign-up."""
    settings = request.app.state.app_settings
    return _page(
        "auth",
        user,
        google_enabled=settings.google_oauth_configured(),
        signup_roles=[UserRole.CITIZEN.value, UserRole.VOLUNTEER.value],
    )


@router.get("/unauthorized", response_model=PageContext)
async def unauthorized_page(user: Optional[SessionUser] = Depends(get_optional_user)):
    return _page("unauthorized", user)


@router.get("/dashboard", include_in_schema=False)
async def dashboard_root(user: SessionUser = Depends(require_authenticated)):
    return RedirectResponse(
        url=f"{DASHBOARD_PATH}/{user.role}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.get("/dashboard/{role}", response_model=PageContext)
async def role_dashboard(role: str, request: Request):
    """Role-scoped dashboard.

    Raises:
        NotFoundError: 404 for an unknown role segment
        ForbiddenError: 403 when the caller's role does not own the dashboard
    """
    if role not in ROLE_VALUES:
        raise NotFoundError("Dashboard", role)

    guard = request.app.state.auth_guard
    ctx = get_request_context(request)
    if role == UserRole.ADMIN.value:
        user = await guard.require_role(ctx, UserRole.ADMIN)
    else:
        user = await guard.require_auth(ctx)
        if user.role != role:
            raise ForbiddenError.for_role(role)

    data: Dict[str, Any] = {}
    if role == UserRole.CITIZEN.value:
        reports = await request.app.state.report_service.list_for_user(int(user.id))
        data["reports"] = [serialize_report(report) for report in reports]
    elif role == UserRole.VOLUNTEER.value:
        data["report_stats"] = await request.app.state.report_service.stats()
    else:
        data["report_stats"] = await request.app.state.report_service.stats()
        data["user_stats"] = await request.app.state.user_service.stats()

    return _page(f"dashboard_{role}", user, **data)


@router.get("/sos", response_model=PageContext)
async def sos_page(user: SessionUser = Depends(require_authenticated)):
    return _page("sos", user, report_types=[t.value for t in ReportType])


@router.get("/inventory", response_model=PageContext)
async def inventory_page(
    request: Request, user: SessionUser = Depends(require_authenticated)
):
    items = await request.app.state.inventory_service.list_all()
    return _page(
        "inventory",
        user,
        items=[serialize_item(item) for item in items],
        item_names=[item.value for item in InventoryItem],
    )


@router.get("/command-center", response_model=PageContext)
async def command_center_page(
    request: Request, user: SessionUser = Depends(require_admin)
):
    """Command center console; data comes from the command center actions."""
    service = request.app.state.command_center_service
    ctx = get_request_context(request)
    reports = await service.get_reports(ctx)
    inventory = await service.get_inventory(ctx)
    return _page(
        "command_center",
        user,
        reports=reports.data if reports.success else [],
        inventory=inventory.data if inventory.success else [],
        errors=[r.error for r in (reports, inventory) if not r.success],
    )
