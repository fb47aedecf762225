"""User administration endpoints (admin only).

Endpoints:
  GET   /api/users                  - all users
  GET   /api/users/stats            - counts per role
  GET   /api/users/by-email?email=  - lookup by email
  GET   /api/users/{user_id}        - lookup by id
  POST  /api/users                  - create a user (any role)
  PATCH /api/users/{user_id}/role   - change a role
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from sos_ksar.constants import UserRole
from sos_ksar.controller.schemas.responses import success_response
from sos_ksar.middleware.authorization_middleware import require_admin

router = APIRouter(tags=["users"], dependencies=[Depends(require_admin)])


class CreateUserRequest(BaseModel):
    """New user.

    Attributes:
        email: Unique email
        name: Display name
        role: Any role
        password: Optional password for email sign-in
    """

    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = Field(default=UserRole.CITIZEN)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)


class UpdateRoleRequest(BaseModel):
    role: UserRole


@router.get("/api/users")
async def list_users(request: Request):
    user_service = request.app.state.user_service
    users = await user_service.list_users()
    return success_response([user_service.serialize_user(user) for user in users])


@router.get("/api/users/stats")
async def user_stats(request: Request):
    return success_response(await request.app.state.user_service.stats())


@router.get("/api/users/by-email")
async def get_user_by_email(request: Request, email: str = Query(..., min_length=1)):
    user_service = request.app.state.user_service
    user = await user_service.get_user_by_email(email)
    return success_response(user_service.serialize_user(user))


@router.get("/api/users/{user_id}")
async def get_user(user_id: int, request: Request):
    user_service = request.app.state.user_service
    user = await user_service.get_user(user_id)
    return success_response(user_service.serialize_user(user))


@router.post("/api/users", status_code=status.HTTP_201_CREATED)
async def create_user(body: CreateUserRequest, request: Request):
    user_service = request.app.state.user_service
    user = await user_service.create_user(
        email=body.email,
        name=body.name,
        role=body.role.value,
        password=body.password,
    )
    return success_response(user_service.serialize_user(user), "User created.")


@router.patch("/api/users/{user_id}/role")
async def update_user_role(user_id: int, body: UpdateRoleRequest, request: Request):
    """Change a user's role. Open sessions see it on their next request."""
    user_service = request.app.state.user_service
    user = await user_service.update_role(user_id, body.role.value)
    return success_response(user_service.serialize_user(user), "Role updated.")
