"""Inventory API endpoints.

Reads need a session, stock changes need volunteer/admin and seeding the
default stock needs admin.
"""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from sos_ksar.constants import InventoryItem
from sos_ksar.controller.schemas.responses import success_response
from sos_ksar.middleware.authorization_middleware import (
    require_admin,
    require_authenticated,
    require_responder,
)
from sos_ksar.service.inventory_service import serialize_item

router = APIRouter(tags=["inventory"])


class CreateItemRequest(BaseModel):
    item_name: InventoryItem
    quantity: int = Field(..., ge=0)
    center_location: str = Field(..., min_length=1, max_length=255)


class SetQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=0)


class AdjustQuantityRequest(BaseModel):
    """Relative stock change.

    Attributes:
        delta: Units to add (positive) or remove (negative)
    """

    delta: int


@router.get("/api/inventory", dependencies=[Depends(require_authenticated)])
async def list_inventory(request: Request):
    inventory_service = request.app.state.inventory_service
    items = await inventory_service.list_all()
    return success_response([serialize_item(item) for item in items])


@router.get("/api/inventory/stats", dependencies=[Depends(require_authenticated)])
async def inventory_stats(request: Request):
    inventory_service = request.app.state.inventory_service
    return success_response(await inventory_service.stats())


@router.get(
    "/api/inventory/location/{center_location}",
    dependencies=[Depends(require_authenticated)],
)
async def list_inventory_by_location(center_location: str, request: Request):
    inventory_service = request.app.state.inventory_service
    items = await inventory_service.list_by_location(center_location)
    return success_response([serialize_item(item) for item in items])


@router.post(
    "/api/inventory",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_responder)],
)
async def create_item(body: CreateItemRequest, request: Request):
    inventory_service = request.app.state.inventory_service
    item = await inventory_service.create_item(
        body.item_name.value, body.quantity, body.center_location
    )
    return success_response(serialize_item(item), "Inventory item created.")


@router.put(
    "/api/inventory/{item_id}/quantity", dependencies=[Depends(require_responder)]
)
async def set_quantity(item_id: int, body: SetQuantityRequest, request: Request):
    inventory_service = request.app.state.inventory_service
    item = await inventory_service.set_quantity(item_id, body.quantity)
    return success_response(serialize_item(item), "Quantity updated.")


@router.post(
    "/api/inventory/{item_id}/adjust", dependencies=[Depends(require_responder)]
)
async def adjust_quantity(item_id: int, body: AdjustQuantityRequest, request: Request):
    """Add or remove units; the result may not drop below zero."""
    inventory_service = request.app.state.inventory_service
    item = await inventory_service.adjust_quantity(item_id, body.delta)
    return success_response(
        serialize_item(item), f"Quantity adjusted by {body.delta:+d} units."
    )


@router.post(
    "/api/inventory/initialize",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def initialize_inventory(request: Request):
    inventory_service = request.app.state.inventory_service
    items = await inventory_service.initialize_defaults()
    return success_response(
        [serialize_item(item) for item in items], "Default inventory initialized."
    )
