"""Service layer for relief supply inventory."""

import logging
from typing import Any, Dict, List

from sos_ksar.constants import InventoryItem
from sos_ksar.exception import NotFoundError, ResourceAlreadyExistsError, ValidationError
from sos_ksar.infrastructure.persistence.postgresql.models import Inventory
from sos_ksar.repository.inventory_repository import InventoryRepository

logger = logging.getLogger(__name__)

MAIN_CENTER = "Centre Principal"
NORTH_DEPOT = "Dépôt Nord"
SOUTH_DEPOT = "Dépôt Sud"

DEFAULT_STOCK = [
    (InventoryItem.FIRST_AID_KIT.value, 100, MAIN_CENTER),
    (InventoryItem.FIRE_EXTINGUISHER.value, 50, MAIN_CENTER),
    (InventoryItem.WATER_BOTTLES.value, 500, NORTH_DEPOT),
    (InventoryItem.FOOD_RATIONS.value, 300, NORTH_DEPOT),
    (InventoryItem.EMERGENCY_BLANKET.value, 150, MAIN_CENTER),
    (InventoryItem.FLASHLIGHT.value, 200, SOUTH_DEPOT),
    (InventoryItem.RADIO.value, 75, MAIN_CENTER),
    (InventoryItem.BATTERIES.value, 400, SOUTH_DEPOT),
    (InventoryItem.MEDICAL_SUPPLIES.value, 250, MAIN_CENTER),
    (InventoryItem.RESCUE_EQUIPMENT.value, 80, NORTH_DEPOT),
]

ITEM_VALUES = frozenset(item.value for item in InventoryItem)


def serialize_item(item: Inventory) -> Dict[str, Any]:
    """Serialize an Inventory ORM instance to a plain dict."""
    return {
        "id": item.id,
        "item_name": item.item_name,
        "quantity": item.quantity,
        "center_location": item.center_location,
    }


def _check_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("Quantity must be zero or more.", field="quantity")
    return quantity


def _check_item_id(item_id: Any) -> int:
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id <= 0:
        raise ValidationError("Invalid item ID.", field="item_id")
    return item_id


class InventoryService:
    """Stock lines per distribution center.

    Attributes:
        inventory_repo: Inventory repository
    """

    def __init__(self, inventory_repo: InventoryRepository):
        self.inventory_repo = inventory_repo

    async def list_all(self) -> List[Inventory]:
        return await self.inventory_repo.list_all()

    async def list_by_location(self, center_location: str) -> List[Inventory]:
        """Stock of one center.

        Raises:
            ValidationError: Blank location
        """
        center_location = (center_location or "").strip()
        if not center_location:
            raise ValidationError("Invalid location.", field="center_location")
        return await self.inventory_repo.list_by_location(center_location)

    async def create_item(
        self, item_name: str, quantity: int, center_location: str
    ) -> Inventory:
        """Add a stock line.

        Raises:
            ValidationError: Unknown item, negative quantity or blank location
        """
        item_name = getattr(item_name, "value", item_name)
        if item_name not in ITEM_VALUES:
            raise ValidationError(f"Unknown item '{item_name}'.", field="item_name")
        _check_quantity(quantity)
        center_location = (center_location or "").strip()
        if not center_location:
            raise ValidationError("Location is required.", field="center_location")

        item = await self.inventory_repo.create(item_name, quantity, center_location)
        logger.info(f"Inventory item created: id={item.id} {item_name} x{quantity}")
        return item

    async def set_quantity(self, item_id: int, quantity: int) -> Inventory:
        """Overwrite a quantity.

        Raises:
            ValidationError: Bad id or negative quantity
            NotFoundError: Unknown item
        """
        _check_item_id(item_id)
        _check_quantity(quantity)
        item = await self.inventory_repo.set_quantity(item_id, quantity)
        if not item:
            raise NotFoundError("Inventory item", item_id)
        return item

    async def adjust_quantity(self, item_id: int, delta: int) -> Inventory:
        """Add (or remove, with a negative delta) units.

        Raises:
            ValidationError: Bad id, or the result would be negative
            NotFoundError: Unknown item
        """
        _check_item_id(item_id)
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("Adjustment must be an integer.", field="delta")

        item = await self.inventory_repo.get_by_id(item_id)
        if not item:
            raise NotFoundError("Inventory item", item_id)

        new_quantity = item.quantity + delta
        if new_quantity < 0:
            raise ValidationError("Quantity cannot go below zero.", field="quantity")

        updated = await self.inventory_repo.set_quantity(item_id, new_quantity)
        if not updated:
            raise NotFoundError("Inventory item", item_id)
        logger.info(f"Inventory adjusted: id={item_id} delta={delta:+d} now={new_quantity}")
        return updated

    async def stats(self) -> Dict[str, Any]:
        """Totals per item and per center, plus depleted lines."""
        by_item = await self.inventory_repo.totals_by_item()
        by_location = await self.inventory_repo.totals_by_location()
        depleted = [
            item for item in await self.inventory_repo.list_all() if item.quantity == 0
        ]
        return {
            "total_quantity": sum(by_item.values()),
            "by_item": by_item,
            "by_location": by_location,
            "depleted_count": len(depleted),
            "depleted": [serialize_item(item) for item in depleted],
        }

    async def initialize_defaults(self) -> List[Inventory]:
        """Seed the default stock into an empty inventory.

        Raises:
            ResourceAlreadyExistsError: Inventory already has lines
        """
        if await self.inventory_repo.count() > 0:
            raise ResourceAlreadyExistsError("Inventory is already initialized.")
        items = await self.inventory_repo.bulk_create(DEFAULT_STOCK)
        logger.info(f"Default inventory seeded: {len(items)} lines")
        return items
