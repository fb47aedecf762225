from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select

if TYPE_CHECKING:
    from sos_ksar.infrastructure.persistence.postgresql.client import PostgreSQLClient

from sos_ksar.infrastructure.persistence.postgresql.models import Inventory


class InventoryRepository:
    """Repository for relief supply stock.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self, item_name: str, quantity: int, center_location: str
    ) -> Inventory:
        """Create a stock line.

        Args:
            item_name: Inventory item value
            quantity: Initial quantity (>= 0)
            center_location: Distribution center name

        Returns:
            Created Inventory instance
        """
        async with self.client.session() as session:
            item = Inventory(
                item_name=item_name, quantity=quantity, center_location=center_location
            )
            session.add(item)
            await session.flush()
            return item

    async def bulk_create(
        self, rows: Iterable[Tuple[str, int, str]]
    ) -> List[Inventory]:
        """Create several stock lines in one transaction.

        Args:
            rows: (item_name, quantity, center_location) tuples

        Returns:
            Created Inventory instances
        """
        async with self.client.session() as session:
            items = [
                Inventory(item_name=name, quantity=quantity, center_location=center)
                for name, quantity, center in rows
            ]
            session.add_all(items)
            await session.flush()
            return items

    async def get_by_id(self, item_id: int) -> Optional[Inventory]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory).where(Inventory.id == item_id)
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> List[Inventory]:
        """Retrieve all stock ordered by center, then item."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory).order_by(
                    Inventory.center_location, Inventory.item_name
                )
            )
            return list(result.scalars().all())

    async def list_by_location(self, center_location: str) -> List[Inventory]:
        """Retrieve the stock of one center ordered by item."""
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory)
                .where(Inventory.center_location == center_location)
                .order_by(Inventory.item_name)
            )
            return list(result.scalars().all())

    async def set_quantity(self, item_id: int, quantity: int) -> Optional[Inventory]:
        """Overwrite the quantity of a stock line.

        Returns:
            Updated Inventory instance or None if not found
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory).where(Inventory.id == item_id)
            )
            item = result.scalar_one_or_none()
            if item:
                item.quantity = quantity
                await session.flush()
            return item

    async def count(self) -> int:
        async with self.client.session() as session:
            result = await session.execute(select(func.count(Inventory.id)))
            return result.scalar_one()

    async def totals_by_item(self) -> Dict[str, int]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory.item_name, func.sum(Inventory.quantity)).group_by(
                    Inventory.item_name
                )
            )
            return {name: int(total or 0) for name, total in result.all()}

    async def totals_by_location(self) -> Dict[str, int]:
        async with self.client.session() as session:
            result = await session.execute(
                select(Inventory.center_location, func.sum(Inventory.quantity)).group_by(
                    Inventory.center_location
                )
            )
            return {center: int(total or 0) for center, total in result.all()}
