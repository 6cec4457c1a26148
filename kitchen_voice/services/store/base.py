"""
Data Store Abstract Base Class

Defines the interface contract for the order/menu data the command layer
reads and writes. Both InMemoryDataStore and SqlDataStore implement these
methods, so the command pipeline behaves identically in development and
production.

Design Pattern: Strategy Pattern
    - Allows runtime switching between storage backends
    - Facilitates testing with seeded in-memory fixtures

Version: 4.0.0
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from kitchen_voice.models import OrderStatus


@dataclass
class OrderSnapshot:
    """
    Read-only copy of one order.

    Attributes:
        order_id: Internal identifier used for writes
        order_number: Sequential number staff refer to
        total_amount: Order total in dollars
        status: Current status
        customer_note: Optional free-text note
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """
    order_id: int
    order_number: int
    total_amount: float
    status: OrderStatus
    customer_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "total_amount": self.total_amount,
            "status": self.status.value,
            "customer_note": self.customer_note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class MenuItemSnapshot:
    """Read-only copy of one menu item."""
    menu_id: int
    name: str
    price: float
    availability: bool = True
    total_ordered: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu_id": self.menu_id,
            "name": self.name,
            "price": self.price,
            "availability": self.availability,
            "total_ordered": self.total_ordered,
        }


@dataclass
class Snapshot:
    """
    Orders and menu items fetched once at the start of a command.

    Orders are newest first. The snapshot is never refreshed; it is
    discarded when the command finishes.
    """
    orders: list[OrderSnapshot] = field(default_factory=list)
    menu_items: list[MenuItemSnapshot] = field(default_factory=list)

    def find_order(self, order_number: int) -> Optional[OrderSnapshot]:
        """Look an order up by its display number."""
        for order in self.orders:
            if order.order_number == order_number:
                return order
        return None

    def orders_with_status(self, status: OrderStatus) -> list[OrderSnapshot]:
        return [o for o in self.orders if o.status == status]


class BaseDataStore(ABC):
    """
    Abstract base class for order/menu storage.

    Example:
        >>> store = get_data_store()  # Returns InMemory or Sql
        >>> snapshot = await store.fetch_snapshot()
        >>> updated = await store.update_order_status(
        ...     order_id=3,
        ...     status=OrderStatus.DONE,
        ...     expected_status=OrderStatus.PENDING,
        ... )
        >>> if updated is None:
        ...     print("order changed underneath us")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the storage backend.

        Returns:
            str: Provider name (e.g., "memory", "postgresql")
        """
        pass

    @abstractmethod
    async def list_orders(self, status: Optional[OrderStatus] = None) -> list[OrderSnapshot]:
        """
        List orders, newest first.

        Args:
            status: Only return orders in this status (None = all)
        """
        pass

    @abstractmethod
    async def list_menu_items(self) -> list[MenuItemSnapshot]:
        """List every menu item in menu order."""
        pass

    @abstractmethod
    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
    ) -> Optional[OrderSnapshot]:
        """
        Write a new status for one order.

        Args:
            order_id: Internal order identifier
            status: Target status
            expected_status: When given, the write only happens if the order
                is still in this status (conditional update)

        Returns:
            OrderSnapshot: The updated order, or None if the order does not
            exist or its status no longer matches expected_status
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the backend is reachable.

        Returns:
            bool: True if the store can serve reads
        """
        pass

    async def fetch_snapshot(self) -> Snapshot:
        """Read orders and menu items concurrently."""
        orders, menu_items = await asyncio.gather(
            self.list_orders(),
            self.list_menu_items(),
        )
        return Snapshot(orders=orders, menu_items=menu_items)
