"""
In-Memory Data Store Implementation

Keeps orders and menu items in process memory.
Used in development mode (ENV_MODE=development) to:
    - Exercise the voice pipeline without a database
    - Seed a realistic Thai kitchen for demos
    - Inject fixed fixtures in tests

Behavior:
    - Optional simulated latency per call
    - Status writes are atomic with respect to other coroutines (asyncio.Lock)

Version: 4.0.0
"""

import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.store.base import (
    BaseDataStore,
    MenuItemSnapshot,
    OrderSnapshot,
)

logger = logging.getLogger(__name__)


# (name, price, available, total_ordered)
SEED_MENU = [
    ("Pad Thai", 12.99, True, 47),
    ("Green Curry", 13.49, True, 23),
    ("Tom Yum Soup", 9.99, True, 18),
    ("Massaman Curry", 14.29, True, 12),
    ("Som Tam", 8.49, True, 9),
    ("Mango Sticky Rice", 6.99, True, 31),
    ("Khao Soi", 13.99, False, 4),
    ("Pad See Ew", 12.49, True, 0),
]

# (order_number, total, status, note)
SEED_ORDERS = [
    (101, 25.98, OrderStatus.DONE, None),
    (102, 13.49, OrderStatus.DONE, "No peanuts"),
    (103, 38.47, OrderStatus.CANCELLED, None),
    (104, 9.99, OrderStatus.PENDING, "Extra spicy"),
    (105, 21.48, OrderStatus.PENDING, None),
    (106, 27.28, OrderStatus.PENDING, None),
]


class InMemoryDataStore(BaseDataStore):
    """
    In-memory implementation of the data store.

    Attributes:
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> store = InMemoryDataStore.seeded()
        >>> orders = await store.list_orders()
        >>> print(orders[0].order_number)
        106
    """

    def __init__(
        self,
        orders: Optional[Iterable[OrderSnapshot]] = None,
        menu_items: Optional[Iterable[MenuItemSnapshot]] = None,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self._orders: dict[int, OrderSnapshot] = {o.order_id: o for o in (orders or [])}
        self._menu_items: list[MenuItemSnapshot] = list(menu_items or [])
        self._lock = asyncio.Lock()
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.write_count = 0

        logger.info(
            f"InMemoryDataStore initialized "
            f"({len(self._orders)} orders, {len(self._menu_items)} menu items)"
        )

    @classmethod
    def seeded(cls, min_latency: float = 0.0, max_latency: float = 0.0) -> "InMemoryDataStore":
        """Build a store pre-filled with a small Thai kitchen."""
        now = datetime.now(timezone.utc)
        orders = [
            OrderSnapshot(
                order_id=index + 1,
                order_number=number,
                total_amount=total,
                status=status,
                customer_note=note,
                created_at=now - timedelta(minutes=10 * (len(SEED_ORDERS) - index)),
            )
            for index, (number, total, status, note) in enumerate(SEED_ORDERS)
        ]
        menu_items = [
            MenuItemSnapshot(
                menu_id=index + 1,
                name=name,
                price=price,
                availability=available,
                total_ordered=ordered,
            )
            for index, (name, price, available, ordered) in enumerate(SEED_MENU)
        ]
        return cls(orders, menu_items, min_latency=min_latency, max_latency=max_latency)

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _sorted_orders(self) -> list[OrderSnapshot]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            self._orders.values(),
            key=lambda o: (o.created_at or epoch, o.order_id),
            reverse=True,
        )

    async def list_orders(self, status: Optional[OrderStatus] = None) -> list[OrderSnapshot]:
        await self._simulate_latency()
        orders = self._sorted_orders()
        if status is not None:
            orders = [o for o in orders if o.status == status]
        # Copies, so callers never mutate store state through a snapshot
        return [OrderSnapshot(**vars(o)) for o in orders]

    async def list_menu_items(self) -> list[MenuItemSnapshot]:
        await self._simulate_latency()
        return [MenuItemSnapshot(**vars(m)) for m in self._menu_items]

    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
    ) -> Optional[OrderSnapshot]:
        await self._simulate_latency()

        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                logger.warning(f"Memory: Order id {order_id} not found")
                return None

            if expected_status is not None and order.status != expected_status:
                logger.warning(
                    f"Memory: Order #{order.order_number} is {order.status.value}, "
                    f"expected {expected_status.value} - write skipped"
                )
                return None

            order.status = status
            order.updated_at = datetime.now(timezone.utc)
            self.write_count += 1

            logger.info(f"Memory: Order #{order.order_number} -> {status.value}")
            return OrderSnapshot(**vars(order))

    async def health_check(self) -> bool:
        return True
