"""
SQL Data Store Implementation

Production implementation backed by PostgreSQL through SQLAlchemy async.
Used when ENV_MODE=production or ENV_MODE=staging.

Status writes are issued as a single conditional UPDATE
(`... WHERE order_id = :id AND status = :expected`), so two staff members
issuing commands against the same order cannot silently overwrite each
other.

Version: 4.0.0
"""

import logging
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kitchen_voice.models import MenuItem, Order, OrderStatus
from kitchen_voice.services.store.base import (
    BaseDataStore,
    MenuItemSnapshot,
    OrderSnapshot,
)

logger = logging.getLogger(__name__)


def _order_snapshot(order: Order) -> OrderSnapshot:
    return OrderSnapshot(
        order_id=order.order_id,
        order_number=order.order_number,
        total_amount=order.total_amount,
        status=OrderStatus(order.status),
        customer_note=order.customer_note,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _menu_snapshot(item: MenuItem) -> MenuItemSnapshot:
    return MenuItemSnapshot(
        menu_id=item.menu_id,
        name=item.name,
        price=item.price,
        availability=bool(item.availability),
        total_ordered=item.total_ordered or 0,
    )


class SqlDataStore(BaseDataStore):
    """
    SQLAlchemy-backed data store.

    Each call opens its own short-lived session from the session factory.

    Example:
        >>> from kitchen_voice.database import async_session_maker
        >>> store = SqlDataStore(async_session_maker)
        >>> orders = await store.list_orders(OrderStatus.PENDING)
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        logger.info("SqlDataStore initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "postgresql"

    async def list_orders(self, status: Optional[OrderStatus] = None) -> list[OrderSnapshot]:
        query = select(Order).order_by(Order.created_at.desc(), Order.order_id.desc())
        if status is not None:
            query = query.where(Order.status == status)

        async with self._session_maker() as session:
            result = await session.execute(query)
            return [_order_snapshot(o) for o in result.scalars().all()]

    async def list_menu_items(self) -> list[MenuItemSnapshot]:
        async with self._session_maker() as session:
            result = await session.execute(select(MenuItem).order_by(MenuItem.menu_id))
            return [_menu_snapshot(m) for m in result.scalars().all()]

    async def update_order_status(
        self,
        order_id: int,
        status: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
    ) -> Optional[OrderSnapshot]:
        statement = (
            update(Order)
            .where(Order.order_id == order_id)
            .values(status=status, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if expected_status is not None:
            statement = statement.where(Order.status == expected_status)

        async with self._session_maker() as session:
            result = await session.execute(statement)
            if result.rowcount == 0:
                await session.rollback()
                logger.warning(
                    f"SQL: Status write for order id {order_id} matched no rows "
                    f"(expected={expected_status.value if expected_status else 'any'})"
                )
                return None

            await session.commit()

            refreshed = await session.execute(select(Order).where(Order.order_id == order_id))
            order = refreshed.scalar_one()
            logger.info(f"SQL: Order #{order.order_number} -> {status.value}")
            return _order_snapshot(order)

    async def health_check(self) -> bool:
        """Run a trivial query to verify connectivity."""
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.count(Order.order_id)))
            logger.debug("SQL: Health check passed")
            return True
        except SQLAlchemyError as e:
            logger.error(f"SQL: Health check failed - {e}")
            return False
