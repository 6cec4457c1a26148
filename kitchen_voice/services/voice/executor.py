"""
Command Executor

Maps a typed command request to a read or write against the data store
and returns an ExecutionResult. The only write is a single order status
change, issued as a conditional update on the status seen in the snapshot.

Version: 4.0.0
"""

import logging
from typing import Any

from kitchen_voice.models import OrderStatus
from kitchen_voice.services.store import BaseDataStore, Snapshot
from kitchen_voice.services.voice.schemas import (
    CommandAnalysis,
    CommandRequest,
    ExecutionResult,
    HelpRequest,
    MenuQueryRequest,
    OrderQueryRequest,
    OrderStatusRequest,
    UnknownRequest,
)

logger = logging.getLogger(__name__)

RECENT_ORDER_LIMIT = 5
POPULAR_ITEM_LIMIT = 5

HELP_TEXT = """Here's what I can help you with:
• Update orders: "Mark order 123 as done" or "Cancel order 456"
• Check orders: "How many pending orders?"
• Menu insights: "Show popular items"
• Get help: "What can you do?"

Available statuses: pending (default), done, cancelled
Just speak naturally - I'll understand what you mean!"""

HELP_COMMANDS = [
    "Mark order [number] as done",
    "Cancel order [number]",
    "How many pending orders?",
    "Show popular items",
    "List available menu items",
    "Help",
]


class CommandExecutor:
    """
    Executes one analyzed command against a snapshot and the data store.

    Example:
        >>> executor = CommandExecutor(store)
        >>> result = await executor.execute(analysis, snapshot)
        >>> result.success
        True
    """

    def __init__(self, store: BaseDataStore):
        self.store = store

    async def execute(self, analysis: CommandAnalysis, snapshot: Snapshot) -> ExecutionResult:
        request = analysis.to_request()
        return await self.execute_request(request, snapshot)

    async def execute_request(self, request: CommandRequest, snapshot: Snapshot) -> ExecutionResult:
        handlers = {
            OrderStatusRequest: self._order_status,
            OrderQueryRequest: self._order_query,
            MenuQueryRequest: self._menu_query,
            HelpRequest: self._help,
            UnknownRequest: self._unknown,
        }

        handler = handlers[type(request)]
        result = await handler(request, snapshot)

        logger.info(
            f"Executed {type(request).__name__}: success={result.success} "
            f"- {result.text.splitlines()[0] if result.text else ''}"
        )
        return result

    # =========================================================================
    # HANDLERS
    # =========================================================================

    async def _order_status(self, request: OrderStatusRequest, snapshot: Snapshot) -> ExecutionResult:
        number = request.order_number
        target = request.status

        if not number:
            return ExecutionResult.fail(
                "I need an order number. Please say something like 'mark order 123 as done'."
            )

        if not target:
            return ExecutionResult.fail(
                f"I need a status for order {number}. Please specify: done, cancelled, or pending."
            )

        order = snapshot.find_order(number)
        if order is None:
            return ExecutionResult.fail(
                f"Order {number} not found. Please check the order number.",
                data={"order_number": number},
            )

        if order.status == target:
            return ExecutionResult.fail(
                f"Order {number} is already in that status ({target.value}).",
                data={"order_number": number, "status": target.value},
            )

        updated = await self.store.update_order_status(
            order.order_id,
            target,
            expected_status=order.status,
        )
        if updated is None:
            return ExecutionResult.fail(
                f"Order {number} was changed by someone else. Please check it and try again.",
                data={"order_number": number},
            )

        return ExecutionResult.ok(
            f"Order {number} updated to {target.value}",
            data={
                "order": updated.to_dict(),
                "previous_status": order.status.value,
                "new_status": target.value,
            },
        )

    async def _order_query(self, request: OrderQueryRequest, snapshot: Snapshot) -> ExecutionResult:
        if request.filter is not None:
            orders = snapshot.orders_with_status(request.filter)
            return ExecutionResult.ok(
                f"Found {len(orders)} {request.filter.value} orders",
                data={
                    "count": len(orders),
                    "orders": [o.to_dict() for o in orders],
                    "type": request.filter.value,
                },
            )

        counts: dict[str, Any] = {
            status.value: len(snapshot.orders_with_status(status))
            for status in OrderStatus
        }
        counts["total"] = len(snapshot.orders)
        counts["recent"] = [o.to_dict() for o in snapshot.orders[:RECENT_ORDER_LIMIT]]

        return ExecutionResult.ok(
            f"Order summary: {counts['total']} total, {counts['pending']} pending, "
            f"{counts['done']} done, {counts['cancelled']} cancelled",
            data=counts,
        )

    async def _menu_query(self, request: MenuQueryRequest, snapshot: Snapshot) -> ExecutionResult:
        if request.sort_by_popularity:
            ranked = sorted(snapshot.menu_items, key=lambda m: m.total_ordered, reverse=True)
            popular = ranked[:POPULAR_ITEM_LIMIT]

            if not popular:
                return ExecutionResult.ok(
                    "No menu items to rank",
                    data={"items": [], "type": "popular", "top_item": None},
                )

            top_item = popular[0]
            return ExecutionResult.ok(
                f"Most popular: {top_item.name} with {top_item.total_ordered} orders",
                data={
                    "items": [m.to_dict() for m in popular],
                    "type": "popular",
                    "top_item": top_item.to_dict(),
                },
            )

        available = [m for m in snapshot.menu_items if m.availability]
        return ExecutionResult.ok(
            f"{len(available)} items available on the menu",
            data={
                "items": [m.to_dict() for m in available],
                "type": "available",
                "count": len(available),
            },
        )

    async def _help(self, request: HelpRequest, snapshot: Snapshot) -> ExecutionResult:
        return ExecutionResult.ok(HELP_TEXT, data={"commands": list(HELP_COMMANDS)})

    async def _unknown(self, request: UnknownRequest, snapshot: Snapshot) -> ExecutionResult:
        return ExecutionResult.fail(
            "Command not understood. Could you please rephrase it or say 'help' for assistance?"
        )
