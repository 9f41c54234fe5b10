"""
Order Desk

Places and maintains participants' orders within a session.

Rules:
    - The session must exist, and must still be active to accept orders
    - The menu item must exist at the time the order is placed
    - Prices are stored exactly as submitted by the client
    - Payment can be flagged at any time, also after finalization
"""

import logging

from app.core.exceptions import NotFoundError, SessionClosedError
from app.schemas import OrderCreate, OrderResponse
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class OrderDesk:
    """
    Attributes:
        storage: Backing orders, sessions and menu items live in
    """

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    async def list_for_session(self, session_id: int) -> list[OrderResponse]:
        """
        Raises:
            NotFoundError: If the session does not exist
        """
        if await self.storage.get_order_session(session_id) is None:
            raise NotFoundError("Order session", session_id)
        return await self.storage.list_orders_by_session(session_id)

    async def get(self, order_id: int) -> OrderResponse:
        order = await self.storage.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def place(self, data: OrderCreate) -> OrderResponse:
        """
        Add an order to an active session.

        Raises:
            NotFoundError: If the session or the menu item does not exist
            SessionClosedError: If the session has been finalized
        """
        session = await self.storage.get_order_session(data.session_id)
        if session is None:
            raise NotFoundError("Order session", data.session_id)
        if not session.is_active:
            raise SessionClosedError(session.id)
        if await self.storage.get_menu_item(data.menu_item_id) is None:
            raise NotFoundError("Menu item", data.menu_item_id)

        if data.total_price != data.unit_price * data.quantity:
            logger.warning(
                f"Order for session #{data.session_id} by '{data.customer_name}': "
                f"total {data.total_price} != {data.unit_price} x {data.quantity}, storing as submitted"
            )

        order = await self.storage.create_order(data)
        logger.info(
            f"Order #{order.id} placed in session #{order.session_id} "
            f"by '{order.customer_name}' ({order.total_price})"
        )
        return order

    async def set_payment(self, order_id: int, is_paid: bool) -> OrderResponse:
        """
        Raises:
            NotFoundError: If the order does not exist
        """
        order = await self.storage.update_order(order_id, is_paid=is_paid)
        if order is None:
            raise NotFoundError("Order", order_id)
        logger.info(f"Order #{order_id} marked as {'paid' if is_paid else 'unpaid'}")
        return order

    async def delete(self, order_id: int) -> None:
        """
        Raises:
            NotFoundError: If the order does not exist
        """
        if not await self.storage.delete_order(order_id):
            raise NotFoundError("Order", order_id)
        logger.info(f"Order #{order_id} deleted")
