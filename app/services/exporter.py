"""
Session CSV Exporter

Turns a session's orders into the spreadsheet the admin downloads after
finalizing: one row per order, prices formatted as currency.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from app.core.exceptions import NotFoundError
from app.schemas import (
    MenuItemResponse,
    OrderResponse,
    OrderSessionResponse,
    format_money,
)
from app.services.aggregation import UNKNOWN_ITEM
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class SessionExporter:
    """Builds CSV exports of order sessions."""

    COLUMNS = [
        "Customer Name",
        "Menu Item",
        "Quantity",
        "Unit Price",
        "Total Price",
        "Paid",
        "Order Time",
    ]

    CURRENCY_SYMBOL = "$"

    @classmethod
    def _currency(cls, amount) -> str:
        return f"{cls.CURRENCY_SYMBOL}{format_money(amount)}"

    @classmethod
    def build_frame(
        cls,
        orders: Iterable[OrderResponse],
        menu_items: Iterable[MenuItemResponse],
    ) -> pd.DataFrame:
        """
        One row per order, in the order they were placed.

        Orders whose menu item has since been deleted are exported with
        the item name "Unknown Item".
        """
        names = {item.id: item.name for item in menu_items}
        rows = [
            {
                "Customer Name": order.customer_name,
                "Menu Item": names.get(order.menu_item_id, f"{UNKNOWN_ITEM} Item"),
                "Quantity": order.quantity,
                "Unit Price": cls._currency(order.unit_price),
                "Total Price": cls._currency(order.total_price),
                "Paid": "yes" if order.is_paid else "no",
                "Order Time": order.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            }
            for order in orders
        ]
        return pd.DataFrame(rows, columns=cls.COLUMNS)

    @classmethod
    def to_csv(
        cls,
        session: OrderSessionResponse,
        orders: list[OrderResponse],
        menu_items: Iterable[MenuItemResponse],
    ) -> str:
        """Render the session's orders as CSV text (header included)."""
        df = cls.build_frame(orders, menu_items)
        logger.info(f"Exporting {len(df)} orders of session #{session.id}")
        return df.to_csv(index=False)

    @classmethod
    def filename(cls, session: OrderSessionResponse, today: Optional[date] = None) -> str:
        """``<session name>-<YYYY-MM-DD>.csv``, safe for a Content-Disposition header."""
        today = today or date.today()
        stem = re.sub(r"[^\w\- ]+", "", session.name, flags=re.ASCII).strip() or "orders"
        return f"{stem}-{today.isoformat()}.csv"

    @classmethod
    async def export_session(cls, storage: BaseStorage, session_id: int) -> tuple[str, str]:
        """
        Read a session with its orders and render it.

        Returns:
            (filename, csv_text)

        Raises:
            NotFoundError: If the session does not exist
        """
        session = await storage.get_order_session(session_id)
        if session is None:
            raise NotFoundError("Order session", session_id)
        orders = await storage.list_orders_by_session(session_id)
        menu_items = await storage.list_menu_items()
        return cls.filename(session), cls.to_csv(session, orders, menu_items)
