"""
Order Aggregation

Derived figures for the admin views. Nothing here is cached: every call
recomputes from the order rows it is given (or reads fresh from storage),
so results reflect all writes committed before the call.

Amounts are summed from the stored ``total_price`` of each order exactly
as submitted; ``unit_price * quantity`` is never recomputed.

Participants are distinct ``customer_name`` strings compared as-is:
"Ann", "ann" and "Ann " are three different people.
"""

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, Optional

from app.core.exceptions import FieldError, NotFoundError, ValidationError
from app.schemas import (
    CustomerRollup,
    DateRangeResponse,
    MenuItemResponse,
    OrderResponse,
    SessionStats,
    SessionSummaryResponse,
    to_naive_utc,
)
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)

UNKNOWN_ITEM = "Unknown"


def sum_totals(orders: Iterable[OrderResponse]) -> Decimal:
    return sum((Decimal(o.total_price) for o in orders), Decimal("0"))


def session_stats(orders: list[OrderResponse]) -> SessionStats:
    """Order count, amount and participant count for one session's orders."""
    return SessionStats(
        total_orders=len(orders),
        total_amount=sum_totals(orders),
        participant_count=len({o.customer_name for o in orders}),
    )


def customer_rollups(
    orders: list[OrderResponse],
    menu_items: Iterable[MenuItemResponse],
) -> list[CustomerRollup]:
    """
    Group orders by customer name, in order of each customer's first order.

    Args:
        orders: Orders of a single session
        menu_items: Menu used to name the items; orders whose item has
            been deleted show up as "Unknown"

    Returns:
        One rollup per distinct customer name
    """
    names = {item.id: item.name for item in menu_items}
    groups: dict[str, list[OrderResponse]] = {}
    for order in orders:
        groups.setdefault(order.customer_name, []).append(order)

    return [
        CustomerRollup(
            customer_name=customer,
            items_text=", ".join(
                f"{names.get(o.menu_item_id, UNKNOWN_ITEM)} x{o.quantity}"
                for o in customer_orders
            ),
            total=sum_totals(customer_orders),
            order_count=len(customer_orders),
            paid=all(o.is_paid for o in customer_orders),
        )
        for customer, customer_orders in groups.items()
    ]


def parse_range_bound(value: str, end_of_day: bool) -> datetime:
    """
    Parse an ISO date or datetime.

    A bare date stands for the start of that day, or for its very last
    instant when it is the upper bound.

    Raises:
        ValueError: If ``value`` is not ISO formatted
    """
    value = value.strip()
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return to_naive_utc(datetime.fromisoformat(value))
    return datetime.combine(day, time.max if end_of_day else time.min)


def resolve_date_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[datetime, datetime]:
    """
    Validate the ``startDate``/``endDate`` query pair.

    Raises:
        ValidationError: Listing every missing, malformed or inverted bound
    """
    errors = []
    bounds = {}
    for field, raw, end_of_day in (
        ("startDate", start_date, False),
        ("endDate", end_date, True),
    ):
        if not raw:
            errors.append(FieldError(field, "Field required"))
            continue
        try:
            bounds[field] = parse_range_bound(raw, end_of_day)
        except ValueError:
            errors.append(FieldError(field, "Expected an ISO date or datetime"))

    if not errors and bounds["startDate"] > bounds["endDate"]:
        errors.append(FieldError("endDate", "Must not be earlier than startDate"))

    if errors:
        raise ValidationError("Invalid date range", errors)
    return bounds["startDate"], bounds["endDate"]


class AggregationEngine:
    """
    Reads orders from storage and rolls them up.

    Attributes:
        storage: Backing to read sessions, orders and menu items from
    """

    def __init__(self, storage: BaseStorage):
        self.storage = storage

    async def _session_orders(self, session_id: int):
        session = await self.storage.get_order_session(session_id)
        if session is None:
            raise NotFoundError("Order session", session_id)
        return session, await self.storage.list_orders_by_session(session_id)

    async def stats(self, session_id: int) -> SessionStats:
        """
        Raises:
            NotFoundError: If the session does not exist
        """
        _, orders = await self._session_orders(session_id)
        return session_stats(orders)

    async def summary(self, session_id: int) -> SessionSummaryResponse:
        """Session, stats and per-customer rollups in one read."""
        session, orders = await self._session_orders(session_id)
        menu_items = await self.storage.list_menu_items()
        return SessionSummaryResponse(
            session=session,
            stats=session_stats(orders),
            customers=customer_rollups(orders, menu_items),
        )

    async def date_range(self, start: datetime, end: datetime) -> DateRangeResponse:
        """Orders of all sessions created in ``[start, end]`` with their totals."""
        orders = await self.storage.list_orders_by_date_range(start, end)
        logger.debug(f"{len(orders)} orders between {start} and {end}")
        return DateRangeResponse(
            start_date=start,
            end_date=end,
            total_orders=len(orders),
            paid_orders=sum(1 for o in orders if o.is_paid),
            total_amount=sum_totals(orders),
            orders=orders,
        )
