"""
In-Memory Storage Implementation

Keeps every entity in plain dictionaries owned by one MemoryStorage
object. Used in development mode (ENV_MODE=development) to:
    - Run the API without any database
    - Demo the ordering flow with a ready-made menu
    - Back the HTTP tests

Behavior:
    - Data is lost when the process stops
    - Six sample menu items are seeded on construction
    - Identifiers come from per-kind counters that only ever go up
    - Every read returns a copy, so callers cannot mutate stored state

Mutations never await, so on a single event loop each one lands
atomically with respect to other requests.

Author: Khalil Bannouri
Version: 1.0.0
"""

import itertools
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.core.exceptions import FieldError, ValidationError
from app.schemas import (
    MenuItemCreate,
    MenuItemResponse,
    OrderCreate,
    OrderResponse,
    OrderSessionCreate,
    OrderSessionResponse,
    UserCreate,
    UserResponse,
)
from app.services.storage.base import BaseStorage, check_update_fields, utcnow

logger = logging.getLogger(__name__)


SAMPLE_MENU = [
    MenuItemCreate(
        name="Margherita Pizza",
        description="Tomato sauce, fresh mozzarella and basil",
        price=Decimal("12.99"),
        category="Pizza",
    ),
    MenuItemCreate(
        name="Pepperoni Pizza",
        description="Tomato sauce, mozzarella and spicy pepperoni",
        price=Decimal("14.99"),
        category="Pizza",
    ),
    MenuItemCreate(
        name="Caesar Salad",
        description="Romaine, parmesan, croutons and Caesar dressing",
        price=Decimal("8.99"),
        category="Salads",
    ),
    MenuItemCreate(
        name="Chicken Burger",
        description="Grilled chicken breast, lettuce, tomato and mayo",
        price=Decimal("11.49"),
        category="Burgers",
    ),
    MenuItemCreate(
        name="Garlic Bread",
        description="Toasted baguette with garlic butter",
        price=Decimal("4.99"),
        category="Sides",
    ),
    MenuItemCreate(
        name="Lemonade",
        description="Freshly squeezed, served cold",
        price=Decimal("2.99"),
        category="Drinks",
    ),
]

_RECORD_TYPES = {
    "users": UserResponse,
    "menu_items": MenuItemResponse,
    "order_sessions": OrderSessionResponse,
    "orders": OrderResponse,
}


class MemoryStorage(BaseStorage):
    """
    Volatile implementation of the storage contract.

    Attributes:
        seed: Whether to load SAMPLE_MENU on construction

    Example:
        >>> storage = MemoryStorage()
        >>> items = await storage.list_menu_items()
        >>> len(items)
        6
    """

    def __init__(self, seed: bool = True):
        """
        Initialize empty tables and identifier counters.

        Args:
            seed: Load the sample menu (default: True)
        """
        self._users: dict[int, UserResponse] = {}
        self._menu_items: dict[int, MenuItemResponse] = {}
        self._order_sessions: dict[int, OrderSessionResponse] = {}
        self._orders: dict[int, OrderResponse] = {}

        self._ids = {
            "users": itertools.count(1),
            "menu_items": itertools.count(1),
            "order_sessions": itertools.count(1),
            "orders": itertools.count(1),
        }

        if seed:
            for item in SAMPLE_MENU:
                self._insert_menu_item(item)

        logger.info(
            f"MemoryStorage initialized "
            f"({len(self._menu_items)} menu items seeded)"
        )

    @property
    def provider_name(self) -> str:
        """Return the backing name."""
        return "memory"

    async def health_check(self) -> bool:
        """Always reachable."""
        return True

    def _next_id(self, kind: str) -> int:
        return next(self._ids[kind])

    @staticmethod
    def _sorted(table: dict) -> list:
        return [table[key].model_copy() for key in sorted(table)]

    @staticmethod
    def _copy(record):
        return record.model_copy() if record is not None else None

    def _update(self, kind: str, table: dict, record_id: int, fields: dict):
        record_type = _RECORD_TYPES[kind]
        check_update_fields(kind, record_type, fields)
        record = table.get(record_id)
        if record is None:
            return None
        updated = record_type.model_validate({**record.model_dump(), **fields})
        table[record_id] = updated
        return updated.model_copy()

    @staticmethod
    def _delete(table: dict, record_id: int) -> bool:
        return table.pop(record_id, None) is not None

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self) -> list[UserResponse]:
        return self._sorted(self._users)

    async def get_user(self, user_id: int) -> Optional[UserResponse]:
        return self._copy(self._users.get(user_id))

    async def get_user_by_username(self, username: str) -> Optional[UserResponse]:
        for user in self._users.values():
            if user.username == username:
                return user.model_copy()
        return None

    async def create_user(self, data: UserCreate) -> UserResponse:
        if any(u.username == data.username for u in self._users.values()):
            raise ValidationError(
                "Invalid user data",
                [FieldError("username", "Username already taken")],
            )
        user = UserResponse(id=self._next_id("users"), **data.model_dump())
        self._users[user.id] = user
        return user.model_copy()

    async def update_user(self, user_id: int, **fields) -> Optional[UserResponse]:
        username = fields.get("username")
        if username is not None and any(
            u.username == username and u.id != user_id for u in self._users.values()
        ):
            raise ValidationError(
                "Invalid user data",
                [FieldError("username", "Username already taken")],
            )
        return self._update("users", self._users, user_id, fields)

    async def delete_user(self, user_id: int) -> bool:
        return self._delete(self._users, user_id)

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    def _insert_menu_item(self, data: MenuItemCreate) -> MenuItemResponse:
        item = MenuItemResponse(id=self._next_id("menu_items"), **data.model_dump())
        self._menu_items[item.id] = item
        return item

    async def list_menu_items(self) -> list[MenuItemResponse]:
        return self._sorted(self._menu_items)

    async def get_menu_item(self, item_id: int) -> Optional[MenuItemResponse]:
        return self._copy(self._menu_items.get(item_id))

    async def create_menu_item(self, data: MenuItemCreate) -> MenuItemResponse:
        return self._insert_menu_item(data).model_copy()

    async def update_menu_item(self, item_id: int, **fields) -> Optional[MenuItemResponse]:
        return self._update("menu_items", self._menu_items, item_id, fields)

    async def delete_menu_item(self, item_id: int) -> bool:
        return self._delete(self._menu_items, item_id)

    # =========================================================================
    # ORDER SESSIONS
    # =========================================================================

    async def list_order_sessions(self) -> list[OrderSessionResponse]:
        return self._sorted(self._order_sessions)

    async def get_order_session(self, session_id: int) -> Optional[OrderSessionResponse]:
        return self._copy(self._order_sessions.get(session_id))

    async def get_order_session_by_link(self, session_link: str) -> Optional[OrderSessionResponse]:
        for session in self._order_sessions.values():
            if session.session_link == session_link:
                return session.model_copy()
        return None

    async def create_order_session(
        self,
        data: OrderSessionCreate,
        session_link: str,
    ) -> OrderSessionResponse:
        session = OrderSessionResponse(
            id=self._next_id("order_sessions"),
            name=data.name,
            restaurant=data.restaurant,
            session_link=session_link,
            is_active=True,
            time_limit=data.time_limit,
            created_at=utcnow(),
            finalized_at=None,
        )
        self._order_sessions[session.id] = session
        return session.model_copy()

    async def update_order_session(self, session_id: int, **fields) -> Optional[OrderSessionResponse]:
        return self._update("order_sessions", self._order_sessions, session_id, fields)

    async def delete_order_session(self, session_id: int) -> bool:
        return self._delete(self._order_sessions, session_id)

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def list_orders(self) -> list[OrderResponse]:
        return self._sorted(self._orders)

    async def list_orders_by_session(self, session_id: int) -> list[OrderResponse]:
        return [o for o in self._sorted(self._orders) if o.session_id == session_id]

    async def list_orders_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[OrderResponse]:
        return [o for o in self._sorted(self._orders) if start <= o.created_at <= end]

    async def get_order(self, order_id: int) -> Optional[OrderResponse]:
        return self._copy(self._orders.get(order_id))

    async def create_order(self, data: OrderCreate) -> OrderResponse:
        order = OrderResponse(
            id=self._next_id("orders"),
            created_at=utcnow(),
            **data.model_dump(),
        )
        self._orders[order.id] = order
        return order.model_copy()

    async def update_order(self, order_id: int, **fields) -> Optional[OrderResponse]:
        return self._update("orders", self._orders, order_id, fields)

    async def delete_order(self, order_id: int) -> bool:
        return self._delete(self._orders, order_id)

