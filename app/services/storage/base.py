"""
Storage Service Abstract Base Class

Defines the interface contract for every storage backing.
Both MemoryStorage and DatabaseStorage must implement these methods and
must behave identically for the same sequence of calls: same return
values, same ``None``/``False`` for absent ids, same errors, differing
only in the exact identifier and timestamp values they assign.

Design Pattern: Strategy Pattern
    - The backing is chosen once at startup from configuration
    - Handlers and services only ever see BaseStorage
    - The contract test suite runs against every implementation

Per entity kind the contract is:
    list_*()            -> list of entities, ordered by id
    get_*(id)           -> entity, or None when absent
    create_*(data)      -> entity with a fresh id and defaults filled in
    update_*(id, **f)   -> updated entity, or None when absent
    delete_*(id)        -> True iff an entity existed and was removed

Identifiers are increasing integers per kind and are never handed out
twice, not even after the entity holding them is deleted.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterable, Optional

from pydantic import BaseModel

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


def utcnow() -> datetime:
    """Current time as naive UTC, the way timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Fields that no update may touch, per entity kind
IMMUTABLE_FIELDS = {
    "users": frozenset({"id"}),
    "menu_items": frozenset({"id"}),
    "order_sessions": frozenset({"id", "session_link", "created_at"}),
    "orders": frozenset({"id"}),
}


def check_update_fields(kind: str, model: type[BaseModel], fields: Iterable[str]) -> None:
    """
    Reject updates naming unknown or immutable fields.

    Raises:
        ValueError: If a field does not exist or may not change
    """
    known = set(model.model_fields)
    for name in fields:
        if name not in known:
            raise ValueError(f"Unknown field for {kind}: {name}")
        if name in IMMUTABLE_FIELDS[kind]:
            raise ValueError(f"Field {name} of {kind} cannot be updated")


class BaseStorage(ABC):
    """
    Abstract base class for storage backings.

    Example:
        >>> storage = get_storage()  # Returns Memory or Database
        >>> session = await storage.get_order_session_by_link("V1StGXR8_Z5jdHi6B-myT")
        >>> if session is None:
        ...     raise NotFoundError("Order session", "V1StGXR8_Z5jdHi6B-myT")
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the backing.

        Returns:
            str: Backing name (e.g., "memory", "sqlite", "postgresql")
        """
        pass

    async def initialize(self) -> None:
        """Prepare the backing (create tables, seed data). Called at startup."""

    async def close(self) -> None:
        """Release resources held by the backing. Called at shutdown."""

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the backing is reachable.

        Returns:
            bool: True if reads can be served
        """
        pass

    # =========================================================================
    # USERS
    # =========================================================================

    @abstractmethod
    async def list_users(self) -> list[UserResponse]:
        pass

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def create_user(self, data: UserCreate) -> UserResponse:
        """
        Create a user.

        Raises:
            ValidationError: If the username is already taken
        """
        pass

    @abstractmethod
    async def update_user(self, user_id: int, **fields) -> Optional[UserResponse]:
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool:
        pass

    # =========================================================================
    # MENU ITEMS
    # =========================================================================

    @abstractmethod
    async def list_menu_items(self) -> list[MenuItemResponse]:
        pass

    @abstractmethod
    async def get_menu_item(self, item_id: int) -> Optional[MenuItemResponse]:
        pass

    @abstractmethod
    async def create_menu_item(self, data: MenuItemCreate) -> MenuItemResponse:
        pass

    @abstractmethod
    async def update_menu_item(self, item_id: int, **fields) -> Optional[MenuItemResponse]:
        pass

    @abstractmethod
    async def delete_menu_item(self, item_id: int) -> bool:
        """
        Hard-delete a menu item.

        Orders referencing it are left as they are.
        """
        pass

    # =========================================================================
    # ORDER SESSIONS
    # =========================================================================

    @abstractmethod
    async def list_order_sessions(self) -> list[OrderSessionResponse]:
        pass

    @abstractmethod
    async def get_order_session(self, session_id: int) -> Optional[OrderSessionResponse]:
        pass

    @abstractmethod
    async def get_order_session_by_link(self, session_link: str) -> Optional[OrderSessionResponse]:
        """Exact match on the session link token."""
        pass

    @abstractmethod
    async def create_order_session(
        self,
        data: OrderSessionCreate,
        session_link: str,
    ) -> OrderSessionResponse:
        """
        Persist a new, active session.

        Args:
            data: Validated session fields
            session_link: Token generated by the lifecycle manager

        Returns:
            OrderSessionResponse: With ``is_active=True`` and no ``finalized_at``
        """
        pass

    @abstractmethod
    async def update_order_session(self, session_id: int, **fields) -> Optional[OrderSessionResponse]:
        pass

    @abstractmethod
    async def delete_order_session(self, session_id: int) -> bool:
        """Delete a session. Its orders are not touched."""
        pass

    # =========================================================================
    # ORDERS
    # =========================================================================

    @abstractmethod
    async def list_orders(self) -> list[OrderResponse]:
        pass

    @abstractmethod
    async def list_orders_by_session(self, session_id: int) -> list[OrderResponse]:
        pass

    @abstractmethod
    async def list_orders_by_date_range(
        self,
        start: datetime,
        end: datetime,
    ) -> list[OrderResponse]:
        """
        Orders of every session created within ``[start, end]``.

        Both bounds are inclusive and compared as naive UTC.
        """
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[OrderResponse]:
        pass

    @abstractmethod
    async def create_order(self, data: OrderCreate) -> OrderResponse:
        pass

    @abstractmethod
    async def update_order(self, order_id: int, **fields) -> Optional[OrderResponse]:
        pass

    @abstractmethod
    async def delete_order(self, order_id: int) -> bool:
        pass
