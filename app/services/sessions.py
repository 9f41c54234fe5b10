"""
Order Session Lifecycle

A session is Active from the moment it is created until it is finalized.
Finalizing is one-way; there is no operation that reopens a session.

    create ──► ACTIVE ──finalize──► FINALIZED
                                      │
                                      └─finalize──► (unchanged)

Every session gets a random url-safe link token at creation. The token
is what participants share; it never changes afterwards.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import secrets

from app.core.exceptions import NotFoundError
from app.schemas import OrderSessionCreate, OrderSessionResponse
from app.services.storage.base import BaseStorage, utcnow

logger = logging.getLogger(__name__)

MAX_LINK_ATTEMPTS = 5


class SessionLifecycleManager:
    """
    Creates, resolves and finalizes order sessions.

    Attributes:
        storage: Backing the sessions are kept in
        link_bytes: Random bytes per generated link token
    """

    def __init__(self, storage: BaseStorage, link_bytes: int = 16):
        self.storage = storage
        self.link_bytes = link_bytes

    def generate_link(self) -> str:
        """Random url-safe token (16 bytes -> 22 characters)."""
        return secrets.token_urlsafe(self.link_bytes)

    async def _unused_link(self) -> str:
        for _ in range(MAX_LINK_ATTEMPTS):
            link = self.generate_link()
            if await self.storage.get_order_session_by_link(link) is None:
                return link
            logger.warning("Session link collision, generating a new one")
        raise RuntimeError(f"Could not generate an unused session link in {MAX_LINK_ATTEMPTS} attempts")

    async def create(self, data: OrderSessionCreate) -> OrderSessionResponse:
        """
        Open a new, active session with a fresh link.

        Args:
            data: Validated session fields

        Returns:
            OrderSessionResponse: The stored session
        """
        link = await self._unused_link()
        session = await self.storage.create_order_session(data, session_link=link)
        logger.info(f"Order session #{session.id} '{session.name}' created for {session.restaurant}")
        return session

    async def list_all(self) -> list[OrderSessionResponse]:
        return await self.storage.list_order_sessions()

    async def get(self, session_id: int) -> OrderSessionResponse:
        """
        Raises:
            NotFoundError: If no session has this id
        """
        session = await self.storage.get_order_session(session_id)
        if session is None:
            raise NotFoundError("Order session", session_id)
        return session

    async def get_by_link(self, session_link: str) -> OrderSessionResponse:
        """
        Raises:
            NotFoundError: If no session has exactly this link
        """
        session = await self.storage.get_order_session_by_link(session_link)
        if session is None:
            raise NotFoundError("Order session", session_link)
        return session

    async def finalize(self, session_id: int) -> OrderSessionResponse:
        """
        Close a session to further orders.

        Finalizing an already finalized session returns it untouched,
        keeping the original ``finalized_at``.

        Raises:
            NotFoundError: If no session has this id (nothing is written)
        """
        session = await self.get(session_id)
        if not session.is_active:
            logger.info(f"Order session #{session_id} already finalized at {session.finalized_at}")
            return session

        updated = await self.storage.update_order_session(
            session_id,
            is_active=False,
            finalized_at=utcnow(),
        )
        if updated is None:
            # Deleted between the read and the write
            raise NotFoundError("Order session", session_id)

        logger.info(f"Order session #{session_id} finalized")
        return updated
