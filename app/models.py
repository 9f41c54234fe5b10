"""
SQLAlchemy Database Models

Durable layout of the four entity kinds:
- users
- menu_items
- order_sessions
- orders (session and menu item refs may dangle once those are deleted)

Timestamps are written by the application in naive UTC so the relational
and in-memory backings stamp rows the same way.

Author: Khalil Bannouri
Version: 1.0.0
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from app.database import Base

# SQLite recycles the highest rowid after a delete unless AUTOINCREMENT is set
_NEVER_REUSE_IDS = {"sqlite_autoincrement": True}


class User(Base):
    """Admin account. Password is stored as given (no auth model yet)."""
    __tablename__ = "users"
    __table_args__ = _NEVER_REUSE_IDS

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password = Column(Text, nullable=False)

    def __repr__(self):
        return f"<User #{self.id} - {self.username}>"


class MenuItem(Base):
    """An entry of the shared menu."""
    __tablename__ = "menu_items"
    __table_args__ = _NEVER_REUSE_IDS

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class OrderSession(Base):
    """
    A group-ordering event for one restaurant.

    Active until finalized; ``finalized_at`` is set exactly when
    ``is_active`` turns false.
    """
    __tablename__ = "order_sessions"
    __table_args__ = _NEVER_REUSE_IDS

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    restaurant = Column(Text, nullable=False)
    session_link = Column(String(100), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    time_limit = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    finalized_at = Column(DateTime, nullable=True)

    def __repr__(self):
        state = "active" if self.is_active else "finalized"
        return f"<OrderSession #{self.id} - {self.name} - {state}>"


class Order(Base):
    """One participant's line in a session."""
    __tablename__ = "orders"
    __table_args__ = _NEVER_REUSE_IDS

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Deleting a session or a menu item leaves its orders pointing at it,
    # so neither reference carries a DB constraint
    session_id = Column(Integer, nullable=False, index=True)
    customer_name = Column(Text, nullable=False)
    menu_item_id = Column(Integer, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Order #{self.id} - session {self.session_id} - {self.customer_name}>"
