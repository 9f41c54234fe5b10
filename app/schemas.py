"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase JSON (``isActive``, ``sessionLink``, ...).
Monetary amounts travel as strings with exactly two decimal places and
are held as ``Decimal`` everywhere in between.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


CENTS = Decimal("0.01")


def format_money(value: Decimal) -> str:
    """Render an amount with exactly two decimal places."""
    return f"{Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP):.2f}"


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored naive in UTC; aware inputs are converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Outgoing amounts: any Decimal, serialized as "12.50"
Money = Annotated[Decimal, PlainSerializer(format_money, return_type=str)]

# Incoming amounts: non-negative, at most two decimal places
MoneyIn = Annotated[
    Money,
    Field(ge=0, max_digits=10, decimal_places=2),
    AfterValidator(_to_cents),
]


class CamelModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _reject_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class MenuItemCreate(CamelModel):
    """Request schema for adding an item to the menu."""
    name: str = Field(..., min_length=1, max_length=200, examples=["Margherita Pizza"])
    description: str = Field(..., max_length=1000, examples=["Tomato, mozzarella, basil"])
    price: MoneyIn = Field(..., examples=["14.99"])
    category: str = Field(..., min_length=1, max_length=100, examples=["Pizza"])
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True


class MenuItemUpdate(CamelModel):
    """Partial update of a menu item. Omitted fields are left untouched."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[MoneyIn] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None

    @field_validator("name", "description", "price", "category", "is_available", mode="before")
    @classmethod
    def validate_not_null(cls, v):
        return _reject_null(v)


class OrderSessionCreate(CamelModel):
    """
    Request schema for opening a session.

    The session link, active flag and timestamps are assigned by the
    server; any such keys in the payload are ignored.
    """
    name: str = Field(..., min_length=1, max_length=200, examples=["Friday team lunch"])
    restaurant: str = Field(..., min_length=1, max_length=200, examples=["Luigi's"])
    time_limit: Optional[datetime] = Field(None, examples=["2024-01-15T12:30:00"])

    @field_validator("time_limit")
    @classmethod
    def validate_time_limit(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class OrderCreate(CamelModel):
    """
    Request schema for placing an order in a session.

    ``total_price`` is computed by the client and stored as given.
    """
    session_id: int = Field(..., ge=1, examples=[1])
    customer_name: str = Field(..., min_length=1, max_length=100, examples=["Ann"])
    menu_item_id: int = Field(..., ge=1, examples=[3])
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    unit_price: MoneyIn = Field(..., examples=["14.99"])
    total_price: MoneyIn = Field(..., examples=["29.98"])
    is_paid: bool = False


class PaymentStatusUpdate(CamelModel):
    """Request schema for flagging an order as paid or unpaid."""
    is_paid: bool


class UserCreate(CamelModel):
    """Admin account registration."""
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class MenuItemResponse(CamelModel):
    """A menu item as stored."""
    id: int
    name: str
    description: str
    price: Money
    category: str
    image_url: Optional[str] = None
    is_available: bool


class OrderSessionResponse(CamelModel):
    """An order session as stored."""
    id: int
    name: str
    restaurant: str
    session_link: str
    is_active: bool
    time_limit: Optional[datetime] = None
    created_at: datetime
    finalized_at: Optional[datetime] = None


class OrderResponse(CamelModel):
    """An order as stored."""
    id: int
    session_id: int
    customer_name: str
    menu_item_id: int
    quantity: int
    unit_price: Money
    total_price: Money
    is_paid: bool
    created_at: datetime


class UserResponse(CamelModel):
    """A user as stored. Never served over HTTP."""
    id: int
    username: str
    password: str


class SessionStats(CamelModel):
    """Figures recomputed from a session's current orders."""
    total_orders: int
    total_amount: Money
    participant_count: int


class CustomerRollup(CamelModel):
    """All orders of one participant, flattened for the summary view."""
    customer_name: str
    items_text: str
    total: Money
    order_count: int
    paid: bool


class SessionSummaryResponse(CamelModel):
    """Session, its statistics and the per-customer breakdown."""
    session: OrderSessionResponse
    stats: SessionStats
    customers: List[CustomerRollup]


class DateRangeResponse(CamelModel):
    """Orders from every session created within a date range."""
    start_date: datetime
    end_date: datetime
    total_orders: int
    paid_orders: int
    total_amount: Money
    orders: List[OrderResponse]


class FieldErrorResponse(BaseModel):
    """One violated field."""
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    errors: Optional[List[FieldErrorResponse]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    timestamp: datetime
