from datetime import datetime
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict, Field, field_validator

SHIPPING_METHODS = (
    "n/a",
    "EMS",
    "SAL",
    "AIRMAIL",
    "SURFACE",
    "FEDEX",
    "DHL",
    "Colissimo",
    "UPS",
    "Domestic",
)

COLLECTION_STATUSES = ("Owned", "Ordered", "Paid", "Shipped", "Sold")

ORDERED_STATUS = "Ordered"

# Bounds of collection.score Numeric(3, 1) and collection.price Numeric(12, 2)
MAX_SCORE = Decimal("10")
MAX_PRICE = Decimal("10000000000")


def _parse_amount(value: str) -> Decimal | None:
    """Parse a non-negative decimal string. Blank means "use the default"."""
    if not value.strip():
        return None
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        raise ValueError(f"'{value}' is not a decimal number") from None
    if not parsed.is_finite() or parsed < 0:
        raise ValueError(f"'{value}' must be a non-negative number")
    return parsed


def _decimal_places(value: Decimal) -> int:
    return max(0, -value.normalize().as_tuple().exponent)


class ImportRecord(BaseModel):
    """One row of a collection export, as received from the client."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    item_external_id: int = Field(..., alias="itemExternalId", gt=0)
    status: str = "Owned"
    count: int = Field(1, ge=1)
    score: str = ""
    payment_date: str | None = None
    shipping_date: str | None = None
    collecting_date: str | None = None
    price: str = ""
    shop: str = ""
    shipping_method: str = "n/a"
    note: str = ""
    order_id: str | None = Field(None, alias="orderId")  # source-side order marker
    order_date: str | None = Field(None, alias="orderDate")

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        if v not in COLLECTION_STATUSES:
            raise ValueError(f"status must be one of {', '.join(COLLECTION_STATUSES)}")
        return v

    @field_validator("shipping_method")
    @classmethod
    def check_shipping_method(cls, v: str) -> str:
        if v not in SHIPPING_METHODS:
            raise ValueError(f"shipping_method must be one of {', '.join(SHIPPING_METHODS)}")
        return v

    @field_validator("score")
    @classmethod
    def check_score(cls, v: str) -> str:
        parsed = _parse_amount(v)
        if parsed is None:
            return v
        if parsed > MAX_SCORE or _decimal_places(parsed) > 1:
            raise ValueError(f"score must be between 0 and {MAX_SCORE} with one decimal place")
        return v

    @field_validator("price")
    @classmethod
    def check_price(cls, v: str) -> str:
        parsed = _parse_amount(v)
        if parsed is None:
            return v
        if parsed >= MAX_PRICE or _decimal_places(parsed) > 2:
            raise ValueError(f"price must be below {MAX_PRICE} with at most two decimal places")
        return v

    @field_validator("order_id")
    @classmethod
    def blank_marker_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class JobStatusRecord(BaseModel):
    job_id: str
    status: str  # queued, human readable progress, or terminal message
    finished: bool
    created_at: datetime


class SyncResponse(BaseModel):
    status: str
    is_finished: bool
    existing_items_to_insert: int
    new_items: int
    job_id: str | None = None


class JobStatusResponse(BaseModel):
    status: str
    finished: bool
    created_at: datetime
