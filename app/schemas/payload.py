from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Optional
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class ItemKind(str, Enum):
    PRIMARY = "PRIMARY"
    ADD_ON = "ADD_ON"


class PayloadModel(BaseModel):
    """Base for webhook payload entities: unknown keys ignored, numeric ids read as strings."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


Price = Annotated[Optional[Decimal], BeforeValidator(_blank_to_none)]


class Rate(PayloadModel):
    id: str
    name: Optional[str] = None
    price: Price = None
    src_price: Price = None

    @property
    def effective_price(self) -> Optional[Decimal]:
        return self.price if self.price is not None else self.src_price


class CostItem(PayloadModel):
    id: str
    name: Optional[str] = None
    rate_id: Optional[str] = None
    is_add_on: Optional[bool] = None
    rate_type: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    guest_email: Optional[str] = None
    qr_code: Optional[str] = None
    price: Price = None
    src_price: Price = None
    state: Optional[str] = None

    @property
    def fallback_price(self) -> Optional[Decimal]:
        return self.price if self.price is not None else self.src_price


class Ticket(PayloadModel):
    id: str
    event_id: Optional[str] = None
    cost_item_ids: List[str] = Field(default_factory=list)
    host_field_ids: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    state: Optional[str] = None
    payment_state: Optional[str] = None
    buyer_email: Optional[str] = None
    src_currency: Optional[str] = None
    price: Price = None
    src_price: Price = None

    @field_validator("cost_item_ids", "host_field_ids", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return [] if value is None else value


class Event(PayloadModel):
    id: str
    start_stamp: Optional[float] = None
    end_stamp: Optional[float] = None


class Listing(PayloadModel):
    id: Optional[str] = None
    title: Optional[str] = None
    venue_name: Optional[str] = None
    address: Optional[str] = None
    host_name: Optional[str] = None


class HostField(PayloadModel):
    id: str
    name: Optional[str] = None
    # checkbox and multi-select answers arrive as lists or booleans
    value: Any = None

    @property
    def text_value(self) -> str:
        if self.value is None:
            return ""
        if isinstance(self.value, (list, tuple)):
            return ", ".join(str(part) for part in self.value if part is not None)
        return str(self.value)


class RawEventPayload(PayloadModel):
    event: Optional[str] = None
    tickets: List[Ticket] = Field(default_factory=list)
    cost_items: List[CostItem] = Field(default_factory=list)
    rates: List[Rate] = Field(default_factory=list)
    events: List[Event] = Field(default_factory=list)
    listings: List[Listing] = Field(default_factory=list)
    host_fields: List[HostField] = Field(default_factory=list)

    @field_validator("tickets", "cost_items", "rates", "events", "listings", "host_fields", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return [] if value is None else value
