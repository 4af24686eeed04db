from decimal import Decimal
from typing import List
from pydantic import BaseModel, ConfigDict


# (record field, sheet header) in persisted column order
SHEET_COLUMNS = [
    ("purchase_date", "Purchase Date"),
    ("purchase_time", "Purchase Time"),
    ("event_date", "Event Date"),
    ("event_time", "Event Time"),
    ("attendee_name", "Attendee Name"),
    ("email", "Email"),
    ("mailing_address", "Mailing Address"),
    ("ticket_name", "Ticket Name"),
    ("add_on_name", "Add-On Name"),
    ("event_title", "Event Title"),
    ("venue_name", "Venue Name"),
    ("venue_address", "Venue Address"),
    ("event_start_time", "Event Start Time"),
    ("event_end_time", "Event End Time"),
    ("ticket_id", "Ticket ID"),
    ("cost_item_id", "Cost Item ID"),
    ("qr_code", "QR Code"),
    ("ticket_status", "Ticket Status"),
    ("payment_status", "Payment Status"),
    ("total_ticket_price", "Total Ticket Price"),
    ("face_value_price", "Face Value Price"),
    ("fees", "Fees"),
    ("currency", "Currency"),
]

SHEET_HEADERS = [header for _, header in SHEET_COLUMNS]

CENTS = Decimal("0.01")


def format_money(amount: Decimal) -> str:
    return format(amount.quantize(CENTS), "f")


class TicketRecord(BaseModel):
    """One persisted row per ticket."""
    model_config = ConfigDict(frozen=True)

    purchase_date: str = ""
    purchase_time: str = ""
    event_date: str = ""
    event_time: str = ""
    attendee_name: str = ""
    email: str = ""
    mailing_address: str = ""
    ticket_name: str = ""
    add_on_name: str = ""
    event_title: str = ""
    venue_name: str = ""
    venue_address: str = ""
    host_name: str = ""
    event_start_time: str = ""
    event_end_time: str = ""
    ticket_id: str
    cost_item_id: str = ""
    qr_code: str = ""
    ticket_status: str = ""
    payment_status: str = ""
    total_ticket_price: Decimal = Decimal("0")
    face_value_price: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    currency: str = "USD"

    def to_row(self) -> List[str]:
        row = []
        for field, _ in SHEET_COLUMNS:
            value = getattr(self, field)
            row.append(format_money(value) if isinstance(value, Decimal) else value)
        return row

    def with_cost_item_id(self, cost_item_id: str) -> "TicketRecord":
        return self.model_copy(update={"cost_item_id": cost_item_id})
