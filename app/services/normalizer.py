"""
Turns a Universe webhook payload into flat ticket records.

One record per ticket (never per cost item). Everything here is pure:
no I/O, no settings lookups; the caller passes a WebhookConfig.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import WebhookConfig
from app.core.exceptions import RecordSkippedError
from app.schemas.payload import CostItem, Event, ItemKind, Listing, Rate, RawEventPayload, Ticket
from app.schemas.ticket_record import TicketRecord, format_money
from app.services.identity import normalize_identifier

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ResolvedCostItem:
    item_id: str
    display_name: str
    kind: ItemKind
    price: Decimal


@dataclass(frozen=True)
class NormalizedTicket:
    record: TicketRecord
    cost_items: Tuple[ResolvedCostItem, ...] = ()

    @property
    def add_ons(self) -> List[ResolvedCostItem]:
        return [item for item in self.cost_items if item.kind == ItemKind.ADD_ON]


@dataclass(frozen=True)
class SkippedTicket:
    ticket_id: str
    stage: str
    reason: str


@dataclass
class NormalizationResult:
    tickets: List[NormalizedTicket] = field(default_factory=list)
    skipped: List[SkippedTicket] = field(default_factory=list)

    @property
    def records(self) -> List[TicketRecord]:
        return [ticket.record for ticket in self.tickets]


def resolve_item_kind(item: CostItem) -> ItemKind:
    """
    is_add_on wins over rate_type when both are present.
    """
    from_rate_type = None
    if item.rate_type == "AddOnRate":
        from_rate_type = ItemKind.ADD_ON
    elif item.rate_type == "Rate":
        from_rate_type = ItemKind.PRIMARY

    if item.is_add_on is not None:
        kind = ItemKind.ADD_ON if item.is_add_on else ItemKind.PRIMARY
        if from_rate_type is not None and from_rate_type != kind:
            logger.debug(
                f"Cost item {item.id}: is_add_on={item.is_add_on} disagrees with rate_type={item.rate_type}, using is_add_on")
        return kind

    return from_rate_type or ItemKind.PRIMARY


def format_display_date(moment: datetime) -> str:
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_display_time(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"


def format_iso_utc(moment: datetime) -> str:
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 strings or epoch seconds; naive values are taken as UTC."""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is not None:
        return from_epoch(seconds)

    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def from_epoch(stamp: Optional[float]) -> Optional[datetime]:
    if stamp is None:
        return None
    try:
        return datetime.fromtimestamp(stamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def join_add_on_names(names: List[str]) -> str:
    """["Gift Bag", "Gift Bag", "Pin"] -> "Gift Bag (2), Pin" """
    counts: "OrderedDict[str, int]" = OrderedDict()
    for name in names:
        if not name:
            continue
        counts[name] = counts.get(name, 0) + 1
    return ", ".join(
        name if count == 1 else f"{name} ({count})" for name, count in counts.items()
    )


class PayloadNormalizer:
    def __init__(self, payload: RawEventPayload, config: WebhookConfig):
        self.payload = payload
        self.config = config
        self.display_zone = ZoneInfo(config.display_timezone)
        self.events: Dict[str, Event] = {}
        for event in payload.events:
            self.events.setdefault(event.id, event)
        self.rates: Dict[str, Rate] = {}
        for rate in payload.rates:
            self.rates.setdefault(rate.id, rate)
        self.listing: Optional[Listing] = payload.listings[0] if payload.listings else None
        self.address_names = {name.strip().lower()
                              for name in config.address_field_names}

    def run(self) -> NormalizationResult:
        result = NormalizationResult()
        seen = set()
        logger.info(f"Normalizing {len(self.payload.tickets)} ticket(s)")

        for ticket in self.payload.tickets:
            ticket_key = normalize_identifier(ticket.id)
            if ticket_key in seen:
                logger.info(f"Duplicate ticket {ticket.id} in payload, keeping first occurrence")
                continue
            seen.add(ticket_key)

            try:
                result.tickets.append(self.normalize_ticket(ticket))
            except RecordSkippedError as skipped:
                logger.warning(skipped.message)
                result.skipped.append(SkippedTicket(
                    ticket_id=skipped.ticket_id, stage=skipped.stage, reason=skipped.reason))

        return result

    def normalize_ticket(self, ticket: Ticket) -> NormalizedTicket:
        event = self.events.get(ticket.event_id) if ticket.event_id else None
        if event is None:
            raise RecordSkippedError(
                ticket.id, stage="resolve_event", reason=f"event {ticket.event_id!r} not found")

        member_ids = set(ticket.cost_item_ids)
        cost_items = [item for item in self.payload.cost_items if item.id in member_ids]
        resolved = [self.resolve_cost_item(item) for item in cost_items]

        primary_index = next(
            (index for index, item in enumerate(resolved) if item.kind == ItemKind.PRIMARY), 0)
        primary = cost_items[primary_index] if cost_items else None
        primary_resolved = resolved[primary_index] if resolved else None

        face_value = sum((item.price for item in resolved), ZERO)
        total = self.total_order_price(ticket, face_value)
        fees = max(ZERO, total - face_value)
        try:
            for amount in (total, face_value, fees):
                format_money(amount)
        except InvalidOperation:
            raise RecordSkippedError(
                ticket.id, stage="pricing", reason=f"amount cannot be written to cents (total={total})")

        purchased_at = parse_timestamp(ticket.created_at)
        if purchased_at is None:
            logger.warning(f"Ticket {ticket.id}: unparseable created_at {ticket.created_at!r}")
        starts_at = from_epoch(event.start_stamp)
        ends_at = from_epoch(event.end_stamp)

        listing = self.listing
        record = TicketRecord(
            purchase_date=self.local_date(purchased_at),
            purchase_time=self.local_time(purchased_at),
            event_date=self.local_date(starts_at),
            event_time=self.local_time(starts_at),
            attendee_name=attendee_name(primary),
            email=(primary.guest_email if primary else None) or ticket.buyer_email or "",
            mailing_address=self.mailing_address(ticket),
            ticket_name=primary_resolved.display_name if primary_resolved else "",
            add_on_name=join_add_on_names(
                [item.display_name for item in resolved if item.kind == ItemKind.ADD_ON]),
            event_title=(listing.title if listing else None) or "",
            venue_name=(listing.venue_name if listing else None) or "",
            venue_address=(listing.address if listing else None) or "",
            host_name=(listing.host_name if listing else None) or "",
            event_start_time=format_iso_utc(starts_at) if starts_at else "",
            event_end_time=format_iso_utc(ends_at) if ends_at else "",
            ticket_id=ticket.id,
            cost_item_id=primary.id if primary else "",
            qr_code=(primary.qr_code if primary else None) or "",
            ticket_status=(primary.state if primary else None) or ticket.state or "",
            payment_status=ticket.payment_state or "",
            total_ticket_price=total,
            face_value_price=face_value,
            fees=fees,
            currency=ticket.src_currency or "USD",
        )
        return NormalizedTicket(record=record, cost_items=tuple(resolved))

    def resolve_cost_item(self, item: CostItem) -> ResolvedCostItem:
        rate = self.rates.get(item.rate_id) if item.rate_id else None
        display_name = (rate.name if rate else None) or item.name or ""
        price = rate.effective_price if rate is not None else None
        if price is None:
            price = item.fallback_price
        return ResolvedCostItem(
            item_id=item.id,
            display_name=display_name,
            kind=resolve_item_kind(item),
            price=price if price is not None else ZERO,
        )

    def total_order_price(self, ticket: Ticket, face_value: Decimal) -> Decimal:
        if ticket.price is not None:
            return ticket.price
        if ticket.src_price is not None:
            return ticket.src_price
        return face_value

    def mailing_address(self, ticket: Ticket) -> str:
        field_ids = set(ticket.host_field_ids)
        for host_field in self.payload.host_fields:
            if host_field.id not in field_ids:
                continue
            if (host_field.name or "").strip().lower() in self.address_names:
                return host_field.text_value
        return ""

    def local_date(self, moment: Optional[datetime]) -> str:
        return format_display_date(moment.astimezone(self.display_zone)) if moment else ""

    def local_time(self, moment: Optional[datetime]) -> str:
        return format_display_time(moment.astimezone(self.display_zone)) if moment else ""


def attendee_name(item: Optional[CostItem]) -> str:
    if item is None:
        return ""
    first = item.first_name or item.guest_first_name or ""
    last = item.last_name or item.guest_last_name or ""
    return f"{first} {last}".strip()


def normalize(payload: RawEventPayload, config: WebhookConfig) -> NormalizationResult:
    return PayloadNormalizer(payload, config).run()
