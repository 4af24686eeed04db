"""
Read-side views over the ticket sheet: filtered listing, dashboard
analytics, event titles and CSV export.
"""
import csv
import io
import math
from collections import Counter, OrderedDict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from app.schemas.tickets import (AnalyticsResponse, DaySales, EventStat, Pagination, Share, TicketFilters,
                                 TicketPage)
from app.services.identity import extract_location, normalize_identifier

Row = Dict[str, str]

PURCHASE_DATE = "Purchase Date"
EVENT_TITLE = "Event Title"
TICKET_STATUS = "Ticket Status"
TICKET_ID = "Ticket ID"
TOTAL_PRICE = "Total Ticket Price"
VENUE_ADDRESS = "Venue Address"

TOP_EVENTS = 5
RECENT_SALES = 10


def parse_sheet_date(value: str) -> Optional[date]:
    """Purchase dates are stored as M/D/YYYY; ISO dates are accepted too."""
    text = (value or "").strip()
    if not text:
        return None
    for fmt in ("%m/%d/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_amount(value: str) -> Decimal:
    try:
        return Decimal((value or "0").strip() or "0")
    except InvalidOperation:
        return Decimal("0")


def apply_filters(rows: List[Row], filters: TicketFilters) -> List[Row]:
    result = rows
    if filters.date_from or filters.date_to:
        def in_range(row: Row) -> bool:
            purchased = parse_sheet_date(row.get(PURCHASE_DATE, ""))
            if purchased is None:
                return False
            if filters.date_from and purchased < filters.date_from:
                return False
            if filters.date_to and purchased > filters.date_to:
                return False
            return True
        result = [row for row in result if in_range(row)]

    if filters.events:
        wanted = set(filters.events)
        result = [row for row in result if row.get(EVENT_TITLE, "") in wanted]
    elif filters.event:
        result = [row for row in result if row.get(EVENT_TITLE, "") == filters.event]

    if filters.status:
        result = [row for row in result if row.get(TICKET_STATUS, "") == filters.status]
    return result


def list_tickets(rows: List[Row], filters: TicketFilters, page: int = 1, limit: int = 50) -> TicketPage:
    filtered = apply_filters(rows, filters)
    start = (page - 1) * limit
    return TicketPage(
        data=filtered[start:start + limit],
        pagination=Pagination(
            total=len(filtered),
            page=page,
            limit=limit,
            pages=math.ceil(len(filtered) / limit) if limit else 0,
        ),
    )


def _shares(counter: Counter, total: int) -> List[Share]:
    return [
        Share(label=label, count=count, percentage=round(count / total * 100, 1) if total else 0.0)
        for label, count in counter.most_common()
    ]


def build_analytics(rows: List[Row]) -> AnalyticsResponse:
    total_tickets = len(rows)
    total_revenue = sum((parse_amount(row.get(TOTAL_PRICE, "")) for row in rows), Decimal("0"))

    # one Universe ticket id per order
    order_ids = {normalize_identifier(row.get(TICKET_ID, "")) for row in rows}
    total_orders = len(order_ids)

    by_day: "OrderedDict[str, List]" = OrderedDict()
    by_event: "OrderedDict[str, List]" = OrderedDict()
    for row in rows:
        amount = parse_amount(row.get(TOTAL_PRICE, ""))
        day = by_day.setdefault(row.get(PURCHASE_DATE, ""), [0, Decimal("0")])
        day[0] += 1
        day[1] += amount
        event = by_event.setdefault(row.get(EVENT_TITLE, ""), [0, Decimal("0")])
        event[0] += 1
        event[1] += amount

    top_events = sorted(by_event.items(), key=lambda item: item[1][1], reverse=True)[:TOP_EVENTS]

    return AnalyticsResponse(
        total_tickets=total_tickets,
        total_revenue=float(total_revenue),
        total_orders=total_orders,
        average_tickets_per_order=round(total_tickets / total_orders, 1) if total_orders else 0.0,
        top_events=[EventStat(name=name, tickets=stats[0], revenue=float(stats[1]))
                    for name, stats in top_events],
        sales_by_day=[DaySales(date=day, tickets=stats[0], revenue=float(stats[1]))
                      for day, stats in by_day.items()],
        location_distribution=_shares(
            Counter(extract_location(row.get(VENUE_ADDRESS, "")) for row in rows), total_tickets),
        status_distribution=_shares(
            Counter(row.get(TICKET_STATUS, "") or "unknown" for row in rows), total_tickets),
        recent_sales=list(reversed(rows[-RECENT_SALES:])),
    )


def list_event_titles(rows: List[Row]) -> List[str]:
    return sorted({row.get(EVENT_TITLE, "") for row in rows} - {""})


def export_csv(headers: List[str], rows: List[Row]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([row.get(header, "") for header in headers])
    return buffer.getvalue()
