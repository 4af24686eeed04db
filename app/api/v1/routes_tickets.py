from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.schemas.tickets import AnalyticsResponse, TicketFilters, TicketPage
from app.services import ticket_query
from app.stores import SheetStore, get_sheet_store

router = APIRouter()


def get_filters(
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        event: Optional[str] = Query(None),
        events: Optional[List[str]] = Query(None),
        status: Optional[str] = Query(None)) -> TicketFilters:
    return TicketFilters(date_from=date_from, date_to=date_to, event=event, events=events or [], status=status)


@router.get("/tickets", response_model=TicketPage)
async def list_tickets(
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=1000),
        filters: TicketFilters = Depends(get_filters),
        store: SheetStore = Depends(get_sheet_store)):
    snapshot = await store.read_all()
    return ticket_query.list_tickets(snapshot.as_dicts(), filters, page=page, limit=limit)


@router.get("/tickets/analytics", response_model=AnalyticsResponse)
async def ticket_analytics(
        filters: TicketFilters = Depends(get_filters),
        store: SheetStore = Depends(get_sheet_store)):
    snapshot = await store.read_all()
    return ticket_query.build_analytics(ticket_query.apply_filters(snapshot.as_dicts(), filters))


@router.get("/events", response_model=List[str])
async def list_events(store: SheetStore = Depends(get_sheet_store)):
    snapshot = await store.read_all()
    return ticket_query.list_event_titles(snapshot.as_dicts())


@router.get("/export/csv")
async def export_csv(
        filters: TicketFilters = Depends(get_filters),
        store: SheetStore = Depends(get_sheet_store)):
    snapshot = await store.read_all()
    rows = ticket_query.apply_filters(snapshot.as_dicts(), filters)
    content = ticket_query.export_csv(snapshot.headers, rows)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="universe-tickets-export-{timestamp}.csv"'},
    )
