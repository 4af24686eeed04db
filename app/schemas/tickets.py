from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class TicketFilters(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    event: Optional[str] = None
    events: List[str] = Field(default_factory=list)
    status: Optional[str] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class TicketPage(BaseModel):
    data: List[Dict[str, str]]
    pagination: Pagination


class EventStat(BaseModel):
    name: str
    tickets: int
    revenue: float


class DaySales(BaseModel):
    date: str
    tickets: int
    revenue: float


class Share(BaseModel):
    label: str
    count: int
    percentage: float


class AnalyticsResponse(BaseModel):
    total_tickets: int
    total_revenue: float
    total_orders: int
    average_tickets_per_order: float
    top_events: List[EventStat]
    sales_by_day: List[DaySales]
    location_distribution: List[Share]
    status_distribution: List[Share]
    recent_sales: List[Dict[str, str]]
