from typing import List
from pydantic import BaseModel, Field


class SkippedTicketResponse(BaseModel):
    ticket_id: str
    stage: str
    reason: str


class WebhookResponse(BaseModel):
    status: str
    message: str
    event_kind: str
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: List[SkippedTicketResponse] = Field(default_factory=list)
