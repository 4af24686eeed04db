import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request

from app.core.config import WebhookConfig, get_settings, get_webhook_config
from app.schemas.webhook import WebhookResponse
from app.services.ticket_lock import TicketLock
from app.services.webhook_service import webhook_service
from app.stores import SheetStore, get_sheet_store

router = APIRouter()
logger = logging.getLogger(__name__)


def get_ticket_lock() -> Optional[TicketLock]:
    settings = get_settings()
    if not settings.TICKET_LOCK_ENABLED:
        return None
    from app.redis import redis_client
    return TicketLock(
        redis_client,
        ttl_seconds=settings.TICKET_LOCK_TTL_SECONDS,
        wait_seconds=settings.TICKET_LOCK_WAIT_SECONDS,
    )


def read_signature(request: Request) -> Optional[str]:
    for header in get_settings().SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


@router.post("/webhook", response_model=WebhookResponse)
async def universe_webhook(
        request: Request,
        store: SheetStore = Depends(get_sheet_store),
        config: WebhookConfig = Depends(get_webhook_config),
        lock: Optional[TicketLock] = Depends(get_ticket_lock)):
    """
    Universe ticket_purchase / ticket_update deliveries.

    The body is read raw because the signature covers the exact bytes sent.
    """
    payload = await request.body()
    logger.info(f"Webhook received, body length {len(payload)}")
    return await webhook_service.process(
        raw_body=payload,
        signature=read_signature(request),
        store=store,
        config=config,
        lock=lock,
    )
