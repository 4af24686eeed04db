import json
import logging
from contextlib import nullcontext
from typing import List, Optional

from pydantic import ValidationError

from app.core.config import WebhookConfig
from app.core.exceptions import MalformedPayloadError
from app.schemas.payload import RawEventPayload
from app.schemas.webhook import SkippedTicketResponse, WebhookResponse
from app.services.addon_filter import filter_by_target, resolve_match_rule
from app.services.normalizer import SkippedTicket, normalize
from app.services.reconciler import EventKind, InsertRow, UpdateRow, apply_actions, reconcile, resolve_event_kind
from app.services.signature import verify_request
from app.services.ticket_lock import TicketLock
from app.stores.base import SheetStore

logger = logging.getLogger(__name__)


def parse_payload(raw_body: bytes) -> RawEventPayload:
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError(f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedPayloadError("Payload must be a JSON object")
    try:
        return RawEventPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedPayloadError(f"Unexpected payload shape: {e.error_count()} error(s)")


def _skipped_response(skipped: List[SkippedTicket]) -> List[SkippedTicketResponse]:
    return [SkippedTicketResponse(ticket_id=item.ticket_id, stage=item.stage, reason=item.reason)
            for item in skipped]


class WebhookService:
    async def process(self, raw_body: bytes, signature: Optional[str], store: SheetStore,
                      config: WebhookConfig, lock: Optional[TicketLock] = None) -> WebhookResponse:
        """
        Handle one Universe delivery.

        1. verify the signature (before any store access)
        2. parse and normalize the payload
        3. keep tickets carrying the target add-on
        4. reconcile against the sheet and write

        Raises:
            AuthError: missing or wrong signature, or no secret configured.
            MalformedPayloadError: body is not a JSON object of the expected shape.
            StoreError: a read or write against the sheet failed.
            TicketLockTimeoutError: another delivery holds one of the tickets.
        """
        verify_request(raw_body, signature, config.secret)

        payload = parse_payload(raw_body)
        event_kind = resolve_event_kind(payload.event)
        logger.info(
            f"Received webhook: {payload.event or 'ticket_purchase'} with {len(payload.tickets)} ticket(s)")

        normalized = normalize(payload, config)
        eligible = filter_by_target(
            normalized.tickets, config.target_label, resolve_match_rule(config.match_rule))
        skipped = _skipped_response(normalized.skipped)

        if not eligible:
            logger.info(f"No tickets matched target add-on: {config.target_label}")
            return WebhookResponse(
                status="ignored",
                message=f"No tickets matched target add-on: {config.target_label}",
                event_kind=event_kind.value,
                skipped=skipped,
            )

        records = [ticket.record for ticket in eligible]
        if event_kind == EventKind.PURCHASE:
            actions = reconcile(records, event_kind, None, config.ticket_id_column, config.cost_item_id_column)
            await apply_actions(store, actions)
        else:
            guard = lock.hold(record.ticket_id for record in records) if lock else nullcontext()
            async with guard:
                snapshot = await store.read_all()
                actions = reconcile(records, event_kind, snapshot,
                                    config.ticket_id_column, config.cost_item_id_column)
                await apply_actions(store, actions)

        inserted = sum(1 for action in actions if isinstance(action, InsertRow))
        updated = sum(1 for action in actions if isinstance(action, UpdateRow))
        processed = len({action.record.ticket_id for action in actions})
        logger.info(
            f"Processed {processed} ticket(s) ({payload.event or 'ticket_purchase'}): "
            f"{inserted} appended, {updated} updated, {len(skipped)} skipped")

        return WebhookResponse(
            status="success",
            message=f"Processed {processed} ticket(s) ({payload.event or 'ticket_purchase'})",
            event_kind=event_kind.value,
            processed=processed,
            inserted=inserted,
            updated=updated,
            skipped=skipped,
        )


webhook_service = WebhookService()
