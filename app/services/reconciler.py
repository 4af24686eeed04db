"""
Decides, per ticket record, whether a webhook appends a new sheet row or
rewrites the rows already holding that ticket, then applies the decision.

Rows are matched on the ticket id. Older rows were keyed on the primary
cost item id, which changes between purchase and update events, so a
ticket may own several rows; all of them are updated.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from app.core.exceptions import StoreError
from app.schemas.ticket_record import TicketRecord
from app.services.identity import dedupe_by_key, identifiers_match, normalize_identifier
from app.stores.base import FIRST_DATA_ROW_NUMBER, SheetSnapshot, SheetStore

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    PURCHASE = "purchase"
    UPDATE = "update"


UPDATE_EVENT_TYPES = {"ticket_update", "order_update"}


def resolve_event_kind(event_type: Optional[str]) -> EventKind:
    """ticket_update / order_update are updates; anything else, or nothing, is a purchase."""
    if event_type and event_type.strip().lower() in UPDATE_EVENT_TYPES:
        return EventKind.UPDATE
    return EventKind.PURCHASE


@dataclass(frozen=True)
class InsertRow:
    record: TicketRecord


@dataclass(frozen=True)
class UpdateRow:
    row_number: int
    record: TicketRecord


RowAction = Union[InsertRow, UpdateRow]


def find_ticket_rows(snapshot: SheetSnapshot, ticket_id: str, ticket_id_column: str) -> List[int]:
    """All 1-based row numbers whose ticket id cell matches."""
    if not snapshot.headers:
        return []
    column = snapshot.column_index(ticket_id_column)
    if column == -1:
        raise StoreError(f"{ticket_id_column!r} column not found in sheet headers", stage="reconcile",
                         ticket_id=ticket_id)
    return [
        row_number for row_number, row in snapshot.numbered_rows()
        if column < len(row) and identifiers_match(row[column], ticket_id)
    ]


def reconcile(records: List[TicketRecord], event_kind: EventKind, snapshot: Optional[SheetSnapshot],
              ticket_id_column: str = "Ticket ID", cost_item_id_column: str = "Cost Item ID") -> List[RowAction]:
    if event_kind == EventKind.PURCHASE:
        return [InsertRow(record) for record in records]

    snapshot = snapshot or SheetSnapshot()
    cost_item_column = snapshot.column_index(cost_item_id_column)
    actions: List[RowAction] = []

    unique_records = dedupe_by_key(records, key=lambda record: normalize_identifier(record.ticket_id))
    if len(unique_records) < len(records):
        logger.info(f"Dropped {len(records) - len(unique_records)} duplicate ticket update(s) in batch")

    for record in unique_records:
        matches = find_ticket_rows(snapshot, record.ticket_id, ticket_id_column)
        if not matches:
            logger.info(f"No existing row for ticket {record.ticket_id}, appending")
            actions.append(InsertRow(record))
            continue

        if len(matches) > 1:
            logger.warning(f"Ticket {record.ticket_id} owns {len(matches)} rows {matches}, updating all")
        for row_number in matches:
            row = snapshot.rows[row_number - FIRST_DATA_ROW_NUMBER]
            stored_cost_item = row[cost_item_column] if 0 <= cost_item_column < len(row) else ""
            updated = record.with_cost_item_id(stored_cost_item) if stored_cost_item else record
            actions.append(UpdateRow(row_number=row_number, record=updated))

    return actions


async def apply_actions(store: SheetStore, actions: List[RowAction]) -> None:
    """
    Updates run first, in order, then every insert goes out in one append.
    Nothing is rolled back if a write fails part way.
    """
    # render every row before the first write
    updates = [(action, action.record.to_row()) for action in actions if isinstance(action, UpdateRow)]
    inserts = [action.record for action in actions if isinstance(action, InsertRow)]
    insert_rows = [record.to_row() for record in inserts]

    for action, row in updates:
        try:
            await store.update_row(action.row_number, row)
        except StoreError as e:
            logger.error(f"Failed to update row {action.row_number} for ticket {action.record.ticket_id}: {e.details}")
            raise
        except Exception as e:
            logger.error(f"Failed to update row {action.row_number} for ticket {action.record.ticket_id}: {e}",
                         exc_info=True)
            raise StoreError(str(e), stage="update_row", ticket_id=action.record.ticket_id) from e
        logger.info(f"Updated row {action.row_number} for ticket {action.record.ticket_id}")

    if not inserts:
        return
    ticket_ids = ", ".join(record.ticket_id for record in inserts)
    try:
        await store.append_rows(insert_rows)
    except StoreError as e:
        logger.error(f"Failed to append rows for ticket(s) {ticket_ids}: {e.details}")
        raise
    except Exception as e:
        logger.error(f"Failed to append rows for ticket(s) {ticket_ids}: {e}", exc_info=True)
        raise StoreError(str(e), stage="append_rows", ticket_id=ticket_ids) from e
    logger.info(f"Appended {len(inserts)} row(s)")
