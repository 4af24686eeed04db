from contextlib import asynccontextmanager

import pytest

from app.core.config import WebhookConfig
from app.core.exceptions import AuthError, MalformedPayloadError, StoreError
from app.schemas.ticket_record import SHEET_HEADERS
from app.services.webhook_service import parse_payload, webhook_service
from app.stores.memory_store import MemorySheetStore
from app.tests.helpers import WEBHOOK_SECRET, encode, sign


def column(name):
    return SHEET_HEADERS.index(name)


class UntouchableStore(MemorySheetStore):
    def __init__(self):
        super().__init__(headers=SHEET_HEADERS)
        self.calls = 0

    async def read_all(self):
        self.calls += 1
        return await super().read_all()

    async def append_rows(self, rows):
        self.calls += 1
        await super().append_rows(rows)

    async def update_row(self, row_number, values):
        self.calls += 1
        await super().update_row(row_number, values)


class RecordingLock:
    def __init__(self):
        self.held = []

    @asynccontextmanager
    async def hold(self, ticket_ids):
        self.held.append(sorted(ticket_ids))
        yield


async def deliver(payload, store, config, lock=None):
    body = encode(payload)
    return await webhook_service.process(body, sign(body), store, config, lock)


async def test_purchase_with_target_add_on_appends_row(purchase_payload, sheet_store, memento_config):
    response = await deliver(purchase_payload, sheet_store, memento_config)

    assert response.status == "success"
    assert response.event_kind == "purchase"
    assert (response.processed, response.inserted, response.updated) == (1, 1, 0)
    assert response.message == "Processed 1 ticket(s) (ticket_purchase)"

    snapshot = await sheet_store.read_all()
    assert len(snapshot.rows) == 1
    row = snapshot.rows[0]
    assert row[column("Ticket ID")] == "ticket123"
    assert row[column("Add-On Name")] == "Memento Ticket"
    assert row[column("Face Value Price")] == "60.00"
    assert row[column("Total Ticket Price")] == "60.00"
    assert row[column("Fees")] == "0.00"
    assert row[column("Purchase Date")] == "3/15/2024"
    assert row[column("Event Time")] == "8:00:00 PM"


async def test_all_label_exports_tickets_without_target(purchase_payload, sheet_store, webhook_config):
    purchase_payload["rates"][1]["name"] = "Gift Bag"

    response = await deliver(purchase_payload, sheet_store, webhook_config)

    assert response.status == "success"
    snapshot = await sheet_store.read_all()
    assert snapshot.rows[0][column("Add-On Name")] == "Gift Bag"


async def test_no_eligible_tickets_is_ignored_without_store_access(purchase_payload, memento_config):
    purchase_payload["rates"][1]["name"] = "Gift Bag"
    store = UntouchableStore()

    response = await deliver(purchase_payload, store, memento_config)

    assert response.status == "ignored"
    assert response.message == "No tickets matched target add-on: Memento Ticket"
    assert store.calls == 0


async def test_update_rewrites_existing_row(purchase_payload, update_payload, sheet_store, memento_config):
    await deliver(purchase_payload, sheet_store, memento_config)

    response = await deliver(update_payload, sheet_store, memento_config)

    assert response.event_kind == "update"
    assert (response.inserted, response.updated) == (0, 1)
    snapshot = await sheet_store.read_all()
    assert len(snapshot.rows) == 1
    row = snapshot.rows[0]
    assert row[column("Ticket Status")] == "cancelled"
    assert row[column("Payment Status")] == "refunded"
    assert row[column("Cost Item ID")] == "cost123"


async def test_update_for_unseen_ticket_appends(update_payload, sheet_store, memento_config):
    response = await deliver(update_payload, sheet_store, memento_config)

    assert (response.inserted, response.updated) == (1, 0)
    snapshot = await sheet_store.read_all()
    assert snapshot.rows[0][column("Cost Item ID")] == "cost999"


async def test_update_runs_under_ticket_lock(purchase_payload, update_payload, sheet_store, memento_config):
    lock = RecordingLock()
    await deliver(purchase_payload, sheet_store, memento_config, lock)

    await deliver(update_payload, sheet_store, memento_config, lock)

    assert lock.held == [["ticket123"]]


async def test_orphan_ticket_is_reported_as_skipped(purchase_payload, sheet_store, webhook_config):
    purchase_payload["tickets"][0]["event_id"] = "missing"

    response = await deliver(purchase_payload, sheet_store, webhook_config)

    assert response.status == "ignored"
    assert [skipped.ticket_id for skipped in response.skipped] == ["ticket123"]
    assert (await sheet_store.read_all()).rows == []


async def test_bad_signature_is_rejected_before_store_access(purchase_payload, webhook_config):
    store = UntouchableStore()
    body = encode(purchase_payload)

    with pytest.raises(AuthError):
        await webhook_service.process(body, sign(body, "wrong"), store, webhook_config)
    assert store.calls == 0


async def test_missing_secret_is_rejected(purchase_payload):
    body = encode(purchase_payload)

    with pytest.raises(AuthError):
        await webhook_service.process(body, sign(body), UntouchableStore(), WebhookConfig(secret=None))


async def test_malformed_body_is_rejected(webhook_config, sheet_store):
    body = b"{not json"

    with pytest.raises(MalformedPayloadError) as e:
        await webhook_service.process(body, sign(body), sheet_store, webhook_config)
    assert e.value.status_code == 400


@pytest.mark.parametrize("body", [b"[]", b'"text"', b'{"tickets": "nope"}', b"\xff\xfe"])
def test_parse_payload_rejects_unexpected_shapes(body):
    with pytest.raises(MalformedPayloadError):
        parse_payload(body)


def test_parse_payload_ignores_unknown_keys():
    payload = parse_payload(b'{"event": "ticket_purchase", "meta": {"v": 2}, "tickets": null}')

    assert payload.event == "ticket_purchase"
    assert payload.tickets == []


async def test_store_failure_surfaces_as_store_error(purchase_payload, webhook_config):
    class FailingStore(MemorySheetStore):
        async def append_rows(self, rows):
            raise ConnectionError("sheet unavailable")

    with pytest.raises(StoreError) as e:
        await deliver(purchase_payload, FailingStore(headers=SHEET_HEADERS), webhook_config)

    assert e.value.status_code == 500
    assert "sheet unavailable" in e.value.details


async def test_secret_is_read_from_config(purchase_payload, sheet_store):
    config = WebhookConfig(secret="rotated", target_label="ALL")
    body = encode(purchase_payload)

    with pytest.raises(AuthError):
        await webhook_service.process(body, sign(body, WEBHOOK_SECRET), sheet_store, config)

    response = await webhook_service.process(body, sign(body, "rotated"), sheet_store, config)
    assert response.status == "success"


def test_parse_payload_accepts_list_valued_host_fields(purchase_payload):
    purchase_payload["host_fields"].append({"id": "f9", "name": "Interests", "value": ["a", "b"]})

    payload = parse_payload(encode(purchase_payload))

    assert payload.host_fields[1].text_value == "a, b"
