import copy

import pytest

from app.core.config import WebhookConfig
from app.schemas.payload import RawEventPayload
from app.schemas.ticket_record import SHEET_HEADERS
from app.stores.memory_store import MemorySheetStore
from app.tests.helpers import PURCHASE_PAYLOAD, WEBHOOK_SECRET


@pytest.fixture
def purchase_payload():
    return copy.deepcopy(PURCHASE_PAYLOAD)


@pytest.fixture
def update_payload(purchase_payload):
    """Same ticket cancelled; Universe re-issues the primary cost item under a new id."""
    payload = copy.deepcopy(purchase_payload)
    payload["event"] = "ticket_update"
    payload["tickets"][0]["state"] = "cancelled"
    payload["tickets"][0]["payment_state"] = "refunded"
    payload["tickets"][0]["cost_item_ids"] = ["cost999", "cost456"]
    payload["cost_items"][0]["id"] = "cost999"
    payload["cost_items"][0]["state"] = "cancelled"
    payload["cost_items"][1]["state"] = "cancelled"
    return payload


@pytest.fixture
def parse():
    return RawEventPayload.model_validate


@pytest.fixture
def webhook_config():
    return WebhookConfig(secret=WEBHOOK_SECRET, target_label="ALL")


@pytest.fixture
def memento_config():
    return WebhookConfig(secret=WEBHOOK_SECRET, target_label="Memento Ticket")


@pytest.fixture
def sheet_store():
    return MemorySheetStore(headers=SHEET_HEADERS)
