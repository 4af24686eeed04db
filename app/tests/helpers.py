import json

from app.services.signature import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"

# 2024-03-16T00:00:00Z, 8:00 PM on 3/15 in New York
EVENT_START = 1710547200
EVENT_END = EVENT_START + 3 * 3600

PURCHASE_PAYLOAD = {
    "event": "ticket_purchase",
    "listings": [{
        "id": "123",
        "title": "Test Event 2024",
        "address": "123 Main St, Los Angeles, CA 90001, USA",
        "venue_name": "The Test Venue",
        "host_name": "Test Host"
    }],
    "events": [{
        "id": "event123",
        "start_stamp": EVENT_START,
        "end_stamp": EVENT_END,
    }],
    "tickets": [{
        "id": "ticket123",
        "event_id": "event123",
        "created_at": "2024-03-15T18:30:00Z",
        "state": "active",
        "payment_state": "success",
        "buyer_email": "buyer@example.com",
        "src_currency": "USD",
        "cost_item_ids": ["cost123", "cost456"],
        "host_field_ids": ["field123"]
    }],
    "cost_items": [
        {
            "id": "cost123",
            "name": "General Admission",
            "rate_id": "rate123",
            "is_add_on": False,
            "rate_type": "Rate",
            "src_price": 50,
            "state": "active",
            "first_name": "John",
            "last_name": "Doe",
            "guest_email": "john.doe@example.com",
            "qr_code": "QR123456"
        },
        {
            "id": "cost456",
            "name": "Memento Ticket",
            "rate_id": "rate456",
            "is_add_on": True,
            "rate_type": "AddOnRate",
            "src_price": 10,
            "state": "active"
        }
    ],
    "rates": [
        {"id": "rate123", "name": "General Admission", "price": 50},
        {"id": "rate456", "name": "Memento Ticket", "price": 10}
    ],
    "host_fields": [{
        "id": "field123",
        "name": "Address",
        "context": "Ticket",
        "value": "456 Oak Street, Suite 200, San Francisco, CA 94102"
    }]
}


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return compute_signature(body, secret)


def encode(payload: dict) -> bytes:
    return json.dumps(payload).encode()
