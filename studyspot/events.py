import json
import uuid
from datetime import datetime, timezone

EXCHANGE_NAME = "domain_events"

BOOKING_CONFIRMED = "notify.booking_confirmed"
BROADCAST = "notify.broadcast"


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def booking_data(booking) -> dict:
    return {
        "booking_id": booking.id,
        "customer_name": booking.customer_name,
        "customer_phone": booking.customer_phone,
        "start_date": booking.start_date.isoformat(),
        "end_date": booking.end_date.isoformat(),
        "amount": booking.amount,
    }


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False)
