import json
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import select

from studyspot.errors import UpstreamUnavailable, ValidationError
from studyspot.models import Booking
from studyspot.storage import StorageClient, cleanup_screenshots

BASE = "https://files.example/storage/v1"


def recording_client(status=200):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(status, json={})

    return StorageClient(base_url=BASE, key="k", transport=httpx.MockTransport(handler)), seen


async def test_upload_receipt_returns_public_url():
    client, seen = recording_client()
    url = await client.upload_receipt("my receipt.png", b"\x89PNG", "image/png")

    assert url.startswith(f"{BASE}/object/public/payment_uploads/receipts/")
    assert seen[0].method == "POST"
    assert seen[0].url.path.startswith("/storage/v1/object/payment_uploads/receipts/")
    assert seen[0].headers["Content-Type"] == "image/png"
    assert client.path_from_url(url).endswith("_my receipt.png")


async def test_upload_validation():
    client, seen = recording_client()
    with pytest.raises(ValidationError):
        await client.upload_receipt("notes.txt", b"hello", "text/plain")
    with pytest.raises(ValidationError):
        await client.upload_receipt("empty.png", b"", "image/png")
    with pytest.raises(ValidationError):
        await client.upload_receipt("big.pdf", b"0" * (5 * 1024 * 1024 + 1), "application/pdf")
    assert seen == []


async def test_storage_errors():
    client, _ = recording_client(status=500)
    with pytest.raises(UpstreamUnavailable):
        await client.upload_receipt("a.png", b"x", "image/png")
    with pytest.raises(UpstreamUnavailable):
        await StorageClient(base_url=None).upload_receipt("a.png", b"x", "image/png")


def _booking(booking_id, status, url, updated_at):
    return Booking(
        id=booking_id,
        customer_name="Asha",
        customer_phone="+919812345678",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 1, 30),
        amount=1500,
        status=status,
        payment_screenshot_url=url,
        updated_at=updated_at,
    )


async def test_cleanup_old_confirmed_screenshots(db, session_factory):
    client, seen = recording_client()
    now = datetime(2026, 2, 10, tzinfo=timezone.utc)
    old = now - timedelta(days=4)
    fresh = now - timedelta(days=1)

    db.add_all([
        _booking("BK-OLD", "confirmed", client.public_url("receipts/1_old.png"), old),
        _booking("BK-NEW", "confirmed", client.public_url("receipts/2_new.png"), fresh),
        _booking("BK-PEND", "pending", client.public_url("receipts/3_pending.png"), old),
    ])
    await db.commit()

    result = await cleanup_screenshots(db, client, now=now)

    assert result["deleted_paths"] == ["receipts/1_old.png"]
    assert json.loads(seen[0].content) == {"prefixes": ["receipts/1_old.png"]}
    assert seen[0].method == "DELETE"

    async with session_factory() as s:
        urls = dict((await s.execute(select(Booking.id, Booking.payment_screenshot_url))).all())
    assert urls["BK-OLD"] is None
    assert urls["BK-NEW"] is not None
    assert urls["BK-PEND"] is not None


async def test_cleanup_with_nothing_to_do(db):
    client, seen = recording_client()
    result = await cleanup_screenshots(db, client)
    assert result == {"message": "No old screenshots found to cleanup.", "deleted_paths": []}
    assert seen == []
