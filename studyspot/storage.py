import logging
import time
from datetime import datetime, timedelta, timezone
from urllib.parse import quote, unquote, urlparse

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .config import RECEIPTS_BUCKET, SCREENSHOT_RETENTION_DAYS, STORAGE_KEY, STORAGE_URL
from .db import commit
from .errors import UpstreamUnavailable, ValidationError
from .models import CONFIRMED, Booking

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
MAX_RECEIPT_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "application/pdf"}


class StorageClient:
    """Object storage REST API: upload returns a public URL, objects removed by path."""

    def __init__(
        self,
        base_url: str | None = STORAGE_URL,
        key: str | None = STORAGE_KEY,
        bucket: str = RECEIPTS_BUCKET,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.key = key
        self.bucket = bucket
        self.timeout = timeout
        self.transport = transport

    def _headers(self, content_type: str | None = None) -> dict:
        headers = {"Authorization": f"Bearer {self.key}"}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/object/public/{self.bucket}/{quote(path)}"

    def path_from_url(self, url: str) -> str | None:
        parts = urlparse(url).path.split(f"/{self.bucket}/", 1)
        if len(parts) < 2 or not parts[1]:
            return None
        return unquote(parts[1])

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if not self.base_url:
            raise UpstreamUnavailable("Object storage is not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.request(method, url, **kwargs)
                resp.raise_for_status()
                return resp
        except httpx.TimeoutException:
            raise UpstreamUnavailable(f"Timeout calling storage: {url}")
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"Storage returned {e.response.status_code}: {e.response.text}")
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Storage unreachable: {e}")

    async def upload_receipt(self, filename: str, content: bytes, content_type: str) -> str:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(f"Unsupported file type: {content_type}")
        if not content:
            raise ValidationError("Empty file")
        if len(content) > MAX_RECEIPT_BYTES:
            raise ValidationError("File is larger than 5 MB")

        safe_name = (filename or "receipt").replace("/", "_").replace("\\", "_")
        path = f"receipts/{time.time_ns() // 1_000_000}_{safe_name}"
        await self._request(
            "POST",
            f"{self.base_url}/object/{self.bucket}/{quote(path)}",
            content=content,
            headers=self._headers(content_type),
        )
        return self.public_url(path)

    async def remove(self, paths: list[str]) -> None:
        if not paths:
            return
        await self._request(
            "DELETE",
            f"{self.base_url}/object/{self.bucket}",
            json={"prefixes": paths},
            headers=self._headers("application/json"),
        )


storage = StorageClient()


async def cleanup_screenshots(db: AsyncSession, client: StorageClient, now: datetime | None = None) -> dict:
    """
    Drop payment screenshots of confirmed bookings untouched for the retention
    period. References are cleared before the objects are deleted so a failed
    delete leaves orphaned files rather than broken links.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=SCREENSHOT_RETENTION_DAYS)

    res = await db.execute(
        select(Booking.id, Booking.payment_screenshot_url).where(
            Booking.status == CONFIRMED,
            Booking.payment_screenshot_url.is_not(None),
            Booking.updated_at < cutoff,
        )
    )
    rows = res.all()
    if not rows:
        return {"message": "No old screenshots found to cleanup.", "deleted_paths": []}

    paths, booking_ids = [], []
    for booking_id, url in rows:
        path = client.path_from_url(url)
        if path is None:
            logger.warning("cannot parse screenshot url for %s: %s", booking_id, url)
            continue
        paths.append(path)
        booking_ids.append(booking_id)

    if booking_ids:
        # keep updated_at so the retention clock is not reset
        await db.execute(
            update(Booking)
            .where(Booking.id.in_(booking_ids))
            .values(payment_screenshot_url=None, updated_at=Booking.updated_at)
            .execution_options(synchronize_session=False)
        )
        await commit(db, "clear screenshot references")
        await client.remove(paths)
        logger.info("cleaned up %d screenshots", len(paths))

    return {"message": f"Cleaned up {len(booking_ids)} screenshots.", "deleted_paths": paths}
