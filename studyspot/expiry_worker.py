import asyncio
import logging
from datetime import date

from .bookings import BookingLifecycle
from .config import EXPIRY_SWEEP_INTERVAL_SECONDS
from .db import SessionLocal

logger = logging.getLogger(__name__)


async def sweep_once(session_factory=SessionLocal, today: date | None = None, **lifecycle_kwargs) -> list[str]:
    today = today or date.today()
    async with session_factory() as db:
        expired = await BookingLifecycle(db, **lifecycle_kwargs).expire_overdue(today)
    if expired:
        logger.info("expired %d bookings ending before %s", len(expired), today)
    return expired


async def expiry_loop(stop_event: asyncio.Event, interval: float = EXPIRY_SWEEP_INTERVAL_SECONDS):
    while not stop_event.is_set():
        try:
            await sweep_once()
        except Exception as e:
            logger.error("expiry sweep failed: %s", e)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
