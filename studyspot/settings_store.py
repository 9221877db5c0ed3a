import asyncio
import logging
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from .config import SETTINGS_TIMEOUT_SECONDS, SETTINGS_TTL_SECONDS
from .db import SessionLocal, commit
from .models import Setting

logger = logging.getLogger(__name__)

MAINTENANCE_MODE = "maintenance_mode"
UPI_ID = "upi_id"
UPI_MERCHANT_NAME = "upi_merchant_name"
UPI_PHONE = "upi_phone"

PUBLIC_KEYS = {MAINTENANCE_MODE, UPI_ID, UPI_MERCHANT_NAME, UPI_PHONE}

# value served when the store is slow or down
FALLBACKS = {MAINTENANCE_MODE: "false"}


class SettingsCache:
    """
    Key/value settings with a per-key TTL cache. Store lookups are bounded by a
    timeout; on timeout or error the key's fallback is returned and not cached.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = SessionLocal,
        ttl_seconds: float = SETTINGS_TTL_SECONDS,
        timeout_seconds: float = SETTINGS_TIMEOUT_SECONDS,
        clock=time.monotonic,
    ):
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self._cache: dict[str, tuple[str | None, float]] = {}

    async def _fetch(self, key: str) -> str | None:
        async with self.session_factory() as db:
            res = await db.execute(select(Setting.value).where(Setting.key == key))
            return res.scalar_one_or_none()

    async def get(self, key: str) -> str | None:
        now = self.clock()
        cached = self._cache.get(key)
        if cached and now - cached[1] < self.ttl_seconds:
            return cached[0]

        try:
            value = await asyncio.wait_for(self._fetch(key), timeout=self.timeout_seconds)
        except Exception as e:
            logger.error("settings lookup %s failed: %r", key, e)
            return FALLBACKS.get(key)

        self._cache[key] = (value, now)
        return value

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as db:
            setting = await db.get(Setting, key)
            if setting:
                setting.value = value
            else:
                db.add(Setting(key=key, value=value))
            await commit(db, f"save setting {key}")
        self._cache[key] = (value, self.clock())

    async def maintenance_mode(self) -> bool:
        return (await self.get(MAINTENANCE_MODE)) == "true"

    def clear(self) -> None:
        self._cache.clear()


settings_cache = SettingsCache()
