import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .db import SessionLocal
from .errors import NotFound, UpstreamUnavailable
from .models import Seat

logger = logging.getLogger(__name__)


class SeatFlags:
    """
    Manual out-of-service flag on seats.

    Writes run in their own short transaction so a failure here never rolls back
    the booking status change that triggered it.
    """

    def __init__(self, session_factory: async_sessionmaker = SessionLocal):
        self.session_factory = session_factory

    async def _set(self, seat_id: int, blocked: bool) -> None:
        try:
            async with self.session_factory() as db:
                res = await db.execute(update(Seat).where(Seat.id == seat_id).values(is_blocked=blocked))
                await db.commit()
        except SQLAlchemyError as e:
            raise UpstreamUnavailable(f"Could not update seat {seat_id}: {e}") from e

        if res.rowcount == 0:
            raise NotFound(f"Seat {seat_id} not found")

    async def block(self, seat_id: int) -> None:
        await self._set(seat_id, True)
        logger.info("seat %s blocked", seat_id)

    async def unblock(self, seat_id: int) -> None:
        await self._set(seat_id, False)
        logger.info("seat %s unblocked", seat_id)

    async def unblock_quietly(self, seat_id: int | None) -> bool:
        """Best-effort unblock after a booking leaves the active set."""
        if seat_id is None:
            return False
        try:
            await self.unblock(seat_id)
            return True
        except Exception as e:
            logger.error("Auto-unblock of seat %s failed: %s", seat_id, e)
            return False


seat_flags = SeatFlags()
