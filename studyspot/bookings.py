import logging
import secrets
import string
import time
from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .availability import active_overlap, check_range
from .errors import BookingError, Conflict, InvalidState, NotFound, UpstreamUnavailable
from .locations import get_seat, resolve_location
from .models import CONFIRMED, EXPIRED, PENDING, REJECTED, REVOKED, Booking
from .notifications import Notifier, notifier as default_notifier
from .pricing import quote
from .seats import SeatFlags, seat_flags as default_seat_flags

logger = logging.getLogger(__name__)

SEAT_TAKEN = (
    "This seat has just been booked by someone else for these dates. "
    "Please go back and select another seat."
)

# action -> (required current status, new status)
TRANSITIONS = {
    "approve": (PENDING, CONFIRMED),
    "reject": (PENDING, REJECTED),
    "revoke": (CONFIRMED, REVOKED),
    "expire": (CONFIRMED, EXPIRED),
}

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_booking_id(now_ms: int | None = None) -> str:
    """BK- + base36 millisecond timestamp + 4 random base36 chars; doubles as the UPI reference."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"BK-{to_base36(now_ms)}{suffix}"


class BookingLifecycle:
    def __init__(
        self,
        db: AsyncSession,
        seats: SeatFlags = default_seat_flags,
        notifier: Notifier = default_notifier,
    ):
        self.db = db
        self.seats = seats
        self.notifier = notifier

    async def get(self, booking_id: str) -> Booking:
        booking = await self.db.get(Booking, booking_id, populate_existing=True)
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    async def list_bookings(self, status: str | None = None) -> list[Booking]:
        stmt = select(Booking).order_by(Booking.created_at.desc())
        if status:
            stmt = stmt.where(Booking.status == status)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    # ---- creation ----

    async def create(self, data) -> Booking:
        """Customer submission; lands in `pending` awaiting payment verification."""
        return await self._insert(data, status=PENDING)

    async def create_walk_in(self, data) -> Booking:
        """
        Admin walk-in: confirmed immediately and the seat is blocked. If the block
        fails the booking is removed again so no confirmed booking sits on an
        unblocked seat.
        """
        booking = await self._insert(data, status=CONFIRMED, amount=getattr(data, "amount", None))

        try:
            await self.seats.block(booking.seat_id)
        except Exception as e:
            logger.error("blocking seat %s for walk-in %s failed: %s", booking.seat_id, booking.id, e)
            await self._discard(booking.id)
            raise UpstreamUnavailable("Could not block the seat; the walk-in booking was rolled back. Please retry.") from e

        return booking

    async def _insert(self, data, *, status: str, amount: int | None = None) -> Booking:
        """
        A refused overlap leaves the session usable as-is. A failed write rolls the
        session back, which expires every row previously loaded through it.
        """
        loc = data.location
        try:
            branch, floor, room, seat = await resolve_location(
                self.db, loc.branch, loc.floor, loc.room_no, loc.seat_no
            )
            q = await quote(self.db, room, data.start_date, data.end_date, data.slot_id)
            check_range(q.start_date, q.end_date)

            # row lock on the seat serializes concurrent creates for it until commit
            await get_seat(self.db, room.id, seat.seat_no, for_update=True)

            res = await self.db.execute(
                select(Booking.id).where(Booking.seat_id == seat.id, active_overlap(q.start_date, q.end_date)).limit(1)
            )
            if res.first():
                # nothing written; commit only releases the seat lock and keeps loaded rows intact
                await self.db.commit()
                raise Conflict(SEAT_TAKEN)

            booking = Booking(
                id=generate_booking_id(),
                customer_name=data.name,
                customer_phone=data.phone,
                customer_email=data.email or None,
                slot_id=q.slot.id if q.slot else None,
                branch_id=branch.id,
                floor_id=floor.id,
                room_id=room.id,
                seat_id=seat.id,
                floor_number=floor.floor_number,
                room_no=room.room_no,
                seat_no=seat.seat_no,
                start_date=q.start_date,
                end_date=q.end_date,
                amount=q.amount if amount is None else amount,
                payment_screenshot_url=getattr(data, "payment_screenshot_url", None),
                status=status,
            )
            self.db.add(booking)
            await self.db.commit()
        except IntegrityError as e:
            # exclusion constraint on (seat, date range) caught a concurrent insert
            await self.db.rollback()
            raise Conflict(SEAT_TAKEN) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailable("Could not save the booking, please retry") from e

        logger.info("booking %s created (%s) seat=%s %s..%s", booking.id, status, seat.id, booking.start_date, booking.end_date)
        return booking

    async def _discard(self, booking_id: str) -> None:
        try:
            await self.db.execute(delete(Booking).where(Booking.id == booking_id))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.critical("walk-in %s could not be rolled back", booking_id)
            raise

    # ---- transitions ----

    async def _transition(self, booking_id: str, action: str) -> Booking:
        source, target = TRANSITIONS[action]
        try:
            res = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == source)
                .values(status=target)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise UpstreamUnavailable(f"Could not {action} booking {booking_id}, please retry") from e

        if res.rowcount == 0:
            current = await self.db.get(Booking, booking_id, populate_existing=True)
            if not current:
                raise NotFound(f"Booking {booking_id} not found")
            raise InvalidState(f"Cannot {action} booking {booking_id}: status is {current.status}, expected {source}")

        logger.info("booking %s %s -> %s", booking_id, source, target)
        return await self.get(booking_id)

    async def approve(self, booking_id: str) -> Booking:
        booking = await self._transition(booking_id, "approve")
        try:
            await self.notifier.booking_confirmed(booking)
        except Exception as e:
            logger.error("Failed to queue WhatsApp confirmation for %s: %s", booking_id, e)
        return booking

    async def reject(self, booking_id: str) -> Booking:
        booking = await self._transition(booking_id, "reject")
        await self.seats.unblock_quietly(booking.seat_id)
        return booking

    async def revoke(self, booking_id: str) -> Booking:
        booking = await self._transition(booking_id, "revoke")
        await self.seats.unblock_quietly(booking.seat_id)
        return booking

    async def expire(self, booking_id: str) -> Booking:
        booking = await self._transition(booking_id, "expire")
        await self.seats.unblock_quietly(booking.seat_id)
        return booking

    async def expire_overdue(self, today: date) -> list[str]:
        """Expire confirmed bookings whose last day is before `today`."""
        res = await self.db.execute(
            select(Booking.id).where(Booking.status == CONFIRMED, Booking.end_date < today)
        )
        expired = []
        for booking_id in res.scalars().all():
            try:
                await self.expire(booking_id)
                expired.append(booking_id)
            except BookingError as e:
                # revoked or expired by someone else in the meantime
                logger.info("skipping expiry of %s: %s", booking_id, e)
        return expired


async def dashboard_stats(db: AsyncSession, today: date, months: int = 6) -> dict:
    res = await db.execute(
        select(
            func.count(Booking.id),
            func.count(Booking.id).filter(Booking.status == CONFIRMED),
            func.coalesce(func.sum(Booking.amount).filter(Booking.status == CONFIRMED), 0),
            func.count(Booking.id).filter(Booking.status == PENDING),
        )
    )
    total, active, revenue, pending = res.one()

    first = today.replace(day=1) - relativedelta(months=months - 1)
    since = datetime(first.year, first.month, 1, tzinfo=timezone.utc)
    res = await db.execute(select(Booking.created_at).where(Booking.created_at >= since))
    created = [c.date() for c in res.scalars().all()]

    monthly = []
    for i in range(months):
        month_start = first + relativedelta(months=i)
        month_end = month_start + relativedelta(months=1)
        monthly.append(
            {
                "month": month_start.strftime("%b"),
                "count": sum(1 for d in created if month_start <= d < month_end),
            }
        )

    return {
        "total_bookings": total,
        "active_bookings": active,
        "total_revenue": int(revenue),
        "pending_approvals": pending,
        "monthly_bookings": monthly,
    }
