from datetime import date

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import ValidationError
from .locations import get_branch, get_floor, get_room
from .models import ACTIVE_STATUSES, Booking, Floor, Room, Seat


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    # inclusive calendar-date ranges
    return a_start <= b_end and a_end >= b_start


def active_overlap(start: date, end: date):
    """SQL form of `overlaps` restricted to bookings that still hold their seat."""
    return and_(
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_date <= end,
        Booking.end_date >= start,
    )


def check_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError("start date must be on or before end date")


async def booked_seat_ids(db: AsyncSession, seat_ids: list[int], start: date, end: date) -> set[int]:
    if not seat_ids:
        return set()
    res = await db.execute(
        select(Booking.seat_id).where(Booking.seat_id.in_(seat_ids), active_overlap(start, end)).distinct()
    )
    return set(res.scalars().all())


async def resolve_availability(
    db: AsyncSession,
    branch_id: int,
    start: date,
    end: date,
    floor_number: int | None = None,
    room_no: str | None = None,
) -> list[dict]:
    """
    Seats under a branch (optionally narrowed to a floor and room) with an `available`
    flag for [start, end]. Read-only; booking creation re-checks at write time.
    """
    check_range(start, end)

    await get_branch(db, branch_id)
    stmt = (
        select(Seat, Room, Floor)
        .join(Room, Seat.room_id == Room.id)
        .join(Floor, Room.floor_id == Floor.id)
        .where(Floor.branch_id == branch_id)
    )

    if floor_number is not None:
        floor = await get_floor(db, branch_id, floor_number)
        stmt = stmt.where(Floor.id == floor.id)
        if room_no is not None:
            room = await get_room(db, floor.id, room_no)
            stmt = stmt.where(Room.id == room.id)
    elif room_no is not None:
        raise ValidationError("room_no requires a floor")

    stmt = stmt.order_by(Floor.floor_number, Room.room_no, Seat.position)
    rows = (await db.execute(stmt)).all()

    booked = await booked_seat_ids(db, [seat.id for seat, _, _ in rows], start, end)

    return [
        {
            "seat_id": seat.id,
            "seat_no": seat.seat_no,
            "floor": floor.floor_number,
            "room_no": room.room_no,
            "room_name": room.name,
            "is_ac": room.is_ac,
            "is_blocked": seat.is_blocked,
            "available": not seat.is_blocked and seat.id not in booked,
        }
        for seat, room, floor in rows
    ]
