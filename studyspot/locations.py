import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import commit
from .errors import Conflict, NotFound, ValidationError
from .models import ACTIVE_STATUSES, Booking, Branch, Floor, Room, Seat

logger = logging.getLogger(__name__)

DEFAULT_PRICE_DAILY = 50


def seat_label(position: int) -> str:
    return f"S{position}"


# ---- lookups by natural key ----

async def get_branch(db: AsyncSession, branch_id: int) -> Branch:
    branch = await db.get(Branch, branch_id)
    if not branch:
        raise NotFound(f"Branch {branch_id} not found")
    return branch


async def get_floor(db: AsyncSession, branch_id: int, floor_number: int) -> Floor:
    res = await db.execute(
        select(Floor).where(Floor.branch_id == branch_id, Floor.floor_number == floor_number)
    )
    floor = res.scalar_one_or_none()
    if not floor:
        raise NotFound(f"Floor not found for branch {branch_id}, floor {floor_number}")
    return floor


async def get_room(db: AsyncSession, floor_id: int, room_no: str) -> Room:
    res = await db.execute(select(Room).where(Room.floor_id == floor_id, Room.room_no == room_no))
    room = res.scalar_one_or_none()
    if not room:
        raise NotFound(f"Room '{room_no}' not found")
    return room


async def get_room_by_id(db: AsyncSession, room_id: int) -> Room:
    room = await db.get(Room, room_id)
    if not room:
        raise NotFound(f"Room {room_id} not found")
    return room


async def get_seat(db: AsyncSession, room_id: int, seat_no: str, *, for_update: bool = False) -> Seat:
    stmt = select(Seat).where(Seat.room_id == room_id, Seat.seat_no == seat_no)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    seat = res.scalar_one_or_none()
    if not seat:
        raise NotFound(f"Seat '{seat_no}' not found in room {room_id}")
    return seat


async def resolve_location(db: AsyncSession, branch_id: int, floor_number: int, room_no: str, seat_no: str):
    """Branch -> floor -> room -> seat, failing with NotFound at the first missing level."""
    branch = await get_branch(db, branch_id)
    floor = await get_floor(db, branch.id, floor_number)
    room = await get_room(db, floor.id, room_no)
    seat = await get_seat(db, room.id, seat_no)
    return branch, floor, room, seat


# ---- structural delete guard ----

async def active_bookings(
    db: AsyncSession,
    *,
    branch_id: int | None = None,
    floor_id: int | None = None,
    room_id: int | None = None,
    seat_ids: list[int] | None = None,
) -> list[str]:
    """Pending/confirmed bookings in a subtree, formatted as "<id> (<name> - <start>)"."""
    stmt = select(Booking.id, Booking.customer_name, Booking.start_date).where(
        Booking.status.in_(ACTIVE_STATUSES)
    )
    if branch_id is not None:
        stmt = stmt.where(Booking.branch_id == branch_id)
    if floor_id is not None:
        stmt = stmt.where(Booking.floor_id == floor_id)
    if room_id is not None:
        stmt = stmt.where(Booking.room_id == room_id)
    if seat_ids is not None:
        if not seat_ids:
            return []
        stmt = stmt.where(Booking.seat_id.in_(seat_ids))

    res = await db.execute(stmt.order_by(Booking.start_date))
    return [f"{bid} ({name} - {start.isoformat()})" for bid, name, start in res.all()]


# ---- branches ----

async def list_branches(db: AsyncSession) -> list[Branch]:
    res = await db.execute(select(Branch).order_by(Branch.id))
    return list(res.scalars().all())


async def add_branch(db: AsyncSession, name: str, address: str | None = None) -> Branch:
    branch = Branch(name=name, address=address, floors=[])
    db.add(branch)
    await commit(db, "add branch")
    return branch


async def update_branch(db: AsyncSession, branch_id: int, name: str | None = None, address: str | None = None) -> Branch:
    branch = await get_branch(db, branch_id)
    if name is not None:
        branch.name = name
    if address is not None:
        branch.address = address
    await commit(db, f"update branch {branch_id}")
    return branch


async def delete_branch(db: AsyncSession, branch_id: int) -> None:
    branch = await get_branch(db, branch_id)
    bookings = await active_bookings(db, branch_id=branch.id)
    if bookings:
        raise Conflict(f"Cannot delete branch: It has active bookings: {', '.join(bookings)}")
    await db.delete(branch)
    await commit(db, f"delete branch {branch_id}")
    logger.info("branch %s deleted", branch_id)


# ---- floors ----

async def add_floor(db: AsyncSession, branch_id: int, floor_number: int) -> Floor:
    branch = await get_branch(db, branch_id)
    if any(f.floor_number == floor_number for f in branch.floors):
        raise Conflict(f"Floor {floor_number} already exists in branch {branch_id}")
    floor = Floor(floor_number=floor_number, rooms=[])
    branch.floors.append(floor)
    await commit(db, f"add floor {floor_number}")
    return floor


async def renumber_floor(db: AsyncSession, branch_id: int, floor_number: int, new_number: int) -> Floor:
    floor = await get_floor(db, branch_id, floor_number)
    if new_number != floor_number:
        res = await db.execute(
            select(Floor.id).where(Floor.branch_id == branch_id, Floor.floor_number == new_number)
        )
        if res.first():
            raise Conflict(f"Floor {new_number} already exists in branch {branch_id}")
        floor.floor_number = new_number
        await commit(db, f"renumber floor {floor_number}")
    return floor


async def delete_floor(db: AsyncSession, branch_id: int, floor_number: int) -> None:
    floor = await get_floor(db, branch_id, floor_number)
    bookings = await active_bookings(db, floor_id=floor.id)
    if bookings:
        raise Conflict(f"Cannot delete floor: It has active bookings: {', '.join(bookings)}")
    await db.delete(floor)
    await commit(db, f"delete floor {floor_number}")
    logger.info("floor %s/%s deleted", branch_id, floor_number)


# ---- rooms ----

async def add_room(
    db: AsyncSession,
    branch_id: int,
    floor_number: int,
    *,
    room_no: str,
    name: str | None = None,
    is_ac: bool = False,
    price_daily: int | None = DEFAULT_PRICE_DAILY,
    seats_count: int = 0,
) -> Room:
    if seats_count < 0:
        raise ValidationError("seats_count must not be negative")

    floor = await get_floor(db, branch_id, floor_number)
    res = await db.execute(select(Room.id).where(Room.floor_id == floor.id, Room.room_no == room_no))
    if res.first():
        raise Conflict(f"Room '{room_no}' already exists on floor {floor_number}")

    room = Room(
        room_no=room_no,
        name=name or f"Room {room_no}",
        is_ac=is_ac,
        price_daily=price_daily,
        seats_count=seats_count,
        seats=[Seat(seat_no=seat_label(i), position=i, is_blocked=False) for i in range(1, seats_count + 1)],
    )
    floor.rooms.append(room)
    await commit(db, f"add room {room_no}")
    return room


async def update_room(
    db: AsyncSession,
    room_id: int,
    *,
    room_no: str | None = None,
    name: str | None = None,
    is_ac: bool | None = None,
    price_daily: int | None = None,
    seats_count: int | None = None,
) -> Room:
    room = await get_room_by_id(db, room_id)

    if seats_count is not None and seats_count != len(room.seats):
        await _resize_room(db, room, seats_count)

    if room_no is not None and room_no != room.room_no:
        res = await db.execute(select(Room.id).where(Room.floor_id == room.floor_id, Room.room_no == room_no))
        if res.first():
            raise Conflict(f"Room '{room_no}' already exists on this floor")
        room.room_no = room_no
    if name is not None:
        room.name = name
    if is_ac is not None:
        room.is_ac = is_ac
    if price_daily is not None:
        room.price_daily = price_daily

    await commit(db, f"update room {room_id}")
    return room


async def _resize_room(db: AsyncSession, room: Room, seats_count: int) -> None:
    if seats_count < 0:
        raise ValidationError("seats_count must not be negative")

    current = sorted(room.seats, key=lambda s: s.position)

    if seats_count > len(current):
        last = current[-1].position if current else 0
        for i in range(last + 1, last + 1 + seats_count - len(current)):
            room.seats.append(Seat(seat_no=seat_label(i), position=i, is_blocked=False))
    else:
        # highest-numbered seats go first
        removed = current[seats_count:]
        for seat in removed:
            bookings = await active_bookings(db, seat_ids=[seat.id])
            if bookings:
                raise Conflict(
                    f"Cannot reduce seat count: Seat {seat.seat_no} has active bookings: {', '.join(bookings)}"
                )
        for seat in removed:
            room.seats.remove(seat)

    room.seats_count = seats_count


async def delete_room(db: AsyncSession, room_id: int) -> None:
    room = await get_room_by_id(db, room_id)
    bookings = await active_bookings(db, room_id=room.id)
    if bookings:
        raise Conflict(f"Cannot delete room: It has active bookings: {', '.join(bookings)}")
    await db.delete(room)
    await commit(db, f"delete room {room_id}")
    logger.info("room %s deleted", room_id)


# ---- seats ----

async def list_seats(db: AsyncSession) -> list[dict]:
    res = await db.execute(
        select(Seat, Room, Floor, Branch)
        .join(Room, Seat.room_id == Room.id)
        .join(Floor, Room.floor_id == Floor.id)
        .join(Branch, Floor.branch_id == Branch.id)
        .order_by(Branch.id, Floor.floor_number, Room.room_no, Seat.position)
    )
    return [
        {
            "id": seat.id,
            "seat_no": seat.seat_no,
            "is_blocked": seat.is_blocked,
            "room_id": room.id,
            "room_no": room.room_no,
            "room_name": room.name,
            "is_ac": room.is_ac,
            "price_daily": room.price_daily,
            "floor_id": floor.id,
            "floor_number": floor.floor_number,
            "branch_id": branch.id,
            "branch_name": branch.name,
        }
        for seat, room, floor, branch in res.all()
    ]
