"""End-to-end walkthroughs on a one-seat room priced at 50 per day."""
from datetime import date

import pytest
from sqlalchemy import select

from conftest import FailingSeatFlags, Req
from studyspot import locations
from studyspot.availability import resolve_availability
from studyspot.bookings import BookingLifecycle
from studyspot.errors import Conflict, InvalidState, UpstreamUnavailable
from studyspot.models import Booking, Seat


@pytest.fixture
async def one_seat(db):
    branch = await locations.add_branch(db, "Annexe")
    await locations.add_floor(db, branch.id, 0)
    room = await locations.add_room(db, branch.id, 0, room_no="G1", price_daily=50, seats_count=1)
    return branch, room.seats[0]


def request(branch_id, start, end, **extra):
    data = dict(
        name="Ravi",
        phone="+919876543210",
        email="ravi@example.com",
        location=Req(branch=branch_id, floor=0, room_no="G1", seat_no="S1"),
        start_date=start,
        end_date=end,
        slot_id=None,
        payment_screenshot_url="https://files.example/receipt.png",
    )
    data.update(extra)
    return Req(**data)


async def seat_available(session_factory, branch_id, start, end) -> bool:
    async with session_factory() as s:
        rows = await resolve_availability(s, branch_id, start, end)
    return rows[0]["available"]


async def test_booking_approval_and_revocation(lifecycle, one_seat, session_factory):
    branch, _ = one_seat
    branch_id = branch.id

    # 1: three days at 50, second overlapping request refused
    first = await lifecycle.create(request(branch_id, date(2026, 3, 1), date(2026, 3, 3)))
    first_id = first.id
    assert (first.amount, first.status) == (150, "pending")
    assert not await seat_available(session_factory, branch_id, date(2026, 3, 2), date(2026, 3, 4))
    with pytest.raises(Conflict):
        await lifecycle.create(request(branch_id, date(2026, 3, 2), date(2026, 3, 4)))
    assert first.status == "pending"

    # 2: approve, then a later non-overlapping stay succeeds
    assert (await lifecycle.approve(first_id)).status == "confirmed"
    later = await lifecycle.create(request(branch_id, date(2026, 3, 10), date(2026, 3, 12)))
    assert later.status == "pending"

    # 3: revoke frees the original dates
    assert (await lifecycle.revoke(first_id)).status == "revoked"
    assert await seat_available(session_factory, branch_id, date(2026, 3, 1), date(2026, 3, 3))


async def test_walk_in_block_failure_leaves_nothing_behind(db, notifier, one_seat, session_factory):
    branch, seat = one_seat
    lifecycle = BookingLifecycle(db, seats=FailingSeatFlags(), notifier=notifier)

    with pytest.raises(UpstreamUnavailable):
        await lifecycle.create_walk_in(request(branch.id, date(2026, 3, 1), date(2026, 3, 3), amount=None))

    async with session_factory() as s:
        statuses = (await s.execute(select(Booking.status))).scalars().all()
        assert "confirmed" not in statuses
        assert (await s.get(Seat, seat.id)).is_blocked is False


async def test_reject_requires_pending(lifecycle, one_seat):
    branch, _ = one_seat
    b = await lifecycle.create(request(branch.id, date(2026, 3, 1), date(2026, 3, 3)))
    await lifecycle.approve(b.id)

    with pytest.raises(InvalidState):
        await lifecycle.reject(b.id)
    assert (await lifecycle.get(b.id)).status == "confirmed"
