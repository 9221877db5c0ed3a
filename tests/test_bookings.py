import re
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, select

from conftest import FailingSeatFlags, FakeNotifier, booking_request
from studyspot.bookings import SEAT_TAKEN, BookingLifecycle, dashboard_stats, generate_booking_id, to_base36
from studyspot.errors import Conflict, InvalidState, NotFound, UpstreamUnavailable, ValidationError
from studyspot.models import Booking, Seat


def test_booking_id_format():
    booking_id = generate_booking_id(now_ms=1700000000000)
    assert booking_id.startswith("BK-" + to_base36(1700000000000))
    assert re.fullmatch(r"BK-[0-9A-Z]+", booking_id)
    assert len(booking_id) == 3 + len(to_base36(1700000000000)) + 4


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"


async def test_create_is_pending_with_server_side_amount(lifecycle, layout):
    b = await lifecycle.create(booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 5)))

    assert b.status == "pending"
    assert b.amount == 250
    assert (b.floor_number, b.room_no, b.seat_no) == (1, "101", "S1")
    assert b.seat_id == layout["seats"][0].id


async def test_slot_derives_end_date(lifecycle, layout):
    b = await lifecycle.create(booking_request(layout["branch"].id, start=date(2026, 1, 1), slot_id="monthly"))
    assert b.end_date == date(2026, 1, 30)
    assert b.slot_id == "monthly"
    assert b.amount == 1500


async def test_overlap_including_shared_day_conflicts(lifecycle, layout):
    branch_id = layout["branch"].id
    await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))

    with pytest.raises(Conflict) as exc:
        await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 5), end=date(2026, 1, 10)))
    assert exc.value.message == SEAT_TAKEN

    b = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 6), end=date(2026, 1, 10)))
    assert b.status == "pending"

    other = await lifecycle.create(booking_request(branch_id, seat_no="S2", start=date(2026, 1, 1), end=date(2026, 1, 5)))
    assert other.seat_no == "S2"


async def test_refused_overlap_keeps_loaded_rows_usable(lifecycle, layout):
    branch_id = layout["branch"].id
    first = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))

    with pytest.raises(Conflict):
        await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 2), end=date(2026, 1, 3)))

    # attribute reads must not need a reload from the database
    assert (first.status, first.amount) == ("pending", 250)
    assert layout["room"].room_no == "101"
    assert (await lifecycle.approve(first.id)).status == "confirmed"


async def test_rejected_booking_frees_the_seat(lifecycle, layout):
    branch_id = layout["branch"].id
    b = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))
    await lifecycle.reject(b.id)

    again = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 2), end=date(2026, 1, 3)))
    assert again.status == "pending"


async def test_create_rejects_unknown_location_and_bad_range(lifecycle, layout):
    branch_id = layout["branch"].id
    with pytest.raises(NotFound):
        await lifecycle.create(booking_request(branch_id, seat_no="S9", start=date(2026, 1, 1), end=date(2026, 1, 2)))
    with pytest.raises(NotFound):
        await lifecycle.create(booking_request(999, start=date(2026, 1, 1), end=date(2026, 1, 2)))
    with pytest.raises(ValidationError):
        await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 5), end=date(2026, 1, 1)))


async def test_state_machine(lifecycle, layout, notifier):
    branch_id = layout["branch"].id
    b = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))

    with pytest.raises(InvalidState):
        await lifecycle.revoke(b.id)

    approved = await lifecycle.approve(b.id)
    assert approved.status == "confirmed"
    assert notifier.confirmed == [b.id]

    with pytest.raises(InvalidState):
        await lifecycle.approve(b.id)
    with pytest.raises(InvalidState):
        await lifecycle.reject(b.id)

    revoked = await lifecycle.revoke(b.id)
    assert revoked.status == "revoked"

    # terminal
    for action in (lifecycle.approve, lifecycle.reject, lifecycle.revoke, lifecycle.expire):
        with pytest.raises(InvalidState):
            await action(b.id)


async def test_transition_on_missing_booking(lifecycle):
    with pytest.raises(NotFound):
        await lifecycle.approve("BK-NOPE")
    with pytest.raises(NotFound):
        await lifecycle.get("BK-NOPE")


async def test_approve_survives_notification_failure(db, seats, layout):
    lifecycle = BookingLifecycle(db, seats=seats, notifier=FakeNotifier(fail=True))
    b = await lifecycle.create(booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 2)))

    approved = await lifecycle.approve(b.id)
    assert approved.status == "confirmed"


async def test_reject_and_revoke_unblock_the_seat(lifecycle, layout, seats, session_factory):
    branch_id = layout["branch"].id
    seat_id = layout["seats"][0].id

    b = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 2)))
    await seats.block(seat_id)
    await lifecycle.reject(b.id)

    async with session_factory() as s:
        assert (await s.get(Seat, seat_id)).is_blocked is False

    b2 = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 2)))
    await lifecycle.approve(b2.id)
    await seats.block(seat_id)
    await lifecycle.revoke(b2.id)

    async with session_factory() as s:
        assert (await s.get(Seat, seat_id)).is_blocked is False


async def test_unblock_failure_does_not_undo_transition(db, layout, notifier):
    lifecycle = BookingLifecycle(db, seats=FailingSeatFlags(), notifier=notifier)
    b = await lifecycle.create(booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 2)))

    rejected = await lifecycle.reject(b.id)
    assert rejected.status == "rejected"


async def test_walk_in_is_confirmed_and_blocks_seat(lifecycle, layout, session_factory):
    data = booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 10), amount=0)
    b = await lifecycle.create_walk_in(data)

    assert b.status == "confirmed"
    assert b.amount == 0
    async with session_factory() as s:
        assert (await s.get(Seat, b.seat_id)).is_blocked is True


async def test_expiring_a_walk_in_unblocks_the_seat(lifecycle, layout, session_factory):
    data = booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 10), amount=None)
    b = await lifecycle.create_walk_in(data)
    seat_id = b.seat_id

    async with session_factory() as s:
        assert (await s.get(Seat, seat_id)).is_blocked is True

    expired = await lifecycle.expire(b.id)
    assert expired.status == "expired"

    async with session_factory() as s:
        assert (await s.get(Seat, seat_id)).is_blocked is False


async def test_walk_in_rolled_back_when_block_fails(db, layout, notifier):
    lifecycle = BookingLifecycle(db, seats=FailingSeatFlags(), notifier=notifier)
    data = booking_request(layout["branch"].id, start=date(2026, 1, 1), end=date(2026, 1, 10), amount=None)

    with pytest.raises(UpstreamUnavailable):
        await lifecycle.create_walk_in(data)

    count = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    assert count == 0


async def test_walk_in_still_checks_overlap(lifecycle, layout):
    branch_id = layout["branch"].id
    await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))

    with pytest.raises(Conflict):
        await lifecycle.create_walk_in(booking_request(branch_id, start=date(2026, 1, 3), end=date(2026, 1, 4), amount=None))


async def test_expire_overdue(lifecycle, layout):
    branch_id = layout["branch"].id
    old = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))
    current = await lifecycle.create(booking_request(branch_id, seat_no="S2", start=date(2026, 1, 1), end=date(2026, 3, 1)))
    pending = await lifecycle.create(booking_request(branch_id, seat_no="S3", start=date(2026, 1, 1), end=date(2026, 1, 5)))
    await lifecycle.approve(old.id)
    await lifecycle.approve(current.id)

    expired = await lifecycle.expire_overdue(date(2026, 2, 1))

    assert expired == [old.id]
    assert (await lifecycle.get(old.id)).status == "expired"
    assert (await lifecycle.get(current.id)).status == "confirmed"
    assert (await lifecycle.get(pending.id)).status == "pending"


async def test_list_bookings_filters_by_status(lifecycle, layout):
    branch_id = layout["branch"].id
    a = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))
    await lifecycle.create(booking_request(branch_id, seat_no="S2", start=date(2026, 1, 1), end=date(2026, 1, 5)))
    await lifecycle.approve(a.id)

    assert [b.id for b in await lifecycle.list_bookings("confirmed")] == [a.id]
    assert len(await lifecycle.list_bookings()) == 2


async def test_dashboard_stats(db, lifecycle, layout):
    branch_id = layout["branch"].id
    a = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 1), end=date(2026, 1, 5)))
    await lifecycle.create(booking_request(branch_id, seat_no="S2", start=date(2026, 1, 1), end=date(2026, 1, 2)))
    await lifecycle.approve(a.id)

    today = datetime.now(timezone.utc).date()
    stats = await dashboard_stats(db, today)

    assert stats["total_bookings"] == 2
    assert stats["active_bookings"] == 1
    assert stats["pending_approvals"] == 1
    assert stats["total_revenue"] == 250
    assert len(stats["monthly_bookings"]) == 6
    assert stats["monthly_bookings"][-1] == {"month": today.strftime("%b"), "count": 2}
