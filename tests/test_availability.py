from datetime import date

import pytest

from conftest import booking_request
from studyspot.availability import overlaps, resolve_availability
from studyspot.errors import NotFound, ValidationError


def test_overlaps_is_inclusive():
    d = date
    assert overlaps(d(2026, 1, 1), d(2026, 1, 5), d(2026, 1, 5), d(2026, 1, 9))
    assert overlaps(d(2026, 1, 1), d(2026, 1, 31), d(2026, 1, 10), d(2026, 1, 11))
    assert not overlaps(d(2026, 1, 1), d(2026, 1, 5), d(2026, 1, 6), d(2026, 1, 9))
    assert not overlaps(d(2026, 1, 10), d(2026, 1, 12), d(2026, 1, 1), d(2026, 1, 9))


async def test_availability_marks_booked_and_blocked(lifecycle, layout, seats, session_factory):
    branch_id = layout["branch"].id
    await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 3), end=date(2026, 1, 4)))
    await seats.block(layout["seats"][1].id)

    async with session_factory() as s:
        result = await resolve_availability(s, branch_id, date(2026, 1, 1), date(2026, 1, 5))

    assert [r["seat_no"] for r in result] == ["S1", "S2", "S3"]
    assert [r["available"] for r in result] == [False, False, True]
    assert result[1]["is_blocked"] is True

    async with session_factory() as s:
        later = await resolve_availability(s, branch_id, date(2026, 1, 5), date(2026, 1, 9), floor_number=1, room_no="101")
    assert [r["available"] for r in later] == [True, False, True]


async def test_inactive_bookings_do_not_hold_seats(lifecycle, layout, db):
    branch_id = layout["branch"].id
    b = await lifecycle.create(booking_request(branch_id, start=date(2026, 1, 3), end=date(2026, 1, 4)))
    await lifecycle.reject(b.id)

    result = await resolve_availability(db, branch_id, date(2026, 1, 1), date(2026, 1, 5))
    assert all(r["available"] for r in result)


async def test_availability_errors(db, layout):
    branch_id = layout["branch"].id
    with pytest.raises(ValidationError):
        await resolve_availability(db, branch_id, date(2026, 1, 5), date(2026, 1, 1))
    with pytest.raises(ValidationError):
        await resolve_availability(db, branch_id, date(2026, 1, 1), date(2026, 1, 5), room_no="101")
    with pytest.raises(NotFound):
        await resolve_availability(db, branch_id, date(2026, 1, 1), date(2026, 1, 5), floor_number=7)
    with pytest.raises(NotFound):
        await resolve_availability(db, 999, date(2026, 1, 1), date(2026, 1, 5))
