import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="studyspot-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_tmpdir}/studyspot.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ADMIN_PHONES", "+91 99999 99999")

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from studyspot import locations  # noqa: E402
from studyspot.auth import issue_token  # noqa: E402
from studyspot.bookings import BookingLifecycle  # noqa: E402
from studyspot.db import Base, get_db  # noqa: E402
from studyspot.errors import UpstreamUnavailable  # noqa: E402
from studyspot.models import Slot  # noqa: E402
from studyspot.seats import SeatFlags  # noqa: E402
from studyspot.settings_store import SettingsCache  # noqa: E402


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.confirmed = []
        self.broadcasts = []
        self.fail = fail

    async def booking_confirmed(self, booking) -> bool:
        if self.fail:
            raise RuntimeError("bus down")
        self.confirmed.append(booking.id)
        return True

    async def broadcast(self, phone: str, message: str) -> bool:
        self.broadcasts.append((phone, message))
        return True


class FailingSeatFlags(SeatFlags):
    async def _set(self, seat_id: int, blocked: bool) -> None:
        raise UpstreamUnavailable("seat store unavailable")


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def seats(session_factory):
    return SeatFlags(session_factory=session_factory)


@pytest.fixture
def lifecycle(db, seats, notifier):
    return BookingLifecycle(db, seats=seats, notifier=notifier)


@pytest.fixture
async def layout(db):
    """Branch 1, floor 1, non-AC room 101 (Rs 50/day) with seats S1..S3, and a 30-day slot."""
    branch = await locations.add_branch(db, "Main Branch", "MG Road")
    await locations.add_floor(db, branch.id, 1)
    room = await locations.add_room(db, branch.id, 1, room_no="101", name="Quiet Room", price_daily=50, seats_count=3)
    db.add(Slot(id="monthly", name="Monthly", duration_days=30, price=1500, is_active=True))
    await db.commit()
    return {"branch": branch, "room": room, "seats": list(room.seats)}


@pytest.fixture
def settings(session_factory):
    return SettingsCache(session_factory=session_factory)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {issue_token('ops@studyspot.in', ['admin'])}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {issue_token('+919000000000', [])}"}


@pytest.fixture
async def client(session_factory, seats, notifier, settings):
    from studyspot import routes
    from studyspot.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[routes.get_seat_flags] = lambda: seats
    app.dependency_overrides[routes.get_notifier] = lambda: notifier
    app.dependency_overrides[routes.get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


class Req:
    """Attribute bag standing in for a request body in direct lifecycle calls."""

    def __init__(self, **kw):
        self.__dict__.update(kw)


def booking_request(branch_id, seat_no="S1", start=None, end=None, slot_id=None, **extra):
    data = dict(
        name="Asha",
        phone="+919812345678",
        email=None,
        location=Req(branch=branch_id, floor=1, room_no="101", seat_no=seat_no),
        start_date=start,
        end_date=end,
        slot_id=slot_id,
        payment_screenshot_url=None,
    )
    data.update(extra)
    return Req(**data)
