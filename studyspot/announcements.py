import logging
import re
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import commit
from .errors import ValidationError
from .models import CONFIRMED, PENDING, Announcement, Booking
from .notifications import Notifier

logger = logging.getLogger(__name__)

TARGETS = {"active", "pending", "past", "all"}
MIN_PHONE_DIGITS = 10


def _digits(phone: str) -> int:
    return len(re.sub(r"\D", "", phone or ""))


async def recipient_phones(db: AsyncSession, targets: list[str], today: date) -> list[str]:
    wanted = set(targets)
    if "all" in wanted:
        wanted = {"active", "pending", "past"}

    clauses = []
    if "active" in wanted:
        clauses.append((Booking.status == CONFIRMED) & (Booking.end_date >= today))
    if "pending" in wanted:
        clauses.append(Booking.status == PENDING)
    if "past" in wanted:
        clauses.append((Booking.status == CONFIRMED) & (Booking.end_date < today))

    phones: list[str] = []
    seen = set()
    for clause in clauses:
        res = await db.execute(select(Booking.customer_phone).where(clause).order_by(Booking.created_at))
        for phone in res.scalars().all():
            if phone and phone not in seen and _digits(phone) >= MIN_PHONE_DIGITS:
                seen.add(phone)
                phones.append(phone)
    return phones


async def send_announcement(
    db: AsyncSession,
    notifier: Notifier,
    message: str,
    targets: list[str],
    today: date,
) -> Announcement:
    message = (message or "").strip()
    if not message:
        raise ValidationError("message must not be empty")
    unknown = set(targets) - TARGETS
    if not targets or unknown:
        raise ValidationError(f"targets must be a non-empty subset of {sorted(TARGETS)}")

    announcement = Announcement(message=message, targets=list(targets), recipient_count=0)
    db.add(announcement)
    await commit(db, "save announcement")

    phones = await recipient_phones(db, targets, today)
    logger.info("broadcasting announcement %s to %d recipients", announcement.id, len(phones))

    for phone in phones:
        await notifier.broadcast(phone, message)

    announcement.recipient_count = len(phones)
    await commit(db, "save announcement")
    return announcement


async def list_announcements(db: AsyncSession) -> list[Announcement]:
    res = await db.execute(select(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc()))
    return list(res.scalars().all())
