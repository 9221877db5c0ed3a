import math
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import commit
from .errors import NotFound, ValidationError
from .locations import get_branch
from .models import Floor, PricingRule, Room, Slot


@dataclass
class Quote:
    start_date: date
    end_date: date
    days: int
    daily_rate: int | None
    amount: int
    slot: Slot | None = None


def days_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def price_for_range(daily_rate: int, start: date, end: date) -> int:
    return daily_rate * math.ceil(days_inclusive(start, end))


def slot_end(start: date, duration_days: int) -> date:
    # a 30-day slot starting on the 1st ends on the 30th
    return start + timedelta(days=duration_days - 1)


async def daily_rate_for(db: AsyncSession, room: Room) -> int | None:
    """Room rate, else the branch rule for the room's AC flag."""
    if room.price_daily is not None:
        return room.price_daily

    res = await db.execute(
        select(PricingRule.daily_rate)
        .join(Floor, Floor.branch_id == PricingRule.branch_id)
        .where(Floor.id == room.floor_id, PricingRule.is_ac == room.is_ac)
    )
    return res.scalar_one_or_none()


async def get_slot(db: AsyncSession, slot_id: str) -> Slot | None:
    return await db.get(Slot, slot_id)


async def quote(
    db: AsyncSession,
    room: Room,
    start: date,
    end: date | None = None,
    slot_id: str | None = None,
) -> Quote:
    slot = await get_slot(db, slot_id) if slot_id else None

    if end is None:
        if not slot:
            raise NotFound(f"Slot '{slot_id}' not found and no date range provided")
        end = slot_end(start, slot.duration_days)

    if start > end:
        raise ValidationError("start date must be on or before end date")

    rate = await daily_rate_for(db, room)
    days = days_inclusive(start, end)

    if rate is not None:
        amount = price_for_range(rate, start, end)
    elif slot:
        amount = slot.price
    else:
        raise ValidationError(f"No daily rate configured for room {room.room_no}")

    return Quote(start_date=start, end_date=end, days=days, daily_rate=rate, amount=amount, slot=slot)


async def list_slots(db: AsyncSession, room: Room | None = None) -> list[dict]:
    res = await db.execute(select(Slot).where(Slot.is_active.is_(True)).order_by(Slot.duration_days))
    rate = await daily_rate_for(db, room) if room else None
    return [
        {
            "id": s.id,
            "name": s.name,
            "duration_days": s.duration_days,
            "price": s.duration_days * rate if rate is not None else s.price,
        }
        for s in res.scalars().all()
    ]


async def list_rules(db: AsyncSession) -> list[PricingRule]:
    res = await db.execute(select(PricingRule).order_by(PricingRule.branch_id, PricingRule.is_ac))
    return list(res.scalars().all())


async def set_rule(db: AsyncSession, branch_id: int, is_ac: bool, daily_rate: int) -> PricingRule:
    if daily_rate < 0:
        raise ValidationError("daily_rate must not be negative")

    await get_branch(db, branch_id)

    res = await db.execute(
        select(PricingRule).where(PricingRule.branch_id == branch_id, PricingRule.is_ac == is_ac)
    )
    rule = res.scalar_one_or_none()
    if rule:
        rule.daily_rate = daily_rate
    else:
        rule = PricingRule(branch_id=branch_id, is_ac=is_ac, daily_rate=daily_rate)
        db.add(rule)
    await commit(db, "save pricing rule")
    return rule
