from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import commit
from .errors import NotFound
from .locations import get_branch
from .models import Holiday


async def list_holidays(db: AsyncSession, branch_id: int | None = None, since: date | None = None) -> list[Holiday]:
    """Holidays for a branch, including ones that apply to every branch (branch_id NULL)."""
    stmt = select(Holiday).order_by(Holiday.date)
    if branch_id is not None:
        stmt = stmt.where(or_(Holiday.branch_id.is_(None), Holiday.branch_id == branch_id))
    if since is not None:
        stmt = stmt.where(Holiday.date >= since)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def add_holiday(db: AsyncSession, day: date, branch_id: int | None, reason: str | None) -> Holiday:
    if branch_id is not None:
        await get_branch(db, branch_id)
    holiday = Holiday(date=day, branch_id=branch_id, reason=reason)
    db.add(holiday)
    await commit(db, f"add holiday {day}")
    return holiday


async def delete_holiday(db: AsyncSession, holiday_id: int) -> None:
    holiday = await db.get(Holiday, holiday_id)
    if not holiday:
        raise NotFound(f"Holiday {holiday_id} not found")
    await db.delete(holiday)
    await commit(db, f"delete holiday {holiday_id}")
