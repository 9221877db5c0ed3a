from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .announcements import list_announcements, send_announcement
from .auth import require_admin
from .bookings import BookingLifecycle, dashboard_stats
from .db import get_db
from .errors import ValidationError
from .holidays import add_holiday, delete_holiday
from .locations import (
    add_branch,
    add_floor,
    add_room,
    delete_branch,
    delete_floor,
    delete_room,
    list_seats,
    renumber_floor,
    update_branch,
    update_room,
)
from .models import BOOKING_STATUSES
from .notifications import Notifier
from .pricing import list_rules, set_rule
from .routes import get_lifecycle, get_notifier, get_seat_flags, get_settings, get_storage, get_today
from .schemas import (
    AdminSeat,
    AnnouncementOut,
    BookingResponse,
    BranchOut,
    CleanupResult,
    CreateAnnouncement,
    CreateBranch,
    CreateFloor,
    CreateHoliday,
    CreateRoom,
    DashboardStats,
    FloorOut,
    HolidayOut,
    PricingRuleIn,
    PricingRuleOut,
    RoomOut,
    SettingValue,
    UpdateBranch,
    UpdateFloor,
    UpdateRoom,
    UpdateSetting,
    WalkInBookingRequest,
    booking_to_response,
    branch_out,
    floor_out,
    room_out,
)
from .seats import SeatFlags
from .settings_store import SettingsCache
from .storage import StorageClient, cleanup_screenshots

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


# ---- bookings ----

@router.get("/bookings", response_model=List[BookingResponse])
async def admin_list_bookings(status: Optional[str] = None, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    if status is not None and status not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown status '{status}'")
    return [booking_to_response(b) for b in await lifecycle.list_bookings(status)]


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def admin_walk_in(data: WalkInBookingRequest, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    booking = await lifecycle.create_walk_in(data)
    return booking_to_response(booking)


@router.post("/bookings/{booking_id}/approve", response_model=BookingResponse)
async def admin_approve(booking_id: str, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    return booking_to_response(await lifecycle.approve(booking_id))


@router.post("/bookings/{booking_id}/reject", response_model=BookingResponse)
async def admin_reject(booking_id: str, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    return booking_to_response(await lifecycle.reject(booking_id))


@router.post("/bookings/{booking_id}/revoke", response_model=BookingResponse)
async def admin_revoke(booking_id: str, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    return booking_to_response(await lifecycle.revoke(booking_id))


@router.post("/bookings/{booking_id}/expire", response_model=BookingResponse)
async def admin_expire(booking_id: str, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    return booking_to_response(await lifecycle.expire(booking_id))


# ---- seats ----

@router.get("/seats", response_model=List[AdminSeat])
async def admin_list_seats(db: AsyncSession = Depends(get_db)):
    return await list_seats(db)


@router.post("/seats/{seat_id}/block")
async def admin_block_seat(seat_id: int, seats: SeatFlags = Depends(get_seat_flags)):
    await seats.block(seat_id)
    return {"seat_id": seat_id, "is_blocked": True}


@router.post("/seats/{seat_id}/unblock")
async def admin_unblock_seat(seat_id: int, seats: SeatFlags = Depends(get_seat_flags)):
    await seats.unblock(seat_id)
    return {"seat_id": seat_id, "is_blocked": False}


# ---- branches / floors / rooms ----

@router.post("/branches", response_model=BranchOut, status_code=201)
async def admin_add_branch(data: CreateBranch, db: AsyncSession = Depends(get_db)):
    return branch_out(await add_branch(db, data.name, data.address))


@router.patch("/branches/{branch_id}", response_model=BranchOut)
async def admin_update_branch(branch_id: int, data: UpdateBranch, db: AsyncSession = Depends(get_db)):
    return branch_out(await update_branch(db, branch_id, name=data.name, address=data.address))


@router.delete("/branches/{branch_id}", status_code=204)
async def admin_delete_branch(branch_id: int, db: AsyncSession = Depends(get_db)):
    await delete_branch(db, branch_id)


@router.post("/branches/{branch_id}/floors", response_model=FloorOut, status_code=201)
async def admin_add_floor(branch_id: int, data: CreateFloor, db: AsyncSession = Depends(get_db)):
    return floor_out(await add_floor(db, branch_id, data.floor_number))


@router.patch("/branches/{branch_id}/floors/{floor_number}", response_model=FloorOut)
async def admin_renumber_floor(branch_id: int, floor_number: int, data: UpdateFloor, db: AsyncSession = Depends(get_db)):
    return floor_out(await renumber_floor(db, branch_id, floor_number, data.floor_number))


@router.delete("/branches/{branch_id}/floors/{floor_number}", status_code=204)
async def admin_delete_floor(branch_id: int, floor_number: int, db: AsyncSession = Depends(get_db)):
    await delete_floor(db, branch_id, floor_number)


@router.post("/branches/{branch_id}/floors/{floor_number}/rooms", response_model=RoomOut, status_code=201)
async def admin_add_room(branch_id: int, floor_number: int, data: CreateRoom, db: AsyncSession = Depends(get_db)):
    room = await add_room(
        db,
        branch_id,
        floor_number,
        room_no=data.room_no,
        name=data.name,
        is_ac=data.is_ac,
        price_daily=data.price_daily,
        seats_count=data.seats_count,
    )
    return room_out(room)


@router.patch("/rooms/{room_id}", response_model=RoomOut)
async def admin_update_room(room_id: int, data: UpdateRoom, db: AsyncSession = Depends(get_db)):
    room = await update_room(db, room_id, **data.model_dump(exclude_unset=True))
    return room_out(room)


@router.delete("/rooms/{room_id}", status_code=204)
async def admin_delete_room(room_id: int, db: AsyncSession = Depends(get_db)):
    await delete_room(db, room_id)


# ---- pricing / holidays / settings ----

@router.get("/pricing-rules", response_model=List[PricingRuleOut])
async def admin_list_rules(db: AsyncSession = Depends(get_db)):
    return [
        PricingRuleOut(branch_id=r.branch_id, is_ac=r.is_ac, daily_rate=r.daily_rate)
        for r in await list_rules(db)
    ]


@router.put("/pricing-rules", response_model=PricingRuleOut)
async def admin_set_rule(data: PricingRuleIn, db: AsyncSession = Depends(get_db)):
    rule = await set_rule(db, data.branch_id, data.is_ac, data.daily_rate)
    return PricingRuleOut(branch_id=rule.branch_id, is_ac=rule.is_ac, daily_rate=rule.daily_rate)


@router.post("/holidays", response_model=HolidayOut, status_code=201)
async def admin_add_holiday(data: CreateHoliday, db: AsyncSession = Depends(get_db)):
    h = await add_holiday(db, data.date, data.branch_id, data.reason)
    return HolidayOut(id=h.id, date=h.date, branch_id=h.branch_id, reason=h.reason)


@router.delete("/holidays/{holiday_id}", status_code=204)
async def admin_delete_holiday(holiday_id: int, db: AsyncSession = Depends(get_db)):
    await delete_holiday(db, holiday_id)


@router.put("/settings/{key}", response_model=SettingValue)
async def admin_set_setting(key: str, data: UpdateSetting, settings: SettingsCache = Depends(get_settings)):
    if not key.strip():
        raise HTTPException(status_code=400, detail="Setting key must not be empty")
    await settings.set(key, data.value)
    return SettingValue(key=key, value=data.value)


# ---- announcements ----

@router.post("/announcements", response_model=AnnouncementOut, status_code=201)
async def admin_announce(
    data: CreateAnnouncement,
    db: AsyncSession = Depends(get_db),
    bus: Notifier = Depends(get_notifier),
    today: date = Depends(get_today),
):
    a = await send_announcement(db, bus, data.message, data.targets, today)
    return AnnouncementOut(
        id=a.id,
        message=a.message,
        targets=a.targets,
        recipient_count=a.recipient_count,
        created_at=a.created_at,
    )


@router.get("/announcements", response_model=List[AnnouncementOut])
async def admin_list_announcements(db: AsyncSession = Depends(get_db)):
    return [
        AnnouncementOut(
            id=a.id,
            message=a.message,
            targets=a.targets,
            recipient_count=a.recipient_count,
            created_at=a.created_at,
        )
        for a in await list_announcements(db)
    ]


# ---- dashboard / maintenance ----

@router.get("/stats", response_model=DashboardStats)
async def admin_stats(db: AsyncSession = Depends(get_db), today: date = Depends(get_today)):
    return await dashboard_stats(db, today)


@router.post("/maintenance/cleanup-screenshots", response_model=CleanupResult)
async def admin_cleanup_screenshots(db: AsyncSession = Depends(get_db), client: StorageClient = Depends(get_storage)):
    return await cleanup_screenshots(db, client)
