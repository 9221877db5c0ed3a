from datetime import date
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from .availability import resolve_availability
from .bookings import BookingLifecycle
from .db import get_db
from .errors import MaintenanceMode
from .holidays import list_holidays
from .locations import get_room_by_id, list_branches
from .notifications import Notifier, notifier
from .pricing import list_slots
from .schemas import (
    BookingResponse,
    BranchOut,
    CreateBookingRequest,
    HolidayOut,
    PaymentDetails,
    SeatAvailability,
    SettingValue,
    SlotOut,
    UploadResponse,
    booking_to_response,
    branch_out,
)
from .seats import SeatFlags, seat_flags
from .settings_store import PUBLIC_KEYS, UPI_ID, UPI_MERCHANT_NAME, UPI_PHONE, SettingsCache, settings_cache
from .storage import StorageClient, storage

router = APIRouter()


# dependencies, overridden in tests

def get_notifier() -> Notifier:
    return notifier


def get_seat_flags() -> SeatFlags:
    return seat_flags


def get_settings() -> SettingsCache:
    return settings_cache


def get_storage() -> StorageClient:
    return storage


def get_today() -> date:
    return date.today()


def get_lifecycle(
    db: AsyncSession = Depends(get_db),
    seats: SeatFlags = Depends(get_seat_flags),
    bus: Notifier = Depends(get_notifier),
) -> BookingLifecycle:
    return BookingLifecycle(db, seats=seats, notifier=bus)


# ---- layout / availability ----

@router.get("/branches", response_model=List[BranchOut])
async def get_branches(db: AsyncSession = Depends(get_db)):
    return [branch_out(b) for b in await list_branches(db)]


@router.get("/availability", response_model=List[SeatAvailability])
async def get_availability(
    branch_id: int,
    start: date,
    end: date,
    floor: Optional[int] = None,
    room_no: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return await resolve_availability(db, branch_id, start, end, floor_number=floor, room_no=room_no)


@router.get("/slots", response_model=List[SlotOut])
async def get_slots(room_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    room = await get_room_by_id(db, room_id) if room_id is not None else None
    return await list_slots(db, room)


@router.get("/holidays", response_model=List[HolidayOut])
async def get_holidays(
    branch_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    today: date = Depends(get_today),
):
    return [
        HolidayOut(id=h.id, date=h.date, branch_id=h.branch_id, reason=h.reason)
        for h in await list_holidays(db, branch_id=branch_id, since=today)
    ]


@router.get("/settings/{key}", response_model=SettingValue)
async def get_public_setting(key: str, settings: SettingsCache = Depends(get_settings)):
    if key not in PUBLIC_KEYS:
        raise HTTPException(status_code=404, detail=f"Setting '{key}' not found")
    return SettingValue(key=key, value=await settings.get(key))


# ---- bookings ----

@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: CreateBookingRequest,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
    settings: SettingsCache = Depends(get_settings),
):
    if await settings.maintenance_mode():
        raise MaintenanceMode("Bookings are paused for maintenance, please try again later")

    booking = await lifecycle.create(data)
    return booking_to_response(booking)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, lifecycle: BookingLifecycle = Depends(get_lifecycle)):
    return booking_to_response(await lifecycle.get(booking_id))


@router.get("/bookings/{booking_id}/payment", response_model=PaymentDetails)
async def get_payment_details(
    booking_id: str,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
    settings: SettingsCache = Depends(get_settings),
):
    """UPI deep link for the booking amount; the booking id is the transaction reference."""
    booking = await lifecycle.get(booking_id)

    upi_id = await settings.get(UPI_ID)
    merchant = await settings.get(UPI_MERCHANT_NAME)
    upi_uri = None
    if upi_id:
        params = {
            "pa": upi_id,
            "pn": merchant or "StudySpot",
            "am": str(booking.amount),
            "tr": booking.id,
            "cu": "INR",
        }
        upi_uri = "upi://pay?" + urlencode(params)

    return PaymentDetails(
        booking_id=booking.id,
        amount=booking.amount,
        upi_id=upi_id,
        merchant_name=merchant,
        phone=await settings.get(UPI_PHONE),
        upi_uri=upi_uri,
    )


@router.post("/uploads/receipt", response_model=UploadResponse, status_code=201)
async def upload_receipt(file: UploadFile = File(...), client: StorageClient = Depends(get_storage)):
    content = await file.read()
    url = await client.upload_receipt(file.filename, content, file.content_type)
    return UploadResponse(url=url)
