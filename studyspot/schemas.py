from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

BookingStatus = Literal["pending", "confirmed", "cancelled", "rejected", "revoked", "expired"]


# ---- booking ----

class Location(BaseModel):
    branch: int
    floor: int
    room_no: str
    seat_no: str


class CreateBookingRequest(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=10)
    email: Optional[str] = None
    location: Location
    start_date: date
    end_date: Optional[date] = None
    slot_id: Optional[str] = None
    payment_screenshot_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class WalkInBookingRequest(CreateBookingRequest):
    # walk-in customers may not leave a number
    phone: str = ""
    amount: Optional[int] = Field(default=None, ge=0)

    @field_validator("phone")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        return v.strip()


class BookingLocation(BaseModel):
    branch: Optional[int]
    floor: Optional[int]
    room_no: Optional[str]
    seat_no: Optional[str]


class BookingResponse(BaseModel):
    id: str
    status: BookingStatus
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    slot_id: Optional[str] = None
    location: BookingLocation
    start_date: date
    end_date: date
    amount: int
    payment_screenshot_url: Optional[str] = None
    created_at: datetime


def booking_to_response(booking) -> BookingResponse:
    """The one mapping from a stored booking row to the API record."""
    return BookingResponse(
        id=booking.id,
        status=booking.status,
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        customer_email=booking.customer_email,
        slot_id=booking.slot_id,
        location=BookingLocation(
            branch=booking.branch_id,
            floor=booking.floor_number,
            room_no=booking.room_no,
            seat_no=booking.seat_no,
        ),
        start_date=booking.start_date,
        end_date=booking.end_date,
        amount=booking.amount,
        payment_screenshot_url=booking.payment_screenshot_url,
        created_at=booking.created_at,
    )


class PaymentDetails(BaseModel):
    booking_id: str
    amount: int
    upi_id: Optional[str] = None
    merchant_name: Optional[str] = None
    phone: Optional[str] = None
    upi_uri: Optional[str] = None


class UploadResponse(BaseModel):
    url: str


# ---- availability / layout ----

class SeatAvailability(BaseModel):
    seat_id: int
    seat_no: str
    floor: int
    room_no: str
    room_name: Optional[str] = None
    is_ac: bool
    is_blocked: bool
    available: bool


class SeatOut(BaseModel):
    id: int
    seat_no: str
    is_blocked: bool


class RoomOut(BaseModel):
    id: int
    room_no: str
    name: Optional[str] = None
    is_ac: bool
    price_daily: Optional[int] = None
    seats_count: int
    seats: List[SeatOut] = []


class FloorOut(BaseModel):
    id: int
    floor_number: int
    rooms: List[RoomOut] = []


class BranchOut(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    floors: List[FloorOut] = []


def seat_out(seat) -> SeatOut:
    return SeatOut(id=seat.id, seat_no=seat.seat_no, is_blocked=seat.is_blocked)


def room_out(room) -> RoomOut:
    return RoomOut(
        id=room.id,
        room_no=room.room_no,
        name=room.name,
        is_ac=room.is_ac,
        price_daily=room.price_daily,
        seats_count=room.seats_count,
        seats=[seat_out(s) for s in room.seats],
    )


def floor_out(floor) -> FloorOut:
    return FloorOut(id=floor.id, floor_number=floor.floor_number, rooms=[room_out(r) for r in floor.rooms])


def branch_out(branch) -> BranchOut:
    return BranchOut(
        id=branch.id,
        name=branch.name,
        address=branch.address,
        floors=[floor_out(f) for f in branch.floors],
    )


class AdminSeat(BaseModel):
    id: int
    seat_no: str
    is_blocked: bool
    room_id: int
    room_no: str
    room_name: Optional[str] = None
    is_ac: bool
    price_daily: Optional[int] = None
    floor_id: int
    floor_number: int
    branch_id: int
    branch_name: str


# ---- layout management ----

class CreateBranch(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None


class UpdateBranch(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None


class CreateFloor(BaseModel):
    floor_number: int


class UpdateFloor(BaseModel):
    floor_number: int


class CreateRoom(BaseModel):
    room_no: str = Field(min_length=1)
    name: Optional[str] = None
    is_ac: bool = False
    price_daily: Optional[int] = Field(default=50, ge=0)
    seats_count: int = Field(default=0, ge=0)


class UpdateRoom(BaseModel):
    room_no: Optional[str] = None
    name: Optional[str] = None
    is_ac: Optional[bool] = None
    price_daily: Optional[int] = Field(default=None, ge=0)
    seats_count: Optional[int] = Field(default=None, ge=0)


# ---- pricing ----

class SlotOut(BaseModel):
    id: str
    name: str
    duration_days: int
    price: int


class PricingRuleIn(BaseModel):
    branch_id: int
    is_ac: bool
    daily_rate: int = Field(ge=0)


class PricingRuleOut(PricingRuleIn):
    pass


# ---- holidays / settings / announcements ----

class CreateHoliday(BaseModel):
    date: date
    branch_id: Optional[int] = None
    reason: Optional[str] = None


class HolidayOut(BaseModel):
    id: int
    date: date
    branch_id: Optional[int] = None
    reason: Optional[str] = None


class SettingValue(BaseModel):
    key: str
    value: Optional[str] = None


class UpdateSetting(BaseModel):
    value: str


class CreateAnnouncement(BaseModel):
    message: str
    targets: List[Literal["active", "pending", "past", "all"]] = Field(min_length=1)


class AnnouncementOut(BaseModel):
    id: int
    message: str
    targets: List[str]
    recipient_count: int
    created_at: datetime


class MonthlyCount(BaseModel):
    month: str
    count: int


class DashboardStats(BaseModel):
    total_bookings: int
    active_bookings: int
    total_revenue: int
    pending_approvals: int
    monthly_bookings: List[MonthlyCount]


class CleanupResult(BaseModel):
    message: str
    deleted_paths: List[str]
