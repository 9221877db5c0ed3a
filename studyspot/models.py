from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
REJECTED = "rejected"
REVOKED = "revoked"
EXPIRED = "expired"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCELLED, REJECTED, REVOKED, EXPIRED)
ACTIVE_STATUSES = (PENDING, CONFIRMED)


def utcnow():
    return datetime.now(timezone.utc)


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)

    floors = relationship(
        "Floor",
        back_populates="branch",
        cascade="all, delete-orphan",
        order_by="Floor.floor_number",
        lazy="selectin",
    )


class Floor(Base):
    __tablename__ = "floors"
    __table_args__ = (UniqueConstraint("branch_id", "floor_number", name="uq_floors_branch_number"),)

    id = Column(Integer, primary_key=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True)
    floor_number = Column(Integer, nullable=False)

    branch = relationship("Branch", back_populates="floors")
    rooms = relationship(
        "Room",
        back_populates="floor",
        cascade="all, delete-orphan",
        order_by="Room.room_no",
        lazy="selectin",
    )


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("floor_id", "room_no", name="uq_rooms_floor_room_no"),)

    id = Column(Integer, primary_key=True)
    floor_id = Column(Integer, ForeignKey("floors.id", ondelete="CASCADE"), nullable=False, index=True)
    room_no = Column(String, nullable=False)
    name = Column(String, nullable=True)
    is_ac = Column(Boolean, nullable=False, default=False)
    price_daily = Column(Integer, nullable=True)
    seats_count = Column(Integer, nullable=False, default=0)

    floor = relationship("Floor", back_populates="rooms")
    seats = relationship(
        "Seat",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="Seat.position",
        lazy="selectin",
    )


class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (UniqueConstraint("room_id", "seat_no", name="uq_seats_room_seat_no"),)

    id = Column(Integer, primary_key=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_no = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    is_blocked = Column(Boolean, nullable=False, default=False)

    room = relationship("Room", back_populates="seats")


class Slot(Base):
    __tablename__ = "slots"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    duration_days = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class PricingRule(Base):
    __tablename__ = "pricing_rules"
    __table_args__ = (UniqueConstraint("branch_id", "is_ac", name="uq_pricing_rules_branch_ac"),)

    id = Column(Integer, primary_key=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False)
    is_ac = Column(Boolean, nullable=False)
    daily_rate = Column(Integer, nullable=False)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True)  # BK-<base36 ms><4 random>

    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False, index=True)
    customer_email = Column(String, nullable=True)

    slot_id = Column(String, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)
    floor_id = Column(Integer, ForeignKey("floors.id", ondelete="SET NULL"), nullable=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    seat_id = Column(Integer, ForeignKey("seats.id", ondelete="SET NULL"), nullable=True, index=True)

    # location labels at booking time, kept after structural deletes
    floor_number = Column(Integer, nullable=True)
    room_no = Column(String, nullable=True)
    seat_no = Column(String, nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    payment_screenshot_url = Column(String, nullable=True)

    status = Column(String, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=True)
    reason = Column(String, nullable=True)


class Setting(Base):
    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=True)


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(Integer, primary_key=True)
    message = Column(String, nullable=False)
    targets = Column(JSON, nullable=False)
    recipient_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
