"""
Accommodations, their rooms, room assignments and tour associations
"""
import enum

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey,
    Integer, JSON, String, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid, enum_column


class AccommodationCategory(str, enum.Enum):
    HOTEL = "hotel"
    COTTAGE = "cottage"
    GUEST_HOUSE = "guest-house"
    MARRIAGE_HALL = "marriage-hall"
    APARTMENT = "apartment"
    LODGE = "lodge"


class RoomType(str, enum.Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    FAMILY = "family"
    DORMITORY = "dormitory"
    SUITE = "suite"


ROOM_FACILITIES = ("heater", "bathroom", "bed", "ac", "wifi", "tv", "refrigerator", "balcony")

ACCOMMODATION_FACILITIES = ROOM_FACILITIES[:-1] + (
    "parking", "restaurant", "room-service", "laundry", "power-backup",
    "elevator", "gym", "swimming-pool", "conference-hall", "garden",
    "temple-nearby", "market-nearby", "medical-nearby",
)


# ── 1. accommodations ───────────────────────────────────

class Accommodation(TimestampMixin, Base):
    __tablename__ = "accommodations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False, index=True)
    category = enum_column(AccommodationCategory, nullable=False, index=True)
    description = Column(String(1000), nullable=True)

    # location
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(100), nullable=False, index=True)
    pincode = Column(String(6), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # contact
    contact_phone = Column(String(10), nullable=False, index=True)
    contact_email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)

    # owner
    owner_name = Column(String(200), nullable=False)
    owner_phone = Column(String(10), nullable=False)
    owner_email = Column(String(255), nullable=True)

    facilities = Column(JSON, nullable=False, default=list)

    # pricing
    base_price = Column(Float, nullable=False, default=0.0)
    extra_person_charge = Column(Float, nullable=False, default=0.0)
    seasonal_rates = Column(JSON, nullable=False, default=list)  # [{"season", "multiplier", "startDate", "endDate"}]

    policies = Column(JSON, nullable=True)  # {"cancellationPolicy", "checkInPolicy", "childPolicy"}

    # rating
    rating_overall = Column(Float, nullable=False, default=0.0, index=True)
    rating_cleanliness = Column(Float, nullable=False, default=0.0)
    rating_service = Column(Float, nullable=False, default=0.0)
    rating_location = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)

    images = Column(JSON, nullable=False, default=list)  # [{"url", "caption", "isPrimary"}]

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False, index=True)
    verification_date = Column(DateTime, nullable=True)
    verified_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    rooms = relationship(
        "Room", back_populates="accommodation", cascade="all, delete-orphan",
        order_by="Room.room_number",
    )
    tour_links = relationship(
        "AccommodationTour", back_populates="accommodation", cascade="all, delete-orphan",
        order_by="AccommodationTour.day_number",
    )

    @property
    def total_rooms(self) -> int:
        return len(self.rooms)

    @property
    def available_rooms(self) -> int:
        return sum(1 for room in self.rooms if room.is_available)

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state} - {self.pincode}"

    @property
    def total_capacity(self) -> int:
        return sum(room.capacity for room in self.rooms)

    @property
    def average_price(self) -> float:
        if not self.rooms:
            return self.base_price
        return sum(room.price_per_night for room in self.rooms) / len(self.rooms)

    def __repr__(self):
        return f"<Accommodation {self.name!r} {self.city}>"


# ── 2. rooms ─────────────────────────────────────────────

class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("accommodation_id", "room_number", name="uq_rooms_accommodation_number"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    accommodation_id = Column(
        String(36), ForeignKey("accommodations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    room_number = Column(String(20), nullable=False)
    room_type = enum_column(RoomType, nullable=False)
    capacity = Column(Integer, nullable=False)
    facilities = Column(JSON, nullable=False, default=list)
    price_per_night = Column(Float, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    accommodation = relationship("Accommodation", back_populates="rooms")
    bookings = relationship(
        "RoomBooking", back_populates="room", cascade="all, delete-orphan",
        order_by="RoomBooking.check_in",
    )

    def __repr__(self):
        return f"<Room {self.room_number} ({self.room_type.value if self.room_type else '-'}, cap {self.capacity})>"


# ── 3. room bookings ─────────────────────────────────────

class RoomBooking(Base):
    __tablename__ = "room_bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    room_id = Column(String(36), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    check_in = Column(DateTime, nullable=False)
    check_out = Column(DateTime, nullable=False)
    guests = Column(JSON, nullable=False, default=list)  # [{"name", "age", "relation"}]

    room = relationship("Room", back_populates="bookings")
    booking = relationship("Booking", back_populates="room_assignments")

    def __repr__(self):
        return f"<RoomBooking room={self.room_id} {self.check_in:%Y-%m-%d}..{self.check_out:%Y-%m-%d}>"


# ── 4. tour associations ─────────────────────────────────

class AccommodationTour(Base):
    __tablename__ = "accommodation_tours"

    id = Column(String(36), primary_key=True, default=_uuid)
    accommodation_id = Column(
        String(36), ForeignKey("accommodations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    tour_id = Column(String(36), ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True)
    destination = Column(String(200), nullable=False)
    day_number = Column(Integer, nullable=False)
    check_in_time = Column(String(5), nullable=False, default="14:00")
    check_out_time = Column(String(5), nullable=False, default="11:00")

    accommodation = relationship("Accommodation", back_populates="tour_links")
    tour = relationship("Tour")

    def __repr__(self):
        return f"<AccommodationTour tour={self.tour_id} day={self.day_number} {self.destination}>"
