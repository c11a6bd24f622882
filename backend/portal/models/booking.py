"""
Bookings of tours and their participants
"""
from datetime import datetime
import enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid, enum_column


class BookingStatus(str, enum.Enum):
    INTERESTED = "interested"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class ParticipantType(str, enum.Enum):
    PRIMARY = "primary"
    FAMILY = "family"


class PriceCategory(str, enum.Enum):
    ADULT = "adult"
    CHILD = "child"
    SENIOR = "senior"


# statuses whose totals count as revenue
REVENUE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.PAID)


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_uuid)
    booking_ref = Column(String(40), unique=True, nullable=False, index=True)  # "BK1718000000000X7K2..."
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tour_id = Column(String(36), ForeignKey("tours.id"), nullable=False, index=True)

    total_participants = Column(Integer, nullable=False, default=0)

    subtotal = Column(Float, nullable=False, default=0.0)
    taxes = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)

    status = enum_column(BookingStatus, nullable=False, default=BookingStatus.INTERESTED, index=True)
    payment_status = enum_column(PaymentStatus, nullable=False, default=PaymentStatus.PENDING)

    # payment details
    payment_method = Column(String(50), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    payment_amount = Column(Float, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    special_requests = Column(Text, nullable=True)
    emergency_contact = Column(JSON, nullable=True)  # {"name", "phone", "relationship"}
    admin_notes = Column(Text, nullable=True)

    status_updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status_updated_at = Column(DateTime, nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    booking_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    confirmation_date = Column(DateTime, nullable=True)
    cancellation_date = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    tour = relationship("Tour", back_populates="bookings")
    participants = relationship(
        "BookingParticipant", back_populates="booking", cascade="all, delete-orphan",
        order_by="BookingParticipant.position",
    )
    room_assignments = relationship("RoomBooking", back_populates="booking", cascade="all, delete-orphan")

    @property
    def holds_seats(self) -> bool:
        return self.status != BookingStatus.CANCELLED

    def __repr__(self):
        return f"<Booking {self.booking_ref} {self.status.value if self.status else '-'}>"


class BookingParticipant(Base):
    __tablename__ = "booking_participants"

    id = Column(String(36), primary_key=True, default=_uuid)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    type = enum_column(ParticipantType, nullable=False, default=ParticipantType.FAMILY)
    name = Column(String(200), nullable=False, index=True)
    age = Column(Integer, nullable=False)
    relationship_type = Column("relationship", String(50), nullable=True)
    aadhar_number = Column(String(12), nullable=False)
    price_category = enum_column(PriceCategory, nullable=False, default=PriceCategory.ADULT)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    added_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    booking = relationship("Booking", back_populates="participants")

    def __repr__(self):
        return f"<BookingParticipant {self.name} ({self.price_category.value if self.price_category else '-'})>"
