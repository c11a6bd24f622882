"""
Tours (bookable pilgrimage packages) and the destinations they visit
"""
from datetime import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid, enum_column


class TourStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TourDifficulty(str, enum.Enum):
    EASY = "easy"
    MODERATE = "moderate"
    CHALLENGING = "challenging"


class TourCategory(str, enum.Enum):
    PILGRIMAGE = "pilgrimage"
    SPIRITUAL = "spiritual"
    CULTURAL = "cultural"
    HERITAGE = "heritage"


class Region(str, enum.Enum):
    SOUTH = "south-india"
    NORTH = "north-india"
    EAST = "east-india"
    WEST = "west-india"
    CENTRAL = "central-india"
    NORTHEAST = "northeast-india"


class Tour(TimestampMixin, Base):
    __tablename__ = "tours"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    short_description = Column(String(200), nullable=False)

    duration_days = Column(Integer, nullable=False)
    duration_nights = Column(Integer, nullable=False, default=0)

    # [{"day": 1, "title": ..., "description": ..., "activities": [...], "meals": {...}, "accommodationText": ...}]
    itinerary = Column(JSON, nullable=False, default=list)
    # [{"type": "bus", "class": ..., "description": ..., "duration": ..., "cost": ...}]
    transportation = Column(JSON, nullable=False, default=list)

    # pricing tiers
    price_adult = Column(Float, nullable=False)
    price_child = Column(Float, nullable=False)
    price_senior = Column(Float, nullable=True)
    currency = Column(String(8), nullable=False, default="INR")

    inclusions = Column(JSON, nullable=False, default=list)
    exclusions = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)

    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False, index=True)

    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)

    status = enum_column(TourStatus, nullable=False, default=TourStatus.DRAFT, index=True)
    difficulty = enum_column(TourDifficulty, nullable=False, default=TourDifficulty.EASY)
    category = enum_column(TourCategory, nullable=False, default=TourCategory.PILGRIMAGE, index=True)
    featured = Column(Boolean, nullable=False, default=False, index=True)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    destinations = relationship(
        "TourDestination", back_populates="tour", cascade="all, delete-orphan",
        order_by="TourDestination.position",
    )
    bookings = relationship("Booking", back_populates="tour")
    expenses = relationship("Expense", back_populates="tour")
    creator = relationship("User", foreign_keys=[created_by])
    updater = relationship("User", foreign_keys=[updated_by])

    @property
    def available_seats(self) -> int:
        return max(self.max_participants - (self.current_participants or 0), 0)

    @property
    def duration_string(self) -> str:
        return f"{self.duration_days} Days / {self.duration_nights} Nights"

    @property
    def is_available(self) -> bool:
        return (
            self.status == TourStatus.PUBLISHED
            and (self.current_participants or 0) < self.max_participants
            and self.start_date > datetime.utcnow()
        )

    def price_for(self, price_category: str) -> float:
        """Tour price of a participant's tier; senior falls back to adult."""
        if price_category == "child":
            return self.price_child
        if price_category == "senior" and self.price_senior is not None:
            return self.price_senior
        return self.price_adult

    def __repr__(self):
        return f"<Tour {self.title!r} {self.status.value if self.status else '-'}>"


class TourDestination(Base):
    __tablename__ = "tour_destinations"

    id = Column(String(36), primary_key=True, default=_uuid)
    tour_id = Column(String(36), ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(200), nullable=False, index=True)
    state = Column(String(100), nullable=False)
    region = enum_column(Region, nullable=False, index=True)
    significance = Column(Text, nullable=True)
    temples = Column(JSON, nullable=False, default=list)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    tour = relationship("Tour", back_populates="destinations")

    def __repr__(self):
        return f"<TourDestination {self.name}, {self.state}>"
