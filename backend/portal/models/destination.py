from sqlalchemy import Boolean, Column, Float, JSON, String, Text

from .base import Base, TimestampMixin, _uuid, enum_column
from .tour import Region


class Destination(TimestampMixin, Base):
    __tablename__ = "destinations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False, index=True)
    state = Column(String(100), nullable=False, index=True)
    region = enum_column(Region, nullable=False, index=True)
    description = Column(Text, nullable=True)
    significance = Column(Text, nullable=True)
    famous_temples = Column(JSON, nullable=False, default=list)
    best_time_to_visit = Column(String(200), nullable=True)
    nearby_attractions = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # transportation
    nearest_railway = Column(String(200), nullable=True)
    nearest_airport = Column(String(200), nullable=True)
    road_connectivity = Column(String(500), nullable=True)

    accommodation_available = Column(Boolean, nullable=False, default=True)
    accommodation_types = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"<Destination {self.name}, {self.state}>"
