from .base import Base
from .user import User, UserRole, FamilyMember, FamilyRelationship
from .tour import Tour, TourDestination, TourStatus, TourDifficulty, TourCategory, Region
from .booking import (
    Booking, BookingParticipant, BookingStatus, PaymentStatus,
    ParticipantType, PriceCategory, REVENUE_STATUSES,
)
from .expense import Expense, ExpenseCategory, PaymentMethod, CATEGORY_LABELS
from .accommodation import (
    Accommodation, AccommodationCategory, AccommodationTour, Room, RoomBooking, RoomType,
    ROOM_FACILITIES, ACCOMMODATION_FACILITIES,
)
from .roster import Member, Part, SECTIONS
from .destination import Destination
from .search_log import SearchLog

__all__ = [
    "Base",
    "User", "UserRole", "FamilyMember", "FamilyRelationship",
    "Tour", "TourDestination", "TourStatus", "TourDifficulty", "TourCategory", "Region",
    "Booking", "BookingParticipant", "BookingStatus", "PaymentStatus",
    "ParticipantType", "PriceCategory", "REVENUE_STATUSES",
    "Expense", "ExpenseCategory", "PaymentMethod", "CATEGORY_LABELS",
    "Accommodation", "AccommodationCategory", "AccommodationTour", "Room", "RoomBooking", "RoomType",
    "ROOM_FACILITIES", "ACCOMMODATION_FACILITIES",
    "Member", "Part", "SECTIONS",
    "Destination",
    "SearchLog",
]
