"""
Room/booking assignment rules for accommodations.

Stays are half-open [check_in, check_out): a guest checking out on the day the
next one checks in does not conflict.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence
import logging

from portal.models import Accommodation, Room, RoomBooking, RoomType

logger = logging.getLogger(__name__)


def ranges_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def validate_stay(check_in: datetime, check_out: datetime) -> None:
    if check_out <= check_in:
        raise ValueError("Check-out must be after check-in")


def find_conflict(room: Room, check_in: datetime, check_out: datetime,
                  ignore_booking_id: Optional[str] = None) -> Optional[RoomBooking]:
    for entry in room.bookings:
        if ignore_booking_id and entry.booking_id == ignore_booking_id:
            continue
        if ranges_overlap(check_in, check_out, entry.check_in, entry.check_out):
            return entry
    return None


def is_occupied_at(room: Room, moment: datetime) -> bool:
    return any(entry.check_in <= moment < entry.check_out for entry in room.bookings)


def refresh_availability(room: Room, now: Optional[datetime] = None) -> bool:
    """A room is currently available iff no stay covers now."""
    room.is_available = not is_occupied_at(room, now or datetime.utcnow())
    return room.is_available


def has_future_bookings(room: Room, now: Optional[datetime] = None) -> bool:
    moment = now or datetime.utcnow()
    return any(entry.check_out > moment for entry in room.bookings)


def available_rooms(accommodation: Accommodation, check_in: datetime, check_out: datetime,
                    room_type: Optional[RoomType] = None, min_capacity: Optional[int] = None,
                    require_flag: bool = True) -> List[Room]:
    """Rooms free for the whole stay.

    require_flag also drops rooms whose current-availability flag is off, which
    is what the availability check does; the available-rooms listing only looks
    at date conflicts.
    """
    rooms = []
    for room in accommodation.rooms:
        if room_type is not None and room.room_type != room_type:
            continue
        if min_capacity is not None and room.capacity < min_capacity:
            continue
        if require_flag and not room.is_available:
            continue
        if find_conflict(room, check_in, check_out) is not None:
            continue
        rooms.append(room)
    return rooms


class RoomConflictError(ValueError):
    def __init__(self, conflicting: RoomBooking):
        super().__init__("Room is already booked for the selected dates")
        self.conflicting = conflicting


def assign_room(room: Room, booking_id: str, check_in: datetime, check_out: datetime,
                guests: Optional[Sequence[dict]] = None) -> RoomBooking:
    validate_stay(check_in, check_out)
    conflict = find_conflict(room, check_in, check_out)
    if conflict is not None:
        raise RoomConflictError(conflict)

    entry = RoomBooking(
        booking_id=booking_id,
        check_in=check_in,
        check_out=check_out,
        guests=list(guests or []),
    )
    room.bookings.append(entry)
    refresh_availability(room)
    logger.info(f"Room {room.room_number} assigned to booking {booking_id}: {check_in:%Y-%m-%d} - {check_out:%Y-%m-%d}")
    return entry


def release_room(room: Room, booking_id: str) -> RoomBooking:
    for entry in room.bookings:
        if entry.booking_id == booking_id:
            room.bookings.remove(entry)
            refresh_availability(room)
            return entry
    raise LookupError("Booking assignment not found")


# ============= Suggestions =============

@dataclass
class RoomSuggestion:
    accommodation: Accommodation
    rooms: List[Room] = field(default_factory=list)

    @property
    def capacity(self) -> int:
        return sum(room.capacity for room in self.rooms)

    @property
    def nightly_cost(self) -> float:
        return sum(room.price_per_night for room in self.rooms)


def suggest_rooms(accommodations: Iterable[Accommodation], party_size: int,
                  check_in: datetime, check_out: datetime) -> List[RoomSuggestion]:
    """Greedy fill per accommodation: largest free rooms first, cheapest on ties.

    Only accommodations that can seat the whole party are returned, ordered by
    fewest rooms and then lowest nightly cost.
    """
    validate_stay(check_in, check_out)
    suggestions = []
    for accommodation in accommodations:
        free = available_rooms(accommodation, check_in, check_out, require_flag=False)
        free.sort(key=lambda r: (-r.capacity, r.price_per_night, r.room_number))

        picked: List[Room] = []
        seats = 0
        for room in free:
            if seats >= party_size:
                break
            picked.append(room)
            seats += room.capacity

        if seats >= party_size and picked:
            suggestions.append(RoomSuggestion(accommodation=accommodation, rooms=picked))

    suggestions.sort(key=lambda s: (len(s.rooms), s.nightly_cost))
    return suggestions


def normalise_primary_image(images: List[dict]) -> List[dict]:
    """Exactly one primary image when any image exists.

    A single flagged image keeps the flag; none or several flagged fall back to the first image.
    """
    if not images:
        return images
    flagged = [i for i, img in enumerate(images) if img.get("isPrimary")]
    primary_index = flagged[0] if len(flagged) == 1 else 0
    return [{**img, "isPrimary": i == primary_index} for i, img in enumerate(images)]
