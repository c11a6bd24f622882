"""
Booking pricing and tour seat accounting.

A tour's current_participants always equals the number of participants on its
non-cancelled bookings. Every mutation in here keeps that true: seats are
reserved before participants are added and released when a booking leaves the
seat-holding statuses.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence
import logging
import secrets
import string
import time

from sqlalchemy import func
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.models import (
    Booking, BookingParticipant, BookingStatus, ParticipantType, PaymentStatus, PriceCategory, Tour,
)

logger = logging.getLogger(__name__)

_REF_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class PriceQuote:
    subtotal: float
    taxes: float
    discount: float
    total: float


def quote(tour: Tour, price_categories: Iterable[str], discount: float = 0.0,
          gst_rate: Optional[float] = None) -> PriceQuote:
    """Sum of tier prices, plus GST, minus discount. Rounded to paise."""
    rate = settings.GST_RATE if gst_rate is None else gst_rate
    subtotal = sum(tour.price_for(_category_value(c)) for c in price_categories)
    taxes = subtotal * rate
    total = subtotal + taxes - discount
    return PriceQuote(
        subtotal=round(subtotal, 2),
        taxes=round(taxes, 2),
        discount=round(discount, 2),
        total=round(total, 2),
    )


def _category_value(category) -> str:
    return category.value if isinstance(category, PriceCategory) else str(category)


def generate_booking_ref(now_ms: Optional[int] = None) -> str:
    """'BK' + epoch millis + 9 random upper-case alphanumerics."""
    millis = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(9))
    return f"BK{millis}{suffix}"


# ============= Seats =============

def ensure_capacity(tour: Tour, additional: int) -> None:
    if (tour.current_participants or 0) + additional > tour.max_participants:
        raise ValueError("Not enough seats available")


def reserve_seats(tour: Tour, count: int) -> None:
    ensure_capacity(tour, count)
    tour.current_participants = (tour.current_participants or 0) + count


def release_seats(tour: Tour, count: int) -> None:
    tour.current_participants = max((tour.current_participants or 0) - count, 0)


def count_held_seats(db: Session, tour_id: str) -> int:
    held = (
        db.query(func.coalesce(func.sum(Booking.total_participants), 0))
        .filter(Booking.tour_id == tour_id, Booking.status != BookingStatus.CANCELLED)
        .scalar()
    )
    return int(held or 0)


# ============= Participants =============

def build_participants(rows: Sequence[dict], added_by: Optional[str], start_position: int = 0,
                       first_is_primary: bool = True) -> List[BookingParticipant]:
    participants = []
    for offset, row in enumerate(rows):
        is_primary = first_is_primary and start_position == 0 and offset == 0
        participants.append(
            BookingParticipant(
                position=start_position + offset,
                type=ParticipantType.PRIMARY if is_primary else ParticipantType.FAMILY,
                name=row["name"].strip(),
                age=row["age"],
                relationship_type=row.get("relationship"),
                aadhar_number=row["aadhar_number"],
                price_category=PriceCategory(_category_value(row.get("price_category", "adult"))),
                added_by=added_by,
            )
        )
    return participants


def create_booking(db: Session, tour: Tour, user_id: str, rows: Sequence[dict],
                   status: BookingStatus = BookingStatus.INTERESTED,
                   created_by: Optional[str] = None, **extra) -> Booking:
    """Prices the participants, reserves their seats and adds the booking to the session."""
    if not rows:
        raise ValueError("At least one participant is required")

    price = quote(tour, [r.get("price_category", "adult") for r in rows])
    if status != BookingStatus.CANCELLED:
        reserve_seats(tour, len(rows))

    booking = Booking(
        booking_ref=generate_booking_ref(),
        user_id=user_id,
        tour_id=tour.id,
        participants=build_participants(rows, added_by=created_by or user_id),
        total_participants=len(rows),
        subtotal=price.subtotal,
        taxes=price.taxes,
        discount=price.discount,
        total=price.total,
        status=status,
        created_by=created_by,
        **extra,
    )
    if status == BookingStatus.CONFIRMED:
        booking.confirmation_date = datetime.utcnow()
    db.add(booking)
    logger.info(f"Booking {booking.booking_ref}: {len(rows)} participant(s) on tour {tour.id}, total {price.total}")
    return booking


def add_participants(booking: Booking, rows: Sequence[dict], added_by: str) -> PriceQuote:
    """Appends family participants and grows the booking's pricing by their quote."""
    if not rows:
        raise ValueError("At least one participant is required")

    tour = booking.tour
    if booking.holds_seats:
        reserve_seats(tour, len(rows))

    extra = quote(tour, [r.get("price_category", "adult") for r in rows])
    booking.participants.extend(
        build_participants(rows, added_by=added_by, start_position=len(booking.participants),
                           first_is_primary=False)
    )
    booking.total_participants += len(rows)
    booking.subtotal = round(booking.subtotal + extra.subtotal, 2)
    booking.taxes = round(booking.taxes + extra.taxes, 2)
    booking.total = round(booking.total + extra.subtotal + extra.taxes, 2)
    return extra


def change_status(booking: Booking, new_status: BookingStatus, actor_id: Optional[str] = None,
                  reason: Optional[str] = None) -> BookingStatus:
    """Moves a booking to new_status keeping the tour's seat count consistent. Returns the old status."""
    old_status = booking.status
    if old_status == new_status:
        return old_status

    tour = booking.tour
    if old_status == BookingStatus.CANCELLED:
        reserve_seats(tour, booking.total_participants)
        booking.cancellation_date = None
        booking.cancellation_reason = None
    elif new_status == BookingStatus.CANCELLED:
        release_seats(tour, booking.total_participants)

    now = datetime.utcnow()
    booking.status = new_status
    if new_status == BookingStatus.CONFIRMED:
        booking.confirmation_date = now
    elif new_status == BookingStatus.PAID:
        booking.payment_status = PaymentStatus.PAID
    elif new_status == BookingStatus.CANCELLED:
        booking.cancellation_date = now
        if reason:
            booking.cancellation_reason = reason
    if actor_id:
        booking.status_updated_by = actor_id
        booking.status_updated_at = now

    logger.info(f"Booking {booking.booking_ref}: {old_status.value} -> {new_status.value}")
    return old_status


def delete_booking(db: Session, booking: Booking) -> None:
    if booking.holds_seats:
        release_seats(booking.tour, booking.total_participants)
    db.delete(booking)
