from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.api.v1.common import AadharNumber, CamelModel, naive_utc, page_offset, total_pages
from portal.api.v1.serializers import booking_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user, get_current_user
from portal.models import (
    Booking, BookingParticipant, BookingStatus, PriceCategory, Tour, TourStatus, User,
)
from portal.queue.tasks.notifications import (
    enqueue, notify_admins, send_booking_confirmation, send_booking_status_update,
)
from portal.services import booking_rules

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])

MEMBER_SETTABLE_STATUSES = (
    BookingStatus.INTERESTED, BookingStatus.CONFIRMED, BookingStatus.PAID, BookingStatus.CANCELLED,
)


# ============= Request models =============

class ParticipantIn(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    age: int = Field(ge=0, le=120)
    relationship: Optional[str] = None
    aadhar_number: AadharNumber
    price_category: PriceCategory = PriceCategory.ADULT


class BookingCreate(CamelModel):
    tour_id: str
    participants: List[ParticipantIn] = Field(min_length=1)
    special_requests: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None


class InterestRequest(CamelModel):
    tour_id: str
    age: int = Field(default=0, ge=0, le=120)


class BookingUpdate(CamelModel):
    special_requests: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    status: Optional[BookingStatus] = None


class StatusChange(CamelModel):
    status: BookingStatus


class CancelRequest(CamelModel):
    reason: Optional[str] = None


class AddFamilyRequest(CamelModel):
    participants: List[ParticipantIn] = Field(min_length=1)


class AdminStatusChange(CamelModel):
    status: BookingStatus
    notes: Optional[str] = None


class AdminBookingCreate(BookingCreate):
    user_id: str
    auto_approve: bool = True


# ============= Helpers =============

def _own_booking(db: Session, booking_id: str, user: User, allow_admin: bool = False) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None or (booking.user_id != user.id and not (allow_admin and user.is_admin)):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _get_tour(db: Session, tour_id: str) -> Tour:
    tour = db.get(Tour, tour_id)
    if tour is None:
        raise HTTPException(status_code=404, detail="Tour not found")
    return tour


def notify_status_change(booking: Booking, old_status: BookingStatus) -> None:
    if booking.status == old_status:
        return
    if booking.status == BookingStatus.CONFIRMED:
        enqueue(send_booking_confirmation, booking.id)
    elif booking.status == BookingStatus.CANCELLED:
        enqueue(send_booking_status_update, booking.id, booking.status.value)


def notify_new_interest(booking: Booking, tour: Tour, user: User) -> None:
    enqueue(notify_admins, "New booking interest", {
        "bookingId": booking.booking_ref,
        "tour": tour.title,
        "member": f"{user.full_name} ({user.email})",
        "participants": booking.total_participants,
        "total": booking.total,
    })


def _rows(participants: List[ParticipantIn]) -> List[dict]:
    return [p.model_dump() for p in participants]


# ============= Member =============

@router.get("")
def my_bookings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    bookings = (
        db.query(Booking)
        .filter(Booking.user_id == user.id)
        .order_by(Booking.created_at.desc())
        .all()
    )
    return [booking_to_dict(b) for b in bookings]


@router.post("", status_code=201)
def create_booking(payload: BookingCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tour = _get_tour(db, payload.tour_id)
    if tour.status != TourStatus.PUBLISHED:
        raise HTTPException(status_code=400, detail="Tour is not available for booking")

    try:
        booking = booking_rules.create_booking(
            db, tour, user.id, _rows(payload.participants),
            special_requests=payload.special_requests,
            emergency_contact=payload.emergency_contact,
        )
        db.commit()
        db.refresh(booking)
        notify_new_interest(booking, tour, user)
        return {"message": "Interest expressed successfully", "booking": booking_to_dict(booking)}

    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Booking creation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during booking creation")


@router.post("/interest", status_code=201)
def express_interest(payload: InterestRequest, user: User = Depends(get_current_user),
                     db: Session = Depends(get_db)):
    tour = _get_tour(db, payload.tour_id)
    if tour.status != TourStatus.PUBLISHED:
        raise HTTPException(status_code=400, detail="Tour is not available for booking")

    row = {
        "name": user.full_name,
        "age": payload.age,
        "relationship": "self",
        "aadhar_number": user.aadhar_number,
        "price_category": PriceCategory.ADULT,
    }
    try:
        booking = booking_rules.create_booking(db, tour, user.id, [row])
        db.commit()
        db.refresh(booking)
        notify_new_interest(booking, tour, user)
        return {"message": "Interest expressed successfully", "booking": booking_to_dict(booking)}
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


# ============= Admin =============

@router.get("/admin/all")
def admin_list_bookings(
    status: Optional[BookingStatus] = None,
    tour: Optional[str] = Query(None, alias="tour"),
    tour_id: Optional[str] = Query(None, alias="tourId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Booking)
    if status:
        query = query.filter(Booking.status == status)
    if tour or tour_id:
        query = query.filter(Booking.tour_id == (tour or tour_id))
    if start_date:
        query = query.filter(Booking.created_at >= naive_utc(start_date))
    if end_date:
        query = query.filter(Booking.created_at <= naive_utc(end_date))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Booking.booking_ref.ilike(pattern),
            Booking.participants.any(BookingParticipant.name.ilike(pattern)),
        ))

    total = query.count()
    bookings = (
        query.order_by(Booking.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {
        "bookings": [booking_to_dict(b) for b in bookings],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }


@router.patch("/admin/{booking_id}/status")
def admin_change_status(booking_id: str, payload: AdminStatusChange, db: Session = Depends(get_db),
                        admin: User = Depends(get_admin_user)):
    booking = _get_booking(db, booking_id)
    try:
        old_status = booking_rules.change_status(booking, payload.status, actor_id=admin.id)
        if payload.notes is not None:
            booking.admin_notes = payload.notes
        db.commit()
        db.refresh(booking)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    notify_status_change(booking, old_status)
    return {"message": "Booking status updated successfully", "booking": booking_to_dict(booking)}


@router.delete("/admin/{booking_id}")
def admin_delete_booking(booking_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    booking = _get_booking(db, booking_id)
    booking_rules.delete_booking(db, booking)
    db.commit()
    logger.info(f"🗑️ Booking {booking_id} deleted by {admin.email}")
    return {"message": "Booking deleted successfully"}


@router.post("/admin/create", status_code=201)
def admin_create_booking(payload: AdminBookingCreate, db: Session = Depends(get_db),
                         admin: User = Depends(get_admin_user)):
    user = db.get(User, payload.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    tour = _get_tour(db, payload.tour_id)

    status = BookingStatus.CONFIRMED if payload.auto_approve else BookingStatus.PENDING
    extra: Dict[str, Any] = {
        "special_requests": payload.special_requests,
        "emergency_contact": payload.emergency_contact,
        "admin_notes": f"Created by admin: {admin.full_name}",
    }
    if payload.auto_approve:
        extra.update(status_updated_by=admin.id, status_updated_at=datetime.utcnow())

    try:
        booking = booking_rules.create_booking(
            db, tour, user.id, _rows(payload.participants),
            status=status, created_by=admin.id, **extra,
        )
        db.commit()
        db.refresh(booking)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    if status == BookingStatus.CONFIRMED:
        enqueue(send_booking_confirmation, booking.id)
    return booking_to_dict(booking)


# ============= Single booking =============

@router.get("/{booking_id}")
def get_booking(booking_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return booking_to_dict(_own_booking(db, booking_id, user, allow_admin=True))


@router.put("/{booking_id}")
def update_booking(booking_id: str, payload: BookingUpdate, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    booking = _own_booking(db, booking_id, user)
    data = payload.model_dump(exclude_unset=True)

    status = data.pop("status", None)
    if status is not None and status != BookingStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Only cancellation is allowed")

    for key, value in data.items():
        setattr(booking, key, value)
    old_status = booking.status
    if status is not None:
        booking_rules.change_status(booking, status, actor_id=user.id)
    db.commit()
    db.refresh(booking)

    notify_status_change(booking, old_status)
    return {"message": "Booking updated successfully", "booking": booking_to_dict(booking)}


@router.put("/{booking_id}/status")
def set_booking_status(booking_id: str, payload: StatusChange, user: User = Depends(get_current_user),
                       db: Session = Depends(get_db)):
    if payload.status not in MEMBER_SETTABLE_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    booking = _own_booking(db, booking_id, user)
    try:
        old_status = booking_rules.change_status(booking, payload.status, actor_id=user.id)
        db.commit()
        db.refresh(booking)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    notify_status_change(booking, old_status)
    return {"message": "Booking status updated successfully", "booking": booking_to_dict(booking)}


@router.put("/{booking_id}/cancel")
def cancel_booking(booking_id: str, payload: Optional[CancelRequest] = None,
                   user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    booking = _own_booking(db, booking_id, user)
    if booking.status == BookingStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Booking is already cancelled")

    reason = payload.reason if payload else None
    old_status = booking_rules.change_status(booking, BookingStatus.CANCELLED, actor_id=user.id, reason=reason)
    db.commit()
    db.refresh(booking)

    notify_status_change(booking, old_status)
    return {"message": "Booking cancelled successfully", "booking": booking_to_dict(booking)}


@router.post("/{booking_id}/add-family")
def add_family(booking_id: str, payload: AddFamilyRequest, user: User = Depends(get_current_user),
               db: Session = Depends(get_db)):
    booking = _get_booking(db, booking_id)
    if booking.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")

    rows = [{**row, "relationship": row.get("relationship") or "family"} for row in _rows(payload.participants)]
    try:
        booking_rules.add_participants(booking, rows, added_by=user.id)
        db.commit()
        db.refresh(booking)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    return booking_to_dict(booking)
