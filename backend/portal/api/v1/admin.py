from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.api.v1.bookings import AdminStatusChange, notify_status_change
from portal.api.v1.common import CamelModel, page_offset, total_pages
from portal.api.v1.serializers import booking_to_dict, expense_to_dict, user_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import Booking, BookingStatus, Expense, ExpenseCategory, User, UserRole
from portal.services import booking_rules, reports

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


class RoleChange(CamelModel):
    role: UserRole


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    try:
        data = reports.admin_dashboard(db)
        data["recentBookings"] = [booking_to_dict(b) for b in data["recentBookings"]]
        return data
    except Exception as e:
        logger.error(f"❌ Dashboard failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/analytics")
def analytics(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    return reports.admin_analytics(db)


# ============= Users =============

@router.get("/users")
def list_users(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
            User.phone_number.ilike(pattern),
        ))

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
    return {
        "users": [user_to_dict(u) for u in users],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }


@router.get("/users/{user_id}")
def user_details(user_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    bookings = db.query(Booking).filter(Booking.user_id == user.id).order_by(Booking.created_at.desc()).all()
    return {"user": user_to_dict(user), "bookings": [booking_to_dict(b) for b in bookings]}


@router.put("/users/{user_id}/role")
def change_role(user_id: str, payload: RoleChange, db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    user.role = payload.role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.email} is now {user.role.value}")
    return {"message": "User role updated successfully", "user": user_to_dict(user)}


# ============= Bookings & expenses =============

@router.get("/bookings")
def list_bookings(
    status: Optional[BookingStatus] = None,
    tour_id: Optional[str] = Query(None, alias="tourId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Booking)
    if status:
        query = query.filter(Booking.status == status)
    if tour_id:
        query = query.filter(Booking.tour_id == tour_id)

    total = query.count()
    bookings = query.order_by(Booking.created_at.desc()).offset(page_offset(page, limit)).limit(limit).all()
    return {
        "bookings": [booking_to_dict(b) for b in bookings],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }


@router.put("/bookings/{booking_id}/status")
def change_booking_status(booking_id: str, payload: AdminStatusChange, db: Session = Depends(get_db),
                          admin: User = Depends(get_admin_user)):
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")

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


@router.get("/expenses")
def list_expenses(
    tour_id: Optional[str] = Query(None, alias="tourId"),
    category: Optional[ExpenseCategory] = None,
    is_approved: Optional[bool] = Query(None, alias="isApproved"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Expense)
    if tour_id:
        query = query.filter(Expense.tour_id == tour_id)
    if category:
        query = query.filter(Expense.category == category)
    if is_approved is not None:
        query = query.filter(Expense.is_approved.is_(is_approved))

    total = query.count()
    expenses = query.order_by(Expense.expense_date.desc()).offset(page_offset(page, limit)).limit(limit).all()
    return {
        "expenses": [expense_to_dict(e) for e in expenses],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }
