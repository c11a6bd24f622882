"""
Background notification tasks. Each task opens its own session and returns a
small JSON-serialisable result.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List
import logging

from portal.core.config import settings
from portal.core.database import SessionLocal
from portal.models import Booking, BookingStatus, Expense, Tour, User, UserRole
from portal.queue.celery_app import celery_app
from portal.services import notifications as templates
from portal.services.notifications import notification_service

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="notifications.booking_confirmation")
def send_booking_confirmation(self, booking_id: str) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        booking = db.get(Booking, booking_id)
        if booking is None or booking.user is None:
            logger.warning(f"⚠️ Booking {booking_id} not found for confirmation email")
            return {"ok": False, "error": "booking_not_found"}
        template = templates.booking_confirmation(booking, booking.user, booking.tour)
        return notification_service.send_email(booking.user.email, template)
    finally:
        db.close()


@celery_app.task(bind=True, name="notifications.booking_status_update")
def send_booking_status_update(self, booking_id: str, status: str) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        booking = db.get(Booking, booking_id)
        if booking is None or booking.user is None:
            logger.warning(f"⚠️ Booking {booking_id} not found for status email")
            return {"ok": False, "error": "booking_not_found"}
        template = templates.booking_status_update(booking, booking.user, booking.tour, status)
        return notification_service.send_email(booking.user.email, template)
    finally:
        db.close()


@celery_app.task(bind=True, name="notifications.expense_status_update")
def send_expense_status_update(self, expense_id: str, status: str) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        expense = db.get(Expense, expense_id)
        if expense is None or expense.submitter is None:
            logger.warning(f"⚠️ Expense {expense_id} not found for status email")
            return {"ok": False, "error": "expense_not_found"}
        template = templates.expense_status_update(expense, expense.submitter, status)
        return notification_service.send_email(expense.submitter.email, template)
    finally:
        db.close()


@celery_app.task(bind=True, name="notifications.notify_admins")
def notify_admins(self, alert_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    db = SessionLocal()
    try:
        admins = db.query(User).filter(User.role == UserRole.ADMIN).all()
        template = templates.admin_alert(alert_type, data)
        sent = sum(1 for admin in admins if notification_service.send_email(admin.email, template).get("success"))
        logger.info(f"Admin alert '{alert_type}' sent to {sent}/{len(admins)} admins")
        return {"ok": True, "sent": sent}
    finally:
        db.close()


@celery_app.task(bind=True, name="notifications.tour_reminders")
def send_tour_reminders(self) -> Dict[str, Any]:
    """Reminds confirmed and paid bookings of tours starting within REMINDER_DAYS_AHEAD days."""
    db = SessionLocal()
    try:
        now = datetime.utcnow()
        horizon = now + timedelta(days=settings.REMINDER_DAYS_AHEAD)
        bookings: List[Booking] = (
            db.query(Booking)
            .join(Tour, Tour.id == Booking.tour_id)
            .filter(
                Tour.start_date >= now,
                Tour.start_date < horizon,
                Booking.status.in_((BookingStatus.CONFIRMED, BookingStatus.PAID)),
            )
            .all()
        )
        sent = 0
        for booking in bookings:
            if booking.user is None:
                continue
            result = notification_service.send_email(
                booking.user.email, templates.tour_reminder(booking, booking.user, booking.tour)
            )
            if result.get("success"):
                sent += 1
        logger.info(f"Tour reminders sent for {sent} bookings")
        return {"ok": True, "sent": sent, "bookings": len(bookings)}
    finally:
        db.close()


def enqueue(task, *args) -> bool:
    """Queues a notification; broker trouble is logged and never propagates to the caller."""
    try:
        task.delay(*args)
        return True
    except Exception as e:
        logger.warning(f"⚠️ Could not enqueue {task.name}: {e}")
        return False
