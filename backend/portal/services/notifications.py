"""
E-mail templates and SMTP delivery for booking, expense and tour notifications.

With NOTIFY_DRY_RUN set nothing leaves the process; messages are only logged.
"""
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any, Dict, Optional
import logging
import smtplib

from portal.core.config import settings
from portal.models import Booking, Expense, Tour, User

logger = logging.getLogger(__name__)


@dataclass
class EmailTemplate:
    subject: str
    html: str


def _wrap(heading: str, body: str, colour: str = "#667eea") -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {colour};">{heading}</h2>{body}'
        "<p>Regards,<br/>Sri Vishnu Yatra</p></div>"
    )


def _date(value) -> str:
    return value.strftime("%d %b %Y") if value else "-"


# ============= Templates =============

def booking_confirmation(booking: Booking, user: User, tour: Tour) -> EmailTemplate:
    body = (
        f"<p>Dear {user.full_name},</p>"
        f"<p>Thank you for booking <strong>{tour.title}</strong>.</p>"
        "<h3>Booking Details:</h3><ul>"
        f"<li><strong>Booking ID:</strong> {booking.booking_ref}</li>"
        f"<li><strong>Tour dates:</strong> {_date(tour.start_date)} - {_date(tour.end_date)}</li>"
        f"<li><strong>Participants:</strong> {booking.total_participants}</li>"
        f"<li><strong>Total amount:</strong> ₹{booking.total:,.2f}</li>"
        "</ul>"
    )
    return EmailTemplate(subject=f"Booking Confirmation - {tour.title}", html=_wrap("Booking Confirmation", body))


def booking_status_update(booking: Booking, user: User, tour: Tour, status: str) -> EmailTemplate:
    title = status.capitalize()
    colour = "#dc3545" if status == "cancelled" else "#667eea"
    body = (
        f"<p>Dear {user.full_name},</p>"
        f"<p>Your booking for <strong>{tour.title}</strong> has been {status}.</p>"
        "<h3>Booking Details:</h3><ul>"
        f"<li><strong>Booking ID:</strong> {booking.booking_ref}</li>"
        f"<li><strong>Status:</strong> {status.upper()}</li>"
        "</ul>"
    )
    if status == "cancelled" and booking.cancellation_reason:
        body += f"<p><strong>Reason:</strong> {booking.cancellation_reason}</p>"
    return EmailTemplate(subject=f"Booking {title} - {tour.title}", html=_wrap(f"Booking {title}", body, colour))


def expense_status_update(expense: Expense, user: User, status: str) -> EmailTemplate:
    title = status.capitalize()
    colour = "#dc3545" if status == "rejected" else "#28a745"
    body = (
        f"<p>Dear {user.full_name},</p>"
        f"<p>Your expense claim has been {status}.</p>"
        "<h3>Expense Details:</h3><ul>"
        f"<li><strong>Description:</strong> {expense.description}</li>"
        f"<li><strong>Amount:</strong> ₹{expense.amount:,.2f}</li>"
        f"<li><strong>Status:</strong> {status.upper()}</li>"
        "</ul>"
    )
    if status == "rejected" and expense.rejection_reason:
        body += f"<p><strong>Reason:</strong> {expense.rejection_reason}</p>"
    return EmailTemplate(subject=f"Expense {title} - ₹{expense.amount:,.2f}", html=_wrap(f"Expense {title}", body, colour))


def tour_reminder(booking: Booking, user: User, tour: Tour) -> EmailTemplate:
    body = (
        f"<p>Dear {user.full_name},</p>"
        f"<p><strong>{tour.title}</strong> starts on {_date(tour.start_date)}.</p>"
        f"<p>Booking ID: {booking.booking_ref}. Please carry your Aadhar card for every participant.</p>"
    )
    return EmailTemplate(subject=f"Tour Reminder - {tour.title} starts on {_date(tour.start_date)}",
                         html=_wrap("Tour Reminder", body))


def admin_alert(alert_type: str, data: Dict[str, Any]) -> EmailTemplate:
    items = "".join(f"<li><strong>{key}:</strong> {value}</li>" for key, value in data.items())
    return EmailTemplate(subject=f"Admin Alert: {alert_type}",
                         html=_wrap("Admin Notification", f"<p>{alert_type}</p><ul>{items}</ul>", "#dc3545"))


# ============= Delivery =============

class NotificationService:
    """SMTP sender; one connection per message"""

    def __init__(self, dry_run: Optional[bool] = None):
        self.dry_run = settings.NOTIFY_DRY_RUN if dry_run is None else dry_run

    def build_message(self, to: str, template: EmailTemplate) -> EmailMessage:
        message = EmailMessage()
        message["From"] = settings.SMTP_SENDER
        message["To"] = to
        message["Subject"] = template.subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(template.html, subtype="html")
        return message

    def send_email(self, to: str, template: EmailTemplate) -> Dict[str, Any]:
        if not to:
            return {"success": False, "error": "missing recipient"}

        if self.dry_run:
            logger.info(f"✉️ [dry-run] {to}: {template.subject}")
            return {"success": True, "dryRun": True}

        message = self.build_message(to, template)
        try:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                if settings.SMTP_USER:
                    smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Email to {to} failed: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"✅ Email sent to {to}: {template.subject}")
        return {"success": True}


notification_service = NotificationService()
