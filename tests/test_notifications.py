"""
Notification tasks run eagerly with dry-run delivery
"""
import smtplib
from datetime import datetime, timedelta

import pytest

from conftest import participant
from portal.models import Booking
from portal.queue.tasks.notifications import (
    enqueue, notify_admins, send_booking_confirmation, send_booking_status_update, send_expense_status_update,
    send_tour_reminders,
)
from portal.services import notifications as templates
from portal.services.notifications import EmailTemplate, NotificationService


@pytest.fixture
def booking_id(client, member_headers, published_tour):
    response = client.post("/api/bookings", headers=member_headers,
                           json={"tourId": published_tour.id, "participants": [participant()]})
    return response.json()["booking"]["_id"]


class TestTasks:
    def test_booking_confirmation(self, booking_id):
        assert send_booking_confirmation.apply(args=[booking_id]).get() == {"success": True, "dryRun": True}

    def test_missing_booking(self, admin_user):
        result = send_booking_status_update.apply(args=["missing", "confirmed"]).get()
        assert result == {"ok": False, "error": "booking_not_found"}

    def test_expense_status_update(self, client, member_headers):
        expense = client.post("/api/expenses", headers=member_headers, json={
            "category": "meals", "description": "Prasadam", "amount": 500, "expenseDate": "2030-05-11T12:00:00Z",
        }).json()["expense"]
        result = send_expense_status_update.apply(args=[expense["_id"], "approved"]).get()
        assert result["success"] is True

    def test_admin_alert_reaches_every_admin(self, admin_user, make_user):
        make_user("second-admin@example.com", role=admin_user.role)
        result = notify_admins.apply(args=["New booking", {"bookingId": "BK1"}]).get()
        assert result == {"ok": True, "sent": 2}

    def test_reminders_only_for_confirmed_bookings_starting_soon(self, client, db, admin_headers, booking_id,
                                                                 published_tour):
        assert send_tour_reminders.apply().get()["bookings"] == 0

        published_tour.start_date = datetime.utcnow() + timedelta(days=1)
        published_tour.end_date = published_tour.start_date + timedelta(days=6)
        db.commit()
        assert send_tour_reminders.apply().get()["bookings"] == 0

        client.put(f"/api/admin/bookings/{booking_id}/status", headers=admin_headers, json={"status": "confirmed"})
        assert send_tour_reminders.apply().get() == {"ok": True, "sent": 1, "bookings": 1}

    def test_enqueue_never_raises(self):
        class Broken:
            name = "notifications.broken"

            def delay(self, *args):
                raise ConnectionError("broker down")

        assert enqueue(Broken(), "x") is False


class TestTemplates:
    def test_cancellation_mentions_reason(self, client, db, member_headers, booking_id):
        client.put(f"/api/bookings/{booking_id}/cancel", headers=member_headers, json={"reason": "Health reasons"})
        booking = db.get(Booking, booking_id)
        db.refresh(booking)

        template = templates.booking_status_update(booking, booking.user, booking.tour, "cancelled")
        assert template.subject == f"Booking Cancelled - {booking.tour.title}"
        assert "Health reasons" in template.html
        assert booking.booking_ref in template.html

    def test_admin_alert_lists_data(self):
        template = templates.admin_alert("Low seats", {"tour": "Char Dham", "left": 2})
        assert template.subject == "Admin Alert: Low seats"
        assert "<strong>left:</strong> 2" in template.html


class TestDelivery:
    TEMPLATE = EmailTemplate(subject="Hello", html="<p>Hi</p>")

    def test_missing_recipient(self):
        assert NotificationService(dry_run=True).send_email("", self.TEMPLATE)["success"] is False

    def test_message_headers(self):
        message = NotificationService(dry_run=True).build_message("member@example.com", self.TEMPLATE)
        assert message["To"] == "member@example.com"
        assert message["Subject"] == "Hello"
        assert message.is_multipart()

    def test_smtp_failure_is_reported(self, monkeypatch):
        def refuse(*args, **kwargs):
            raise smtplib.SMTPConnectError(421, "busy")

        monkeypatch.setattr(smtplib, "SMTP", refuse)
        result = NotificationService(dry_run=False).send_email("member@example.com", self.TEMPLATE)
        assert result["success"] is False
