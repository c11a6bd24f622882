"""
Member and admin booking flows, checked against the tour's seat count
"""
from conftest import participant

from portal.api.v1 import bookings as bookings_api
from portal.models import BookingStatus
from portal.services.booking_rules import count_held_seats


def _seats(client, tour_id):
    return client.get(f"/api/tours/{tour_id}").json()["currentParticipants"]


def _book(client, headers, tour_id, *people):
    return client.post("/api/bookings", headers=headers,
                       json={"tourId": tour_id, "participants": list(people) or [participant()]})


class TestMemberBookings:
    def test_create_prices_participants_and_holds_seats(self, client, member_headers, published_tour):
        response = _book(client, member_headers, published_tour.id,
                         participant("Ravi"), participant("Anu", age=9, category="child"))
        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["status"] == "interested"
        assert booking["pricing"] == {"subtotal": 15000, "taxes": 2700, "discount": 0, "total": 17700}
        assert booking["bookingId"].startswith("BK")
        assert [p["type"] for p in booking["participants"]] == ["primary", "family"]
        assert _seats(client, published_tour.id) == 2

    def test_draft_tour_cannot_be_booked(self, client, admin_headers, member_headers, published_tour):
        client.patch(f"/api/tours/{published_tour.id}/status", headers=admin_headers, json={"status": "draft"})
        response = _book(client, member_headers, published_tour.id)
        assert response.status_code == 400
        assert response.json()["message"] == "Tour is not available for booking"

    def test_overbooking_rejected(self, client, member_headers, published_tour):
        people = [participant(f"Person {i}") for i in range(11)]
        response = _book(client, member_headers, published_tour.id, *people)
        assert response.status_code == 400
        assert response.json()["message"] == "Not enough seats available"
        assert _seats(client, published_tour.id) == 0

    def test_missing_participants_is_a_validation_error(self, client, member_headers, published_tour):
        response = client.post("/api/bookings", headers=member_headers,
                               json={"tourId": published_tour.id, "participants": []})
        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    def test_list_only_shows_own_bookings(self, client, member_headers, other_headers, published_tour):
        _book(client, member_headers, published_tour.id)
        assert len(client.get("/api/bookings", headers=member_headers).json()) == 1
        assert client.get("/api/bookings", headers=other_headers).json() == []

    def test_other_members_booking_is_hidden(self, client, member_headers, other_headers, published_tour):
        booking_id = _book(client, member_headers, published_tour.id).json()["booking"]["_id"]
        assert client.get(f"/api/bookings/{booking_id}", headers=other_headers).status_code == 404

    def test_cancel_releases_seats_once(self, client, member_headers, published_tour):
        booking_id = _book(client, member_headers, published_tour.id).json()["booking"]["_id"]

        response = client.put(f"/api/bookings/{booking_id}/cancel", headers=member_headers,
                              json={"reason": "Health"})
        assert response.json()["booking"]["status"] == "cancelled"
        assert response.json()["booking"]["cancellationReason"] == "Health"
        assert _seats(client, published_tour.id) == 0

        again = client.put(f"/api/bookings/{booking_id}/cancel", headers=member_headers)
        assert again.status_code == 400
        assert again.json()["message"] == "Booking is already cancelled"

    def test_update_only_allows_cancellation(self, client, member_headers, published_tour):
        booking_id = _book(client, member_headers, published_tour.id).json()["booking"]["_id"]

        refused = client.put(f"/api/bookings/{booking_id}", headers=member_headers, json={"status": "confirmed"})
        assert refused.status_code == 400
        assert refused.json()["message"] == "Only cancellation is allowed"

        updated = client.put(f"/api/bookings/{booking_id}", headers=member_headers,
                             json={"specialRequests": "Ground floor room"})
        assert updated.json()["booking"]["specialRequests"] == "Ground floor room"

    def test_add_family(self, client, member_headers, other_headers, published_tour):
        booking_id = _book(client, member_headers, published_tour.id).json()["booking"]["_id"]

        denied = client.post(f"/api/bookings/{booking_id}/add-family", headers=other_headers,
                             json={"participants": [participant("Anu")]})
        assert denied.status_code == 403

        response = client.post(f"/api/bookings/{booking_id}/add-family", headers=member_headers,
                               json={"participants": [participant("Anu", age=8, category="child")]})
        booking = response.json()
        assert booking["totalParticipants"] == 2
        assert booking["participants"][1]["relationship"] == "family"
        assert booking["pricing"]["total"] == 17700
        assert _seats(client, published_tour.id) == 2

    def test_express_interest_books_the_member(self, client, member_headers, published_tour):
        response = client.post("/api/bookings/interest", headers=member_headers,
                                json={"tourId": published_tour.id, "age": 45})
        assert response.status_code == 201
        booking = response.json()["booking"]
        assert booking["participants"][0]["name"] == "Lakshmi User"
        assert booking["participants"][0]["relationship"] == "self"
        assert booking["pricing"]["total"] == 11800

    def test_new_interest_alerts_admins(self, client, monkeypatch, member_headers, published_tour):
        queued = []
        monkeypatch.setattr(bookings_api, "enqueue", lambda task, *args: queued.append((task.name, args)))

        booking = _book(client, member_headers, published_tour.id).json()["booking"]
        client.post("/api/bookings/interest", headers=member_headers, json={"tourId": published_tour.id})

        assert [name for name, _ in queued] == ["notifications.notify_admins"] * 2
        alert_type, data = queued[0][1]
        assert alert_type == "New booking interest"
        assert data["bookingId"] == booking["bookingId"]
        assert data["tour"] == published_tour.title
        assert data["member"] == "Lakshmi User (member@example.com)"

    def test_rejected_booking_alerts_nobody(self, client, monkeypatch, member_headers, published_tour):
        queued = []
        monkeypatch.setattr(bookings_api, "enqueue", lambda task, *args: queued.append(task.name))
        people = [participant(f"Person {i}") for i in range(11)]
        assert _book(client, member_headers, published_tour.id, *people).status_code == 400
        assert queued == []


class TestAdminBookings:
    def test_status_round_trip_keeps_seat_invariant(self, client, db, admin_headers, member_headers,
                                                    published_tour):
        booking_id = _book(client, member_headers, published_tour.id, participant(), participant()).json()[
            "booking"]["_id"]

        cancelled = client.patch(f"/api/bookings/admin/{booking_id}/status", headers=admin_headers,
                                 json={"status": "cancelled", "notes": "No show"})
        assert cancelled.json()["booking"]["adminNotes"] == "No show"
        assert _seats(client, published_tour.id) == 0

        confirmed = client.patch(f"/api/bookings/admin/{booking_id}/status", headers=admin_headers,
                                 json={"status": "confirmed"})
        assert confirmed.json()["booking"]["status"] == "confirmed"
        assert confirmed.json()["booking"]["confirmationDate"] is not None
        assert _seats(client, published_tour.id) == 2
        assert count_held_seats(db, published_tour.id) == 2

    def test_reinstating_into_a_full_tour_fails(self, client, admin_headers, member_headers, published_tour):
        first = _book(client, member_headers, published_tour.id, *[participant() for _ in range(5)])
        booking_id = first.json()["booking"]["_id"]
        client.put(f"/api/bookings/{booking_id}/cancel", headers=member_headers)
        _book(client, member_headers, published_tour.id, *[participant() for _ in range(8)])

        response = client.patch(f"/api/bookings/admin/{booking_id}/status", headers=admin_headers,
                                json={"status": "confirmed"})
        assert response.status_code == 400
        assert response.json()["message"] == "Not enough seats available"
        assert _seats(client, published_tour.id) == 8

    def test_admin_delete_releases_seats(self, client, admin_headers, member_headers, published_tour):
        booking_id = _book(client, member_headers, published_tour.id).json()["booking"]["_id"]
        response = client.delete(f"/api/bookings/admin/{booking_id}", headers=admin_headers)
        assert response.json()["message"] == "Booking deleted successfully"
        assert _seats(client, published_tour.id) == 0

    def test_admin_create_auto_approves(self, client, admin_headers, member_user, published_tour):
        response = client.post("/api/bookings/admin/create", headers=admin_headers, json={
            "userId": member_user.id,
            "tourId": published_tour.id,
            "participants": [participant()],
        })
        assert response.status_code == 201
        booking = response.json()
        assert booking["status"] == BookingStatus.CONFIRMED.value
        assert booking["adminNotes"] == "Created by admin: Admin User"
        assert booking["userId"] == member_user.id

    def test_admin_create_for_unknown_user(self, client, admin_headers, published_tour):
        response = client.post("/api/bookings/admin/create", headers=admin_headers, json={
            "userId": "nobody", "tourId": published_tour.id, "participants": [participant()],
        })
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    def test_admin_list_search(self, client, admin_headers, member_headers, published_tour):
        _book(client, member_headers, published_tour.id, participant("Gopal Krishnan"))
        _book(client, member_headers, published_tour.id, participant("Meena"))

        found = client.get("/api/bookings/admin/all", headers=admin_headers, params={"search": "gopal"}).json()
        assert found["total"] == 1
        assert found["bookings"][0]["participants"][0]["name"] == "Gopal Krishnan"
