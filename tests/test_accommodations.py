"""
Accommodation catalogue, rooms, tour links and room assignments
"""
import pytest

from conftest import participant

HOTEL = {
    "name": "Sri Balaji Residency",
    "category": "hotel",
    "location": {"address": "12 Car Street", "city": "Tirupati", "state": "Andhra Pradesh", "pincode": "517501"},
    "contact": {"phone": "8772223344"},
    "owner": {"name": "R Srinivasan", "phone": "9848012345"},
    "pricing": {"basePrice": 1800},
    "facilities": ["ac", "parking"],
    "images": [{"url": "a.jpg"}, {"url": "b.jpg"}],
    "rooms": [
        {"roomNumber": "101", "roomType": "double", "capacity": 2, "pricePerNight": 1800, "facilities": ["ac"]},
        {"roomNumber": "201", "roomType": "family", "capacity": 5, "pricePerNight": 3600},
    ],
}

STAY = {"checkIn": "2030-05-10T14:00:00Z", "checkOut": "2030-05-13T11:00:00Z"}


@pytest.fixture
def hotel(client, admin_headers):
    response = client.post("/api/accommodations", headers=admin_headers, json=HOTEL)
    assert response.status_code == 201
    return response.json()["accommodation"]


@pytest.fixture
def booking_id(client, member_headers, published_tour):
    response = client.post("/api/bookings", headers=member_headers, json={
        "tourId": published_tour.id, "participants": [participant(), participant(), participant()],
    })
    return response.json()["booking"]["_id"]


def _room(hotel, number):
    return next(r for r in hotel["rooms"] if r["roomNumber"] == number)


class TestCatalogue:
    def test_create(self, hotel):
        assert hotel["totalRooms"] == 2
        assert hotel["totalCapacity"] == 7
        assert [img["isPrimary"] for img in hotel["images"]] == [True, False]
        assert hotel["location"]["city"] == "Tirupati"

    def test_duplicate_name_in_same_city(self, client, admin_headers, hotel):
        response = client.post("/api/accommodations", headers=admin_headers,
                               json={**HOTEL, "name": "sri balaji residency"})
        assert response.status_code == 400
        assert response.json()["message"] == "Accommodation with this name already exists in this location"

    def test_same_name_in_another_city_is_allowed(self, client, admin_headers, hotel):
        other_city = {**HOTEL["location"], "city": "Tirumala"}
        response = client.post("/api/accommodations", headers=admin_headers,
                               json={**HOTEL, "location": other_city, "rooms": []})
        assert response.status_code == 201

    def test_rename_into_existing_name_rejected(self, client, admin_headers, hotel):
        other = client.post("/api/accommodations", headers=admin_headers,
                            json={**HOTEL, "name": "Other Lodge", "rooms": []}).json()["accommodation"]

        response = client.put(f"/api/accommodations/{other['_id']}", headers=admin_headers,
                              json={"name": "SRI BALAJI RESIDENCY"})
        assert response.status_code == 400
        assert response.json()["message"] == "Accommodation with this name already exists in this location"

        kept = client.put(f"/api/accommodations/{hotel['_id']}", headers=admin_headers,
                          json={"name": "Sri Balaji Residency"})
        assert kept.status_code == 200

    def test_move_into_city_with_same_name_rejected(self, client, admin_headers, hotel):
        other_city = {**HOTEL["location"], "city": "Tirumala"}
        other = client.post("/api/accommodations", headers=admin_headers,
                            json={**HOTEL, "location": other_city, "rooms": []}).json()["accommodation"]

        response = client.put(f"/api/accommodations/{other['_id']}", headers=admin_headers,
                              json={"location": HOTEL["location"]})
        assert response.status_code == 400

    def test_unknown_facility_rejected(self, client, admin_headers):
        response = client.post("/api/accommodations", headers=admin_headers,
                               json={**HOTEL, "facilities": ["helipad"]})
        assert response.status_code == 400

    def test_list_requires_login(self, client, hotel):
        assert client.get("/api/accommodations").status_code == 401

    def test_list_filters_by_facility(self, client, member_headers, hotel):
        found = client.get("/api/accommodations", headers=member_headers, params={"facilities": "parking"}).json()
        assert found["total"] == 1
        assert found["hasNext"] is False
        missing = client.get("/api/accommodations", headers=member_headers, params={"facilities": "gym"}).json()
        assert missing["total"] == 0

    def test_partial_update_and_verify(self, client, admin_headers, hotel):
        response = client.put(f"/api/accommodations/{hotel['_id']}", headers=admin_headers,
                              json={"description": "Near the bus stand"})
        updated = response.json()["accommodation"]
        assert updated["description"] == "Near the bus stand"
        assert updated["name"] == HOTEL["name"]

        verified = client.patch(f"/api/accommodations/{hotel['_id']}/verify", headers=admin_headers).json()
        assert verified["accommodation"]["isVerified"] is True

    def test_stats_overview(self, client, admin_headers, hotel):
        stats = client.get("/api/accommodations/stats/overview", headers=admin_headers).json()
        assert stats["overview"]["totalRooms"] == 2
        assert stats["categories"][0]["_id"] == "hotel"


class TestRooms:
    def test_room_numbers_are_unique(self, client, admin_headers, hotel):
        response = client.post(f"/api/accommodations/{hotel['_id']}/rooms", headers=admin_headers,
                               json={"roomNumber": "101", "roomType": "single", "capacity": 1, "pricePerNight": 900})
        assert response.status_code == 400
        assert response.json()["message"] == "Room number already exists in this accommodation"

    def test_add_update_delete_room(self, client, admin_headers, hotel):
        added = client.post(f"/api/accommodations/{hotel['_id']}/rooms", headers=admin_headers,
                            json={"roomNumber": "301", "roomType": "single", "capacity": 1, "pricePerNight": 900})
        assert added.status_code == 201
        room_id = added.json()["room"]["_id"]

        updated = client.put(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}", headers=admin_headers,
                             json={"pricePerNight": 1100})
        assert updated.json()["room"]["pricePerNight"] == 1100

        removed = client.delete(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}", headers=admin_headers)
        assert removed.json()["message"] == "Room deleted successfully"

    def test_unknown_room_facility_rejected(self, client, admin_headers, hotel):
        response = client.post(f"/api/accommodations/{hotel['_id']}/rooms", headers=admin_headers, json={
            "roomNumber": "302", "roomType": "single", "capacity": 1, "pricePerNight": 900, "facilities": ["parking"],
        })
        assert response.status_code == 400


class TestTourLinks:
    def test_link_lists_under_tour(self, client, admin_headers, member_headers, hotel, published_tour):
        link = {"tourId": published_tour.id, "destination": "Tirupati", "dayNumber": 1}
        created = client.post(f"/api/accommodations/{hotel['_id']}/tours", headers=admin_headers, json=link)
        assert created.status_code == 201

        again = client.post(f"/api/accommodations/{hotel['_id']}/tours", headers=admin_headers, json=link)
        assert again.status_code == 400

        itinerary = client.get(f"/api/accommodations/tour/{published_tour.id}", headers=member_headers).json()
        assert itinerary["itinerary"][0]["dayNumber"] == 1
        assert itinerary["itinerary"][0]["accommodations"][0]["_id"] == hotel["_id"]

        removed = client.delete(f"/api/accommodations/{hotel['_id']}/tours/{published_tour.id}", headers=admin_headers)
        assert removed.json()["removed"] == 1

    def test_link_to_missing_tour(self, client, admin_headers, hotel):
        response = client.post(f"/api/accommodations/{hotel['_id']}/tours", headers=admin_headers,
                               json={"tourId": "missing", "destination": "Tirupati", "dayNumber": 1})
        assert response.status_code == 404


class TestAssignments:
    def test_overlapping_stay_reports_conflicting_booking(self, client, admin_headers, hotel, booking_id):
        room_id = _room(hotel, "101")["_id"]
        url = f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/book"

        first = client.post(url, headers=admin_headers, json={"bookingId": booking_id, **STAY})
        assert first.status_code == 201
        assert first.json()["message"] == "Room booked successfully"

        clash = client.post(url, headers=admin_headers, json={
            "bookingId": booking_id, "checkIn": "2030-05-12T14:00:00Z", "checkOut": "2030-05-14T11:00:00Z",
        })
        assert clash.status_code == 400
        body = clash.json()
        assert body["message"] == "Room is already booked for the selected dates"
        assert body["conflictingBooking"]["bookingId"] == booking_id

        back_to_back = client.post(url, headers=admin_headers, json={
            "bookingId": booking_id, "checkIn": "2030-05-13T11:00:00Z", "checkOut": "2030-05-14T11:00:00Z",
        })
        assert back_to_back.status_code == 201

    def test_checkout_before_checkin(self, client, admin_headers, hotel, booking_id):
        room_id = _room(hotel, "101")["_id"]
        response = client.post(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/book", headers=admin_headers,
                               json={"bookingId": booking_id, "checkIn": STAY["checkOut"], "checkOut": STAY["checkIn"]})
        assert response.status_code == 400
        assert response.json()["message"] == "Check-out must be after check-in"

    def test_member_assigns_own_booking_only(self, client, member_headers, other_headers, hotel, booking_id):
        room_id = _room(hotel, "201")["_id"]
        url = f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/assign-booking"

        assert client.post(url, headers=other_headers, json={"bookingId": booking_id, **STAY}).status_code == 404

        response = client.post(url, headers=member_headers, json={
            "bookingId": booking_id, **STAY, "guests": [{"name": "Ravi", "age": 40}],
        })
        assert response.status_code == 200
        assert response.json()["room"]["bookings"][0]["guests"][0]["name"] == "Ravi"

        rooms = client.get(f"/api/accommodations/bookings/{booking_id}/rooms", headers=member_headers).json()
        assert rooms["totalRooms"] == 1
        assert rooms["roomAssignments"][0]["roomNumber"] == "201"

        released = client.delete(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/bookings/{booking_id}",
                                  headers=member_headers)
        assert released.json()["room"]["bookings"] == []

        missing = client.delete(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/bookings/{booking_id}",
                                headers=member_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Booking assignment not found"

    def test_availability(self, client, admin_headers, member_headers, hotel, booking_id):
        room_id = _room(hotel, "101")["_id"]
        client.post(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/book", headers=admin_headers,
                    json={"bookingId": booking_id, **STAY})

        during = client.get(f"/api/accommodations/{hotel['_id']}/availability", headers=member_headers,
                            params=STAY).json()
        assert [r["roomNumber"] for r in during["rooms"]] == ["201"]

        after = client.get(f"/api/accommodations/{hotel['_id']}/available-rooms", headers=member_headers,
                           params={"checkIn": "2030-05-13T11:00:00", "checkOut": "2030-05-15T11:00:00",
                                   "capacity": 2}).json()
        assert after["totalAvailable"] == 2

    def test_delete_blocked_by_future_stay(self, client, admin_headers, hotel, booking_id):
        room_id = _room(hotel, "101")["_id"]
        client.post(f"/api/accommodations/{hotel['_id']}/rooms/{room_id}/book", headers=admin_headers,
                    json={"bookingId": booking_id, **STAY})

        response = client.delete(f"/api/accommodations/{hotel['_id']}", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Cannot delete accommodation with active bookings"

    def test_suggestions_cover_the_party(self, client, admin_headers, member_headers, hotel, booking_id,
                                         published_tour):
        client.post(f"/api/accommodations/{hotel['_id']}/tours", headers=admin_headers,
                    json={"tourId": published_tour.id, "destination": "Tirupati", "dayNumber": 1})

        result = client.get(f"/api/accommodations/suggest/{booking_id}", headers=member_headers).json()
        assert result["partySize"] == 3
        assert result["suggestions"][0]["rooms"][0]["roomNumber"] == "201"
        assert result["suggestions"][0]["totalCapacity"] == 5
