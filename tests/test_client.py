"""
PortalClient: error mapping and token handling against a mock transport, and
an end-to-end pass through the real app using TestClient as the transport.
"""
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from portal.client import (
    ApiError, BackendUnavailableError, FileTokenStore, MemoryTokenStore, PortalClient, SessionExpiredError,
)
from portal.main import app


def _mock_client(handler, store=None):
    return PortalClient(
        base_url="http://portal.test/api/",
        token_store=store or MemoryTokenStore(),
        http=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestRequests:
    def test_bearer_header_and_params(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"tours": []})

        store = MemoryTokenStore()
        store.save("abc", {"email": "member@example.com"})
        client = _mock_client(handler, store)

        assert client.tours.list(status="published", region=None) == {"tours": []}
        assert seen["url"] == "http://portal.test/api/tours?status=published"
        assert seen["auth"] == "Bearer abc"

    def test_no_header_without_token(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"status": "OK"})

        assert _mock_client(handler).health() == {"status": "OK"}

    def test_empty_body_is_none(self):
        assert _mock_client(lambda request: httpx.Response(204)).get("/anything") is None


class TestErrors:
    def test_unauthorised_clears_the_session(self):
        store = MemoryTokenStore()
        store.save("stale", {"email": "member@example.com"})
        client = _mock_client(lambda request: httpx.Response(401, json={"message": "Token is not valid"}), store)

        with pytest.raises(SessionExpiredError) as err:
            client.auth.me()
        assert err.value.status_code == 401
        assert err.value.message == "Token is not valid"
        assert store.get_token() is None
        assert client.auth.current_user() is None

    def test_api_error_carries_message_and_payload(self):
        body = {"message": "Room is already booked for the selected dates", "conflictingBooking": {"_id": "rb1"}}
        client = _mock_client(lambda request: httpx.Response(400, json=body))

        with pytest.raises(ApiError) as err:
            client.accommodations.book_room("a1", "r1", {"bookingId": "b1"})
        assert err.value.status_code == 400
        assert err.value.message == body["message"]
        assert err.value.payload["conflictingBooking"]["_id"] == "rb1"

    def test_non_json_error(self):
        client = _mock_client(lambda request: httpx.Response(502, text="Bad gateway"))
        with pytest.raises(ApiError) as err:
            client.tours.featured()
        assert err.value.message == "Bad gateway"

    def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendUnavailableError) as err:
            _mock_client(handler).tours.featured()
        assert err.value.message == "Backend server is not available. Please contact administrator."


class TestTokenStores:
    def test_file_store_survives_restart(self, tmp_path):
        path = tmp_path / "session" / "token.json"
        FileTokenStore(path).save("abc", {"email": "member@example.com"})

        reloaded = FileTokenStore(path)
        assert reloaded.get_token() == "abc"
        assert reloaded.get_user() == {"email": "member@example.com"}
        assert json.loads(path.read_text())["token"] == "abc"

        reloaded.clear()
        assert not path.exists()
        assert FileTokenStore(path).get_token() is None

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("{not json")
        assert FileTokenStore(path).get_token() is None


class TestAgainstApp:
    @pytest.fixture
    def portal(self):
        client = PortalClient(base_url="http://testserver/api", http=TestClient(app))
        yield client
        client.close()

    def test_register_book_and_cancel(self, portal, published_tour):
        portal.auth.register({
            "firstName": "Lakshmi", "lastName": "Narayanan", "email": "lakshmi@example.com",
            "password": "secret123", "phoneNumber": "9876543210", "aadharNumber": "123456789012",
        })
        assert portal.auth.current_user()["email"] == "lakshmi@example.com"
        assert portal.auth.me()["firstName"] == "Lakshmi"

        booking = portal.bookings.create(published_tour.id, [
            {"name": "Lakshmi", "age": 52, "aadharNumber": "123456789012", "priceCategory": "senior"},
        ])["booking"]
        assert booking["pricing"]["total"] == 11800
        assert portal.tours.get(published_tour.id)["currentParticipants"] == 1

        cancelled = portal.bookings.cancel(booking["_id"], reason="Unwell")["booking"]
        assert cancelled["status"] == "cancelled"
        assert portal.tours.get(published_tour.id)["currentParticipants"] == 0

        with pytest.raises(ApiError) as err:
            portal.bookings.cancel(booking["_id"])
        assert err.value.message == "Booking is already cancelled"

    def test_admin_export_and_search(self, portal, admin_user, published_tour):
        portal.auth.login("admin@example.com", "secret123")

        response = portal.reports.export("tours", "csv")
        assert response.headers["content-type"].startswith("text/csv")
        assert b"South India Temple Circuit" in response.content

        found = portal.reports.search("temple", tab="tours")
        assert [t["_id"] for t in found["tours"]] == [published_tour.id]

        assert portal.reports.search("temple", tab="tours", price_range="20000+")["tours"] == []
        assert portal.reports.search_analytics()["totalSearches"] == 2

        stats = portal.reports.export_stats()
        counts = {t["value"]: t["count"] for t in stats["availableDataTypes"]}
        assert counts["tours"] == 1
        assert counts["analytics"] is None

    def test_public_tour_search_and_suggestions(self, portal, published_tour):
        result = portal.reports.search_tours("temple", priceRange="5000-15000", sortBy="price-low")
        assert [t["_id"] for t in result["tours"]] == [published_tour.id]
        assert result["pagination"]["totalCount"] == 1

        assert portal.reports.suggestions("south") == [
            {"type": "tour", "text": "South India Temple Circuit", "category": "pilgrimage", "id": published_tour.id},
        ]

    def test_members_get_forbidden_errors(self, portal, member_user):
        portal.auth.login("member@example.com", "secret123")
        with pytest.raises(ApiError) as err:
            portal.admin.dashboard()
        assert err.value.status_code == 403
        assert portal.token_store.get_token() is not None

    def test_logout_then_protected_call(self, portal, member_user):
        portal.auth.login("member@example.com", "secret123")
        portal.auth.logout()
        with pytest.raises(SessionExpiredError):
            portal.bookings.list()
