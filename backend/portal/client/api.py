"""
Typed HTTP client for the portal API.

One httpx.Client per PortalClient; the bearer token comes from the token store
on every request, and resource groups mirror the front end's api module.
"""
from typing import Any, Dict, List, Optional
import logging

import httpx

from portal.client.errors import ApiError, BackendUnavailableError, SessionExpiredError
from portal.client.token_store import MemoryTokenStore

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class PortalClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, token_store=None,
                 http: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store if token_store is not None else MemoryTokenStore()
        self._http = http or httpx.Client(timeout=timeout)

        self.auth = AuthAPI(self)
        self.tours = ToursAPI(self)
        self.bookings = BookingsAPI(self)
        self.expenses = ExpensesAPI(self)
        self.family = FamilyMembersAPI(self)
        self.accommodations = AccommodationsAPI(self)
        self.misc = MiscAPI(self)
        self.parts = PartsAPI(self)
        self.admin = AdminAPI(self)
        self.reports = ReportsAPI(self)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None,
                json: Any = None, files: Any = None, raw: bool = False) -> Any:
        headers = {}
        token = self.token_store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self._http.request(
                method, f"{self.base_url}{path}", params=params or None, json=json, files=files, headers=headers,
            )
        except httpx.TransportError as e:
            logger.warning(f"⚠️ Backend unreachable for {method} {path}: {e}")
            raise BackendUnavailableError() from e

        if response.status_code == 401:
            self.token_store.clear()
            raise SessionExpiredError(_error_message(response), _payload(response))
        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response), _payload(response))

        if raw:
            return response
        if not response.content:
            return None
        return response.json()

    def get(self, path: str, **params) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Any = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str, **params) -> Any:
        return self.request("DELETE", path, params=params)

    def health(self) -> Dict[str, Any]:
        return self.get("/health")


class _Resource:
    def __init__(self, client: PortalClient):
        self._client = client


# ============= Auth =============

class AuthAPI(_Resource):
    def register(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = self._client.post("/auth/register", data)
        self._client.token_store.save(result["token"], result.get("user"))
        return result

    def login(self, email: str, password: str) -> Dict[str, Any]:
        result = self._client.post("/auth/login", {"email": email, "password": password})
        self._client.token_store.save(result["token"], result.get("user"))
        return result

    def logout(self) -> None:
        self._client.token_store.clear()

    def current_user(self) -> Optional[Dict[str, Any]]:
        return self._client.token_store.get_user()

    def me(self) -> Dict[str, Any]:
        return self._client.get("/auth/me")

    def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put("/auth/profile", data)

    def add_family_member(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/auth/family-member", data)


class FamilyMembersAPI(_Resource):
    def list(self) -> List[Dict[str, Any]]:
        return self._client.get("/family-members")

    def add(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/family-members", data)

    def update(self, member_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/family-members/{member_id}", data)

    def delete(self, member_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/family-members/{member_id}")


# ============= Tours =============

class ToursAPI(_Resource):
    def list(self, **params) -> Dict[str, Any]:
        return self._client.get("/tours", **params)

    def featured(self) -> List[Dict[str, Any]]:
        return self._client.get("/tours/featured")

    def by_region(self, region: str) -> List[Dict[str, Any]]:
        return self._client.get(f"/tours/region/{region}")

    def get(self, tour_id: str) -> Dict[str, Any]:
        return self._client.get(f"/tours/{tour_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/tours", data)

    def update(self, tour_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/tours/{tour_id}", data)

    def delete(self, tour_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/tours/{tour_id}")

    def list_for_admin(self, **params) -> Dict[str, Any]:
        return self._client.get("/tours/admin/all", **params)

    def update_status(self, tour_id: str, status: str) -> Dict[str, Any]:
        return self._client.patch(f"/tours/{tour_id}/status", {"status": status})

    def set_featured(self, tour_id: str, featured: bool) -> Dict[str, Any]:
        return self._client.patch(f"/tours/{tour_id}/featured", {"featured": featured})

    def duplicate(self, tour_id: str) -> Dict[str, Any]:
        return self._client.post(f"/tours/{tour_id}/duplicate")


# ============= Bookings =============

class BookingsAPI(_Resource):
    def list(self) -> List[Dict[str, Any]]:
        return self._client.get("/bookings")

    def get(self, booking_id: str) -> Dict[str, Any]:
        return self._client.get(f"/bookings/{booking_id}")

    def create(self, tour_id: str, participants: List[Dict[str, Any]], **extra) -> Dict[str, Any]:
        return self._client.post("/bookings", {"tourId": tour_id, "participants": participants, **extra})

    def express_interest(self, tour_id: str) -> Dict[str, Any]:
        return self._client.post("/bookings/interest", {"tourId": tour_id})

    def update(self, booking_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/bookings/{booking_id}", data)

    def cancel(self, booking_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        return self._client.put(f"/bookings/{booking_id}/cancel", {"reason": reason})

    def add_family(self, booking_id: str, participants: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._client.post(f"/bookings/{booking_id}/add-family", {"participants": participants})

    def list_for_admin(self, **params) -> Dict[str, Any]:
        return self._client.get("/bookings/admin/all", **params)

    def update_status(self, booking_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        return self._client.patch(f"/bookings/admin/{booking_id}/status", {"status": status, "notes": notes})

    def admin_delete(self, booking_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/bookings/admin/{booking_id}")

    def create_for_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/bookings/admin/create", data)


# ============= Expenses =============

class ExpensesAPI(_Resource):
    def list(self, **params) -> Dict[str, Any]:
        return self._client.get("/expenses", **params)

    def get(self, expense_id: str) -> Dict[str, Any]:
        return self._client.get(f"/expenses/{expense_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/expenses", data)

    def update(self, expense_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/expenses/{expense_id}", data)

    def delete(self, expense_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/expenses/{expense_id}")

    def categories(self) -> List[Dict[str, Any]]:
        return self._client.get("/expenses/categories")

    def stats(self, **params) -> Dict[str, Any]:
        return self._client.get("/expenses/stats", **params)

    def reports(self, **params) -> Dict[str, Any]:
        return self._client.get("/expenses/reports", **params)

    def analytics(self, **params) -> Dict[str, Any]:
        return self._client.get("/expenses/analytics/dashboard", **params)

    def admin_list(self, **params) -> Dict[str, Any]:
        return self._client.get("/expenses/admin", **params)

    def admin_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/expenses/admin/create", data)

    def admin_update(self, expense_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/expenses/admin/{expense_id}", data)

    def admin_delete(self, expense_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/expenses/admin/{expense_id}")

    def admin_approve(self, expense_id: str, is_approved: bool,
                      rejection_reason: Optional[str] = None) -> Dict[str, Any]:
        return self._client.patch(
            f"/expenses/admin/{expense_id}/approval",
            {"isApproved": is_approved, "rejectionReason": rejection_reason},
        )

    def bulk_approve(self, expense_ids: List[str]) -> Dict[str, Any]:
        return self._client.put("/expenses/bulk/approve", {"expenseIds": expense_ids})

    def bulk_delete(self, expense_ids: List[str]) -> Dict[str, Any]:
        return self._client.request("DELETE", "/expenses/bulk/delete", json={"expenseIds": expense_ids})


# ============= Accommodations =============

class AccommodationsAPI(_Resource):
    def list(self, **params) -> Dict[str, Any]:
        return self._client.get("/accommodations", **params)

    def get(self, accommodation_id: str) -> Dict[str, Any]:
        return self._client.get(f"/accommodations/{accommodation_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/accommodations", data)

    def update(self, accommodation_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/accommodations/{accommodation_id}", data)

    def delete(self, accommodation_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/accommodations/{accommodation_id}")

    def verify(self, accommodation_id: str) -> Dict[str, Any]:
        return self._client.patch(f"/accommodations/{accommodation_id}/verify")

    def add_room(self, accommodation_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post(f"/accommodations/{accommodation_id}/rooms", data)

    def update_room(self, accommodation_id: str, room_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/accommodations/{accommodation_id}/rooms/{room_id}", data)

    def delete_room(self, accommodation_id: str, room_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/accommodations/{accommodation_id}/rooms/{room_id}")

    def add_tour(self, accommodation_id: str, tour_id: str, destination: str, day_number: int,
                 **times) -> Dict[str, Any]:
        body = {"tourId": tour_id, "destination": destination, "dayNumber": day_number, **times}
        return self._client.post(f"/accommodations/{accommodation_id}/tours", body)

    def remove_tour(self, accommodation_id: str, tour_id: str, destination: Optional[str] = None,
                    day_number: Optional[int] = None) -> Dict[str, Any]:
        return self._client.delete(
            f"/accommodations/{accommodation_id}/tours/{tour_id}", destination=destination, dayNumber=day_number,
        )

    def book_room(self, accommodation_id: str, room_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post(f"/accommodations/{accommodation_id}/rooms/{room_id}/book", data)

    def assign_room(self, accommodation_id: str, room_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post(f"/accommodations/{accommodation_id}/rooms/{room_id}/assign-booking", data)

    def remove_room_booking(self, accommodation_id: str, room_id: str, booking_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/accommodations/{accommodation_id}/rooms/{room_id}/bookings/{booking_id}")

    def availability(self, accommodation_id: str, check_in: str, check_out: str,
                     room_type: Optional[str] = None) -> Dict[str, Any]:
        return self._client.get(
            f"/accommodations/{accommodation_id}/availability",
            checkIn=check_in, checkOut=check_out, roomType=room_type,
        )

    def available_rooms(self, accommodation_id: str, check_in: str, check_out: str,
                        capacity: Optional[int] = None) -> Dict[str, Any]:
        return self._client.get(
            f"/accommodations/{accommodation_id}/available-rooms",
            checkIn=check_in, checkOut=check_out, capacity=capacity,
        )

    def by_tour(self, tour_id: str, **params) -> Dict[str, Any]:
        return self._client.get(f"/accommodations/tour/{tour_id}", **params)

    def by_itinerary(self, tour_id: str, **params) -> Dict[str, Any]:
        return self._client.get(f"/accommodations/itinerary/{tour_id}", **params)

    def booking_rooms(self, booking_id: str) -> Dict[str, Any]:
        return self._client.get(f"/accommodations/bookings/{booking_id}/rooms")

    def suggest(self, booking_id: str) -> Dict[str, Any]:
        return self._client.get(f"/accommodations/suggest/{booking_id}")

    def stats(self, **params) -> Dict[str, Any]:
        return self._client.get("/accommodations/stats/overview", **params)


# ============= Rosters =============

class MiscAPI(_Resource):
    def list(self, **params) -> Dict[str, Any]:
        return self._client.get("/misc", **params)

    def get(self, member_id: str) -> Dict[str, Any]:
        return self._client.get(f"/misc/{member_id}")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/misc", data)

    def update(self, member_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/misc/{member_id}", data)

    def delete(self, member_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/misc/{member_id}")

    def stats(self) -> Dict[str, Any]:
        return self._client.get("/misc/stats/summary")


class PartsAPI(_Resource):
    def list(self, section: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._client.get("/parts", section=section)

    def stats(self) -> Dict[str, Any]:
        return self._client.get("/parts/stats")

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post("/parts", data)

    def update(self, part_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.put(f"/parts/{part_id}", data)

    def delete(self, part_id: str) -> Dict[str, Any]:
        return self._client.delete(f"/parts/{part_id}")

    def import_file(self, filename: str, content: bytes) -> Dict[str, Any]:
        return self._client.post("/parts/import", files={"file": (filename, content)})


# ============= Admin & reports =============

class AdminAPI(_Resource):
    def dashboard(self) -> Dict[str, Any]:
        return self._client.get("/admin/dashboard")

    def analytics(self) -> Dict[str, Any]:
        return self._client.get("/admin/analytics")

    def users(self, **params) -> Dict[str, Any]:
        return self._client.get("/admin/users", **params)

    def user(self, user_id: str) -> Dict[str, Any]:
        return self._client.get(f"/admin/users/{user_id}")

    def set_role(self, user_id: str, role: str) -> Dict[str, Any]:
        return self._client.put(f"/admin/users/{user_id}/role", {"role": role})

    def bookings(self, **params) -> Dict[str, Any]:
        return self._client.get("/admin/bookings", **params)

    def set_booking_status(self, booking_id: str, status: str) -> Dict[str, Any]:
        return self._client.put(f"/admin/bookings/{booking_id}/status", {"status": status})

    def expenses(self, **params) -> Dict[str, Any]:
        return self._client.get("/admin/expenses", **params)


class ReportsAPI(_Resource):
    def financial(self, date_from: Optional[str] = None, date_to: Optional[str] = None,
                  tour_id: Optional[str] = None) -> Dict[str, Any]:
        return self._client.get("/reports/financial", dateFrom=date_from, dateTo=date_to, tourId=tour_id)

    def export(self, data_type: str, fmt: str, filters: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Returns the raw response; the file is response.content."""
        return self._client.request(
            "POST", "/export/data", json={"type": data_type, "format": fmt, "filters": filters or {}}, raw=True,
        )

    def export_stats(self) -> Dict[str, Any]:
        return self._client.get("/export/stats")

    def search(self, query: str, tab: str = "all", category: Optional[str] = None, status: Optional[str] = None,
               price_range: Optional[str] = None, date_range: Optional[str] = None) -> Dict[str, Any]:
        return self._client.get("/search/global", query=query, tab=tab, category=category, status=status,
                                priceRange=price_range, dateRange=date_range)

    def search_tours(self, query: Optional[str] = None, **filters) -> Dict[str, Any]:
        """filters: category, priceRange, duration, difficulty, sortBy, page, limit"""
        return self._client.get("/search/tours", query=query, **filters)

    def suggestions(self, query: str) -> List[Dict[str, Any]]:
        return self._client.get("/search/suggestions", query=query)["suggestions"]

    def search_analytics(self) -> Dict[str, Any]:
        return self._client.get("/search/analytics")
