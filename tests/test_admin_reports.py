"""
Admin dashboard and user management, destinations, financial report, export and global search
"""
import csv
import io
from datetime import datetime

import pytest

from conftest import participant

DESTINATION = {
    "name": "Kedarnath",
    "state": "Uttarakhand",
    "region": "north-india",
    "famousTemples": ["Kedarnath Temple"],
    "transportation": {"nearestRailway": "Rishikesh"},
}


@pytest.fixture
def confirmed_booking(client, admin_headers, member_headers, published_tour):
    booking = client.post("/api/bookings", headers=member_headers, json={
        "tourId": published_tour.id, "participants": [participant("Ravi"), participant("Anu", category="child")],
    }).json()["booking"]
    client.put(f"/api/admin/bookings/{booking['_id']}/status", headers=admin_headers, json={"status": "confirmed"})
    return booking


class TestAdmin:
    def test_dashboard(self, client, admin_headers, confirmed_booking):
        data = client.get("/api/admin/dashboard", headers=admin_headers).json()
        assert data["statistics"]["totalBookings"] == 1
        assert data["statistics"]["totalRevenue"] == 17700
        assert data["recentBookings"][0]["_id"] == confirmed_booking["_id"]

    def test_analytics(self, client, admin_headers, confirmed_booking):
        data = client.get("/api/admin/analytics", headers=admin_headers).json()
        assert data["confirmedBookings"] == 1
        assert data["confirmationRate"] == 100

    def test_unpaid_confirmed_booking_awaits_approval(self, client, admin_headers, confirmed_booking):
        data = client.get("/api/admin/analytics", headers=admin_headers).json()
        assert data["pendingApprovals"] == 1
        assert data["paidBookings"] == 0

        paid = client.put(f"/api/admin/bookings/{confirmed_booking['_id']}/status", headers=admin_headers,
                          json={"status": "paid"})
        assert paid.json()["booking"]["paymentStatus"] == "paid"

        data = client.get("/api/admin/analytics", headers=admin_headers).json()
        assert data["pendingApprovals"] == 0
        assert data["paidBookings"] == 1
        assert data["confirmationRate"] == 100

    def test_users_and_role_change(self, client, admin_headers, member_user, confirmed_booking):
        found = client.get("/api/admin/users", headers=admin_headers, params={"search": "lakshmi"}).json()
        assert [u["email"] for u in found["users"]] == ["member@example.com"]

        detail = client.get(f"/api/admin/users/{member_user.id}", headers=admin_headers).json()
        assert len(detail["bookings"]) == 1

        promoted = client.put(f"/api/admin/users/{member_user.id}/role", headers=admin_headers,
                              json={"role": "admin"})
        assert promoted.json()["user"]["role"] == "admin"

        bad = client.put(f"/api/admin/users/{member_user.id}/role", headers=admin_headers, json={"role": "root"})
        assert bad.status_code == 400

    def test_booking_status_change_updates_seats(self, client, admin_headers, published_tour, confirmed_booking):
        response = client.put(f"/api/admin/bookings/{confirmed_booking['_id']}/status", headers=admin_headers,
                              json={"status": "cancelled"})
        assert response.json()["booking"]["status"] == "cancelled"
        assert client.get(f"/api/tours/{published_tour.id}").json()["currentParticipants"] == 0

        listed = client.get("/api/admin/bookings", headers=admin_headers, params={"status": "cancelled"}).json()
        assert listed["total"] == 1


class TestDestinations:
    def test_public_listing_hides_deactivated(self, client, admin_headers):
        created = client.post("/api/destinations", headers=admin_headers, json=DESTINATION)
        assert created.status_code == 201
        dest = created.json()["destination"]
        assert dest["transportation"]["nearestRailway"] == "Rishikesh"

        assert [d["name"] for d in client.get("/api/destinations/region/north-india").json()] == ["Kedarnath"]

        removed = client.delete(f"/api/destinations/{dest['_id']}", headers=admin_headers)
        assert removed.json()["message"] == "Destination deactivated successfully"
        assert client.get("/api/destinations").json() == []
        assert client.get(f"/api/destinations/{dest['_id']}").status_code == 404

    def test_members_cannot_create(self, client, member_headers):
        assert client.post("/api/destinations", headers=member_headers, json=DESTINATION).status_code == 403


class TestFinancialReport:
    def test_revenue_expenses_and_profit(self, client, admin_headers, member_headers, published_tour,
                                         confirmed_booking):
        client.post("/api/bookings", headers=member_headers,
                    json={"tourId": published_tour.id, "participants": [participant()]})
        client.post("/api/expenses/admin/create", headers=admin_headers, json={
            "title": "Bus", "category": "transportation", "description": "Coach hire", "amount": 5000,
            "expenseDate": "2030-05-10T00:00:00Z", "tourId": published_tour.id,
        })

        report = client.get("/api/reports/financial", headers=admin_headers).json()
        summary = report["summary"]
        assert summary["totalRevenue"] == 17700
        assert summary["totalExpenses"] == 5000
        assert summary["netProfit"] == 12700
        assert summary["totalBookings"] == 2
        assert summary["totalParticipants"] == 3
        assert report["bookingsByStatus"]["confirmed"] == 1
        assert report["bookingsByStatus"]["interested"] == 1
        assert report["tourAnalysis"][0]["profit"] == 12700
        assert report["expenseCategories"][0]["percentage"] == 100

    def test_inverted_range_rejected(self, client, admin_headers):
        response = client.get("/api/reports/financial", headers=admin_headers,
                              params={"dateFrom": "2030-02-01T00:00:00", "dateTo": "2030-01-01T00:00:00"})
        assert response.status_code == 400


class TestExport:
    def test_csv_bookings(self, client, admin_headers, confirmed_booking):
        response = client.post("/api/export/data", headers=admin_headers,
                               json={"type": "bookings", "format": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'attachment; filename="bookings_export_' in response.headers["content-disposition"]

        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert rows[0]["Booking ID"] == confirmed_booking["bookingId"]
        assert rows[0]["Status"] == "confirmed"

    def test_status_filter_and_data_type_alias(self, client, admin_headers, confirmed_booking):
        response = client.post("/api/export/data", headers=admin_headers, json={
            "dataType": "bookings", "format": "csv", "filters": {"status": "cancelled"},
        })
        assert list(csv.DictReader(io.StringIO(response.text))) == []

    def test_excel_and_pdf_render(self, client, admin_headers, published_tour):
        excel = client.post("/api/export/data", headers=admin_headers, json={"type": "tours", "format": "excel"})
        assert excel.content[:2] == b"PK"
        pdf = client.post("/api/export/data", headers=admin_headers, json={"type": "tours", "format": "pdf"})
        assert pdf.content.startswith(b"%PDF")

    def test_unknown_status_filter(self, client, admin_headers):
        response = client.post("/api/export/data", headers=admin_headers, json={
            "type": "bookings", "format": "csv", "filters": {"status": "lost"},
        })
        assert response.status_code == 400

    def test_unknown_type(self, client, admin_headers):
        response = client.post("/api/export/data", headers=admin_headers, json={"type": "secrets", "format": "csv"})
        assert response.status_code == 400

    def test_destinations_with_active_filter(self, client, admin_headers):
        dest = client.post("/api/destinations", headers=admin_headers, json=DESTINATION).json()["destination"]

        def export(status):
            response = client.post("/api/export/data", headers=admin_headers, json={
                "type": "destinations", "format": "csv", "filters": {"status": status},
            })
            return list(csv.DictReader(io.StringIO(response.text)))

        rows = export("active")
        assert rows[0]["Name"] == "Kedarnath"
        assert rows[0]["Famous Temples"] == "Kedarnath Temple"
        assert rows[0]["Nearest Railway"] == "Rishikesh"

        client.delete(f"/api/destinations/{dest['_id']}", headers=admin_headers)
        assert export("active") == []
        assert [r["Active"] for r in export("inactive")] == ["No"]

    def test_analytics_summary(self, client, admin_headers, confirmed_booking):
        response = client.post("/api/export/data", headers=admin_headers, json={"type": "analytics", "format": "csv"})
        metrics = {row["Metric"]: row["Value"] for row in csv.DictReader(io.StringIO(response.text))}
        assert metrics["Total Bookings"] == "1"
        assert float(metrics["Total Revenue"]) == 17700
        month = f"{datetime.utcnow():%Y-%m}"
        assert metrics[f"{month} Bookings"] == "1"

    def test_stats(self, client, admin_headers, member_headers, confirmed_booking):
        stats = client.get("/api/export/stats", headers=admin_headers).json()
        counts = {t["value"]: t["count"] for t in stats["availableDataTypes"]}
        assert counts["bookings"] == 1
        assert counts["tours"] == 1
        assert counts["destinations"] == 0
        assert stats["supportedFormats"] == ["csv", "excel", "pdf"]
        assert stats["generatedAt"].endswith("Z")

        assert client.get("/api/export/stats", headers=member_headers).status_code == 403


class TestGlobalSearch:
    def test_short_query_returns_empty_groups(self, client, member_headers):
        response = client.get("/api/search/global", headers=member_headers, params={"query": "a"})
        assert response.json() == {"tours": [], "destinations": [], "users": [], "bookings": [], "expenses": []}

    def test_members_see_only_their_bookings_and_no_users(self, client, member_headers, other_headers,
                                                          confirmed_booking):
        mine = client.get("/api/search/global", headers=member_headers, params={"query": "ravi"}).json()
        assert [b["_id"] for b in mine["bookings"]] == [confirmed_booking["_id"]]

        theirs = client.get("/api/search/global", headers=other_headers, params={"query": "ravi"}).json()
        assert theirs["bookings"] == []

        users = client.get("/api/search/global", headers=member_headers, params={"query": "example.com"}).json()
        assert users["users"] == []

    def test_admin_tab_search(self, client, admin_headers, published_tour):
        result = client.get("/api/search/global", headers=admin_headers,
                            params={"query": "temple", "tab": "tours"}).json()
        assert [t["_id"] for t in result["tours"]] == [published_tour.id]

        users = client.get("/api/search/global", headers=admin_headers,
                           params={"query": "admin@", "tab": "users"}).json()
        assert [u["email"] for u in users["users"]] == ["admin@example.com"]

    def test_unknown_tab(self, client, member_headers):
        response = client.get("/api/search/global", headers=member_headers, params={"query": "temple", "tab": "x"})
        assert response.status_code == 400
