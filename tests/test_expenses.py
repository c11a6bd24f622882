"""
Expense submission, approval and the admin reports
"""
import pytest

EXPENSE = {
    "category": "meals",
    "description": "Lunch at Tirumala",
    "amount": 3000,
    "expenseDate": "2030-05-11T12:00:00Z",
    "participants": 4,
}


@pytest.fixture
def expense(client, member_headers, published_tour):
    response = client.post("/api/expenses", headers=member_headers, json={**EXPENSE, "tourId": published_tour.id})
    assert response.status_code == 201
    return response.json()["expense"]


class TestMemberExpenses:
    def test_create_computes_per_person_cost(self, expense, published_tour):
        assert expense["perPersonCost"] == 750
        assert expense["isApproved"] is False
        assert expense["tour"] == {"_id": published_tour.id, "title": published_tour.title}
        assert expense["paymentMethod"] == "cash"

    def test_tour_is_optional(self, client, member_headers):
        response = client.post("/api/expenses", headers=member_headers, json=EXPENSE)
        assert response.status_code == 201
        assert response.json()["expense"]["tour"] is None

    def test_unknown_tour(self, client, member_headers):
        response = client.post("/api/expenses", headers=member_headers, json={**EXPENSE, "tour": "missing"})
        assert response.status_code == 404
        assert response.json()["message"] == "Tour not found"

    def test_negative_amount_rejected(self, client, member_headers):
        response = client.post("/api/expenses", headers=member_headers, json={**EXPENSE, "amount": -1})
        assert response.status_code == 400

    def test_members_only_see_their_own(self, client, member_headers, other_headers, admin_headers, expense):
        assert client.get("/api/expenses", headers=other_headers).json()["total"] == 0
        assert client.get("/api/expenses", headers=member_headers).json()["total"] == 1
        assert client.get("/api/expenses", headers=admin_headers).json()["total"] == 1
        assert client.get(f"/api/expenses/{expense['_id']}", headers=other_headers).status_code == 404

    def test_update_recomputes_per_person_cost(self, client, member_headers, expense):
        response = client.put(f"/api/expenses/{expense['_id']}", headers=member_headers, json={"amount": 5000})
        assert response.json()["expense"]["perPersonCost"] == 1250

    def test_delete(self, client, member_headers, expense):
        response = client.delete(f"/api/expenses/{expense['_id']}", headers=member_headers)
        assert response.json()["message"] == "Expense deleted successfully"
        assert client.get("/api/expenses", headers=member_headers).json()["total"] == 0

    def test_categories_are_public(self, client):
        values = [c["value"] for c in client.get("/api/expenses/categories").json()]
        assert "temple-donations" in values
        assert len(values) == 11


class TestApproval:
    def test_approve(self, client, admin_headers, expense):
        response = client.put(f"/api/expenses/{expense['_id']}/approve", headers=admin_headers)
        approved = response.json()["expense"]
        assert approved["isApproved"] is True
        assert approved["approvedBy"]["email"] == "admin@example.com"

    def test_member_cannot_approve(self, client, member_headers, expense):
        response = client.put(f"/api/expenses/{expense['_id']}/approve", headers=member_headers)
        assert response.status_code == 403

    def test_reject_with_reason(self, client, admin_headers, expense):
        response = client.patch(f"/api/expenses/admin/{expense['_id']}/approval", headers=admin_headers,
                                json={"isApproved": False, "rejectionReason": " No receipt "})
        rejected = response.json()
        assert rejected["isApproved"] is False
        assert rejected["rejectionReason"] == "No receipt"
        assert rejected["approvalDate"] is not None

    def test_bulk_approve_skips_already_approved(self, client, admin_headers, member_headers, expense):
        second = client.post("/api/expenses", headers=member_headers, json=EXPENSE).json()["expense"]
        client.put(f"/api/expenses/{expense['_id']}/approve", headers=admin_headers)

        response = client.put("/api/expenses/bulk/approve", headers=admin_headers,
                              json={"expenseIds": [expense["_id"], second["_id"]]})
        assert response.json()["modifiedCount"] == 1

    def test_bulk_requires_ids(self, client, admin_headers):
        response = client.put("/api/expenses/bulk/approve", headers=admin_headers, json={"expenseIds": []})
        assert response.status_code == 400
        assert response.json()["message"] == "Expense IDs array is required"

    def test_bulk_delete(self, client, admin_headers, expense):
        response = client.request("DELETE", "/api/expenses/bulk/delete", headers=admin_headers,
                                  json={"expenseIds": [expense["_id"], "missing"]})
        assert response.json()["deletedCount"] == 1


class TestAdminExpenses:
    def test_admin_created_expense_is_approved(self, client, admin_headers, published_tour):
        response = client.post("/api/expenses/admin/create", headers=admin_headers,
                               json={**EXPENSE, "title": "Lunch", "tourId": published_tour.id})
        assert response.status_code == 201
        assert response.json()["isApproved"] is True

    def test_admin_list_filters(self, client, admin_headers, expense):
        pending = client.get("/api/expenses/admin", headers=admin_headers, params={"isApproved": "false"}).json()
        assert pending["total"] == 1
        searched = client.get("/api/expenses/admin", headers=admin_headers, params={"search": "tirumala"}).json()
        assert searched["expenses"][0]["_id"] == expense["_id"]

    def test_stats_and_reports(self, client, admin_headers, member_headers, expense, published_tour):
        client.post("/api/expenses", headers=member_headers,
                    json={**EXPENSE, "category": "transportation", "amount": 7000})
        client.put(f"/api/expenses/{expense['_id']}/approve", headers=admin_headers)

        stats = client.get("/api/expenses/stats", headers=admin_headers).json()
        assert stats["summary"]["totalExpenses"] == 10000
        assert stats["summary"]["approvedExpenses"] == 3000
        assert stats["summary"]["pendingExpenses"] == 7000
        assert [c["_id"] for c in stats["byCategory"]] == ["transportation", "meals"]

        report = client.get("/api/expenses/reports", headers=admin_headers).json()
        assert report["summary"]["approvedCount"] == 1
        assert report["tourBreakdown"] == [
            {"_id": published_tour.id, "tourTitle": published_tour.title, "total": 3000, "count": 1},
        ]

        scoped = client.get("/api/expenses/stats", headers=admin_headers,
                            params={"tourId": published_tour.id}).json()
        assert scoped["summary"]["totalCount"] == 1
