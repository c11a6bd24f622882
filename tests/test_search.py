"""
Global search filters and logging, the public tour search, suggestions and search analytics
"""
from datetime import datetime, timedelta

import pytest

from conftest import participant

from portal.api.v1.search import date_window, parse_duration, parse_price_range
from portal.models import Tour, TourDifficulty, TourStatus

KEDARNATH = {"name": "Kedarnath", "state": "Uttarakhand", "region": "north-india"}


def _tour(db, title, status=TourStatus.PUBLISHED, **fields):
    start = datetime.utcnow().replace(microsecond=0) + timedelta(days=60)
    values = dict(
        title=title, description=f"{title} itinerary", short_description=title,
        duration_days=12, duration_nights=11, price_adult=25000, price_child=12000,
        start_date=start, end_date=start + timedelta(days=11), max_participants=20, status=status,
    )
    values.update(fields)
    tour = Tour(**values)
    db.add(tour)
    db.commit()
    db.refresh(tour)
    return tour


@pytest.fixture
def char_dham(db):
    return _tour(db, "Char Dham Yatra", difficulty=TourDifficulty.CHALLENGING, featured=True,
                 current_participants=4)


def _global(client, headers, **params):
    response = client.get("/api/search/global", headers=headers, params=params)
    assert response.status_code == 200
    return response.json()


class TestGlobalFilters:
    def test_wildcards_in_query_match_literally(self, client, member_headers, published_tour):
        assert _global(client, member_headers, query="%%")["tours"] == []
        assert _global(client, member_headers, query="__")["tours"] == []
        assert len(_global(client, member_headers, query="temple")["tours"]) == 1

    def test_tour_filters(self, client, member_headers, published_tour):
        def tours(**filters):
            return [t["_id"] for t in _global(client, member_headers, query="temple", tab="tours", **filters)["tours"]]

        assert tours(category="pilgrimage") == [published_tour.id]
        assert tours(category="heritage") == []
        assert tours(priceRange="5000-15000") == [published_tour.id]
        assert tours(priceRange="20000+") == []
        assert tours(dateRange="upcoming") == [published_tour.id]
        assert tours(status="draft") == []

    def test_status_narrows_bookings(self, client, member_headers, published_tour):
        client.post("/api/bookings", headers=member_headers,
                    json={"tourId": published_tour.id, "participants": [participant("Ravi")]})

        interested = _global(client, member_headers, query="ravi", tab="bookings", status="interested")
        assert len(interested["bookings"]) == 1
        assert _global(client, member_headers, query="ravi", tab="bookings", status="cancelled")["bookings"] == []

    def test_bad_filters_rejected(self, client, member_headers):
        price = client.get("/api/search/global", headers=member_headers,
                           params={"query": "temple", "priceRange": "cheap"})
        assert price.status_code == 400
        assert price.json()["message"] == "Invalid price range: cheap"

        dates = client.get("/api/search/global", headers=member_headers,
                           params={"query": "temple", "dateRange": "someday"})
        assert dates.status_code == 400


class TestTourSearch:
    def test_published_only_featured_first(self, client, db, published_tour, char_dham):
        _tour(db, "Draft Temple Trip", status=TourStatus.DRAFT)
        result = client.get("/api/search/tours").json()
        assert [t["title"] for t in result["tours"]] == ["Char Dham Yatra", "South India Temple Circuit"]
        assert result["tours"][0]["availableSpots"] == 16
        assert result["tours"][0]["isUpcoming"] is True

    def test_filters_and_sorting(self, client, published_tour, char_dham):
        def titles(**params):
            return [t["title"] for t in client.get("/api/search/tours", params=params).json()["tours"]]

        assert titles(sortBy="price-low") == ["South India Temple Circuit", "Char Dham Yatra"]
        assert titles(sortBy="popularity") == ["Char Dham Yatra", "South India Temple Circuit"]
        assert titles(priceRange="20000+") == ["Char Dham Yatra"]
        assert titles(duration="5-8") == ["South India Temple Circuit"]
        assert titles(duration="10+") == ["Char Dham Yatra"]
        assert titles(difficulty="challenging") == ["Char Dham Yatra"]
        assert titles(query="tirupati") == ["South India Temple Circuit"]

    def test_pagination(self, client, published_tour, char_dham):
        result = client.get("/api/search/tours", params={"page": 2, "limit": 1}).json()
        assert result["pagination"] == {
            "currentPage": 2, "totalPages": 2, "totalCount": 2, "hasNext": False, "hasPrev": True,
        }
        assert [t["title"] for t in result["tours"]] == ["South India Temple Circuit"]

    def test_unknown_sort_or_duration(self, client):
        assert client.get("/api/search/tours", params={"sortBy": "random"}).status_code == 400
        assert client.get("/api/search/tours", params={"duration": "long"}).status_code == 400


class TestSuggestions:
    def test_tours_and_destinations(self, client, admin_headers, published_tour):
        client.post("/api/destinations", headers=admin_headers, json=KEDARNATH)

        tours = client.get("/api/search/suggestions", params={"query": "temple"}).json()["suggestions"]
        assert tours == [{"type": "tour", "text": "South India Temple Circuit", "category": "pilgrimage",
                          "id": published_tour.id}]

        places = client.get("/api/search/suggestions", params={"query": "kedar"}).json()["suggestions"]
        assert [(s["type"], s["text"], s["location"]) for s in places] == [
            ("destination", "Kedarnath", "Uttarakhand, India"),
        ]

    def test_short_query(self, client):
        assert client.get("/api/search/suggestions", params={"query": "k"}).json() == {"suggestions": []}


class TestSearchAnalytics:
    def test_counts_come_from_logged_searches(self, client, admin_headers, member_headers, published_tour):
        for term in ("temple", "Temple", "temple", "zzzz", "t"):
            client.get("/api/search/global", headers=member_headers, params={"query": term})
        client.get("/api/search/global", headers=admin_headers, params={"query": "temple", "tab": "tours"})

        stats = client.get("/api/search/analytics", headers=admin_headers).json()
        assert stats["totalSearches"] == 5
        assert stats["popularTerms"][0] == {"term": "temple", "count": 4}
        assert stats["searchCategories"]["all"] == 4
        assert stats["searchCategories"]["tours"] == 1
        assert stats["noResultsQueries"] == ["zzzz"]

    def test_admin_only(self, client, member_headers):
        assert client.get("/api/search/analytics", headers=member_headers).status_code == 403


class TestParsers:
    def test_price_range(self):
        assert parse_price_range("5000-15000") == (5000, 15000)
        assert parse_price_range("20000+") == (20000, None)

    def test_duration(self):
        assert parse_duration("3-5") == (3, 5)
        assert parse_duration("7+") == (7, None)
        assert parse_duration("4") == (4, 4)

    def test_date_windows_roll_over_the_year(self):
        december = datetime(2030, 12, 15)
        assert date_window("this-month", december) == (datetime(2030, 12, 1), datetime(2031, 1, 1))
        assert date_window("next-month", december) == (datetime(2031, 1, 1), datetime(2031, 2, 1))
        assert date_window("this-year", december) == (datetime(2030, 1, 1), datetime(2031, 1, 1))
        with pytest.raises(ValueError):
            date_window("someday", december)
