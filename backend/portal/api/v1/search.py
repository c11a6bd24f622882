from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from portal.api.v1.common import page_offset, total_pages
from portal.api.v1.serializers import booking_to_dict, destination_to_dict, expense_to_dict, tour_to_dict, user_brief
from portal.core.database import get_db
from portal.core.security import get_admin_user, get_current_user
from portal.models import (
    Booking, BookingParticipant, BookingStatus, Destination, Expense, ExpenseCategory, SearchLog, Tour,
    TourCategory, TourDestination, TourDifficulty, TourStatus, User,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/search", tags=["search"])

TABS = ("all", "tours", "destinations", "users", "bookings", "expenses")
DATE_RANGES = ("upcoming", "this-month", "next-month", "this-year")
SORTS = {
    "price-low": (Tour.price_adult.asc(),),
    "price-high": (Tour.price_adult.desc(),),
    "duration": (Tour.duration_days.asc(),),
    "date": (Tour.start_date.asc(),),
    "popularity": (Tour.current_participants.desc(),),
    "featured": (Tour.featured.desc(), Tour.created_at.desc()),
}
EXPENSE_STATUSES = {"approved": True, "pending": False}


def _empty():
    return {"tours": [], "destinations": [], "users": [], "bookings": [], "expenses": []}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _like(column, pattern: str):
    return column.ilike(pattern, escape="\\")


def _enum_value(enum_cls, value: Optional[str]):
    """Enum member for value, or None when value is not one of its values"""
    try:
        return enum_cls(value)
    except ValueError:
        return None


def parse_price_range(value: str) -> Tuple[float, Optional[float]]:
    """Parses 5000-15000 or 20000+ into (min, max); max is None when open ended"""
    try:
        if value.endswith("+"):
            return float(value[:-1]), None
        low, high = value.split("-")
        return float(low), float(high)
    except ValueError:
        raise ValueError(f"Invalid price range: {value}")


def parse_duration(value: str) -> Tuple[int, Optional[int]]:
    """Parses 3-5, 7+ or 4 into (min, max) days"""
    try:
        if value.endswith("+"):
            return int(value[:-1]), None
        if "-" in value:
            low, high = value.split("-")
            return int(low), int(high)
        return int(value), int(value)
    except ValueError:
        raise ValueError(f"Invalid duration: {value}")


def date_window(value: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of a named tour start-date window"""
    now = now or datetime.utcnow()
    month_start = datetime(now.year, now.month, 1)

    def next_month(d: datetime) -> datetime:
        return datetime(d.year + 1, 1, 1) if d.month == 12 else datetime(d.year, d.month + 1, 1)

    if value == "upcoming":
        return now, now + timedelta(days=365)
    if value == "this-month":
        return month_start, next_month(month_start)
    if value == "next-month":
        start = next_month(month_start)
        return start, next_month(start)
    if value == "this-year":
        return datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1)
    raise ValueError(f"Unknown date range: {value}")


def _filter_tours(query, category: Optional[str] = None, status: Optional[str] = None,
                  price_range: Optional[str] = None, date_range: Optional[str] = None):
    """Tour filters shared by the global and tour searches; returns None when nothing can match."""
    if category:
        tour_category = _enum_value(TourCategory, category)
        if tour_category is None:
            return None
        query = query.filter(Tour.category == tour_category)
    if status:
        tour_status = _enum_value(TourStatus, status)
        if tour_status is None:
            return None
        query = query.filter(Tour.status == tour_status)
    if price_range:
        low, high = parse_price_range(price_range)
        query = query.filter(Tour.price_adult >= low)
        if high is not None:
            query = query.filter(Tour.price_adult <= high)
    if date_range:
        start, end = date_window(date_range)
        query = query.filter(Tour.start_date >= start, Tour.start_date < end)
    return query


def _tour_text_match(pattern: str):
    return or_(
        _like(Tour.title, pattern),
        _like(Tour.description, pattern),
        Tour.destinations.any(_like(TourDestination.name, pattern)),
    )


@router.get("/global")
def global_search(
    query: Optional[str] = None,
    tab: str = Query("all"),
    category: Optional[str] = None,
    status: Optional[str] = None,
    price_range: Optional[str] = Query(None, alias="priceRange"),
    date_range: Optional[str] = Query(None, alias="dateRange"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Case-insensitive search across the portal. Members only see their own bookings and expenses.

    category narrows tours and expenses, status narrows tours, bookings and expenses
    (approved/pending), priceRange and dateRange narrow tours only. A filter value
    outside a group's vocabulary leaves that group empty.
    """
    term = (query or "").strip()
    if len(term) < 2:
        return _empty()
    if tab not in TABS:
        raise HTTPException(status_code=400, detail=f"Unknown tab: {tab}")
    if date_range and date_range not in DATE_RANGES:
        raise HTTPException(status_code=400, detail=f"Unknown date range: {date_range}")

    pattern = _like_pattern(term)
    results = _empty()

    def wanted(name: str) -> bool:
        return tab in ("all", name)

    def limit(name: str) -> int:
        return 50 if tab == name else 10

    try:
        if wanted("tours"):
            tours = _filter_tours(db.query(Tour).filter(_tour_text_match(pattern)),
                                  category, status, price_range, date_range)
            if tours is not None:
                results["tours"] = [
                    tour_to_dict(t)
                    for t in tours.order_by(Tour.featured.desc(), Tour.created_at.desc()).limit(limit("tours")).all()
                ]

        if wanted("destinations"):
            destinations = (
                db.query(Destination)
                .filter(Destination.is_active.is_(True), or_(
                    _like(Destination.name, pattern),
                    _like(Destination.description, pattern),
                    _like(Destination.state, pattern),
                ))
                .order_by(Destination.name)
                .limit(limit("destinations"))
                .all()
            )
            results["destinations"] = [destination_to_dict(d) for d in destinations]

        if user.is_admin and wanted("users"):
            users = (
                db.query(User)
                .filter(or_(
                    _like(User.first_name, pattern),
                    _like(User.last_name, pattern),
                    _like(User.email, pattern),
                    _like(User.phone_number, pattern),
                ))
                .order_by(User.created_at.desc())
                .limit(limit("users"))
                .all()
            )
            results["users"] = [user_brief(u) for u in users]

        booking_status = _enum_value(BookingStatus, status) if status else None
        if wanted("bookings") and not (status and booking_status is None):
            bookings = db.query(Booking).filter(or_(
                _like(Booking.booking_ref, pattern),
                Booking.tour.has(_like(Tour.title, pattern)),
                Booking.participants.any(_like(BookingParticipant.name, pattern)),
            ))
            if booking_status is not None:
                bookings = bookings.filter(Booking.status == booking_status)
            if not user.is_admin:
                bookings = bookings.filter(Booking.user_id == user.id)
            results["bookings"] = [
                booking_to_dict(b)
                for b in bookings.order_by(Booking.created_at.desc()).limit(limit("bookings")).all()
            ]

        expense_category = _enum_value(ExpenseCategory, category) if category else None
        expense_filtered_out = (category and expense_category is None) or (status and status not in EXPENSE_STATUSES)
        if wanted("expenses") and not expense_filtered_out:
            expenses = db.query(Expense).filter(or_(
                _like(Expense.title, pattern),
                _like(Expense.description, pattern),
            ))
            if expense_category is not None:
                expenses = expenses.filter(Expense.category == expense_category)
            if status:
                expenses = expenses.filter(Expense.is_approved.is_(EXPENSE_STATUSES[status]))
            if not user.is_admin:
                expenses = expenses.filter(Expense.added_by == user.id)
            results["expenses"] = [
                expense_to_dict(e)
                for e in expenses.order_by(Expense.expense_date.desc()).limit(limit("expenses")).all()
            ]

        found = sum(len(group) for group in results.values())
        db.add(SearchLog(term=term.lower()[:200], tab=tab, result_count=found, user_id=user.id))
        db.commit()
        return results

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Global search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Search failed")


@router.get("/tours")
def search_tours(
    query: Optional[str] = None,
    category: Optional[TourCategory] = None,
    price_range: Optional[str] = Query(None, alias="priceRange"),
    duration: Optional[str] = None,
    difficulty: Optional[TourDifficulty] = None,
    sort_by: str = Query("featured", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Published tours with filters, sorting and pagination"""
    if sort_by not in SORTS:
        raise HTTPException(status_code=400, detail=f"Unknown sort: {sort_by}")

    try:
        tours = db.query(Tour).filter(Tour.status == TourStatus.PUBLISHED)
        term = (query or "").strip()
        if len(term) >= 2:
            tours = tours.filter(_tour_text_match(_like_pattern(term)))
        tours = _filter_tours(tours, category.value if category else None, price_range=price_range)
        if duration:
            low, high = parse_duration(duration)
            tours = tours.filter(Tour.duration_days >= low)
            if high is not None:
                tours = tours.filter(Tour.duration_days <= high)
        if difficulty:
            tours = tours.filter(Tour.difficulty == difficulty)

        total = tours.count()
        rows = tours.order_by(*SORTS[sort_by]).offset(page_offset(page, limit)).limit(limit).all()
        now = datetime.utcnow()

        return {
            "tours": [
                {**tour_to_dict(t), "availableSpots": t.available_seats, "isUpcoming": t.start_date > now}
                for t in rows
            ],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages(total, limit),
                "totalCount": total,
                "hasNext": page * limit < total,
                "hasPrev": page > 1,
            },
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Tour search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Tour search failed")


@router.get("/suggestions")
def search_suggestions(query: Optional[str] = None, db: Session = Depends(get_db)):
    term = (query or "").strip()
    if len(term) < 2:
        return {"suggestions": []}

    pattern = _like_pattern(term)
    try:
        tours = (
            db.query(Tour)
            .filter(Tour.status == TourStatus.PUBLISHED, _like(Tour.title, pattern))
            .order_by(Tour.featured.desc(), Tour.title)
            .limit(5)
            .all()
        )
        destinations = (
            db.query(Destination)
            .filter(Destination.is_active.is_(True), _like(Destination.name, pattern))
            .order_by(Destination.name)
            .limit(5)
            .all()
        )
        suggestions = [
            {"type": "tour", "text": t.title, "category": t.category.value, "id": t.id} for t in tours
        ] + [
            {"type": "destination", "text": d.name, "location": f"{d.state}, India", "id": d.id}
            for d in destinations
        ]
        return {"suggestions": suggestions[:10]}

    except Exception as e:
        logger.error(f"❌ Search suggestions failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get suggestions")


@router.get("/analytics")
def search_analytics(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    """Counts drawn from the global search log"""
    try:
        total = db.query(func.count(SearchLog.id)).scalar() or 0

        hits = func.count(SearchLog.id).label("hits")
        popular = (
            db.query(SearchLog.term, hits)
            .group_by(SearchLog.term)
            .order_by(hits.desc(), SearchLog.term)
            .limit(5)
            .all()
        )

        by_tab = dict(db.query(SearchLog.tab, func.count(SearchLog.id)).group_by(SearchLog.tab).all())

        last_seen = func.max(SearchLog.created_at).label("last_seen")
        no_results = (
            db.query(SearchLog.term, last_seen)
            .filter(SearchLog.result_count == 0)
            .group_by(SearchLog.term)
            .order_by(last_seen.desc())
            .limit(10)
            .all()
        )

        return {
            "totalSearches": total,
            "popularTerms": [{"term": term, "count": count} for term, count in popular],
            "searchCategories": {tab: by_tab.get(tab, 0) for tab in TABS},
            "noResultsQueries": [term for term, _ in no_results],
        }

    except Exception as e:
        logger.error(f"❌ Search analytics failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get search analytics")
