"""
Admin dashboard, analytics and financial report aggregates
"""
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from portal.models import (
    Booking, BookingStatus, Expense, PaymentStatus, REVENUE_STATUSES, Tour, TourStatus, User, UserRole,
)


def _money(value) -> float:
    return round(float(value or 0), 2)


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def last_months(count: int = 12, now: Optional[datetime] = None) -> List[Tuple[int, int]]:
    """(year, month) pairs, oldest first, ending with the current month."""
    moment = now or datetime.utcnow()
    year, month = moment.year, moment.month
    months = []
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


# ============= Dashboard =============

def admin_dashboard(db: Session) -> Dict[str, Any]:
    total_users = db.query(func.count(User.id)).filter(User.role == UserRole.MEMBER).scalar() or 0
    total_tours = db.query(func.count(Tour.id)).scalar() or 0
    total_bookings = db.query(func.count(Booking.id)).scalar() or 0
    total_revenue = (
        db.query(func.coalesce(func.sum(Booking.total), 0))
        .filter(Booking.status.in_(REVENUE_STATUSES))
        .scalar()
    )
    pending_expenses = db.query(func.count(Expense.id)).filter(Expense.is_approved.is_(False)).scalar() or 0

    recent_bookings = db.query(Booking).order_by(Booking.created_at.desc()).limit(5).all()

    monthly: Dict[Tuple[int, int], Dict[str, Any]] = defaultdict(lambda: {"count": 0, "revenue": 0.0})
    for created_at, total in db.query(Booking.created_at, Booking.total).all():
        bucket = monthly[(created_at.year, created_at.month)]
        bucket["count"] += 1
        bucket["revenue"] += total or 0
    monthly_bookings = [
        {"_id": {"year": year, "month": month}, "count": b["count"], "revenue": _money(b["revenue"])}
        for (year, month), b in sorted(monthly.items(), reverse=True)[:12]
    ]

    tour_statistics = [
        {"_id": status.value if status else None, "count": count}
        for status, count in db.query(Tour.status, func.count(Tour.id)).group_by(Tour.status).all()
    ]

    return {
        "statistics": {
            "totalUsers": total_users,
            "totalTours": total_tours,
            "totalBookings": total_bookings,
            "totalRevenue": _money(total_revenue),
            "pendingExpenses": pending_expenses,
        },
        "recentBookings": recent_bookings,
        "monthlyBookings": monthly_bookings,
        "tourStatistics": tour_statistics,
    }


def admin_analytics(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    moment = now or datetime.utcnow()

    def count_bookings(*criteria) -> int:
        return db.query(func.count(Booking.id)).filter(*criteria).scalar() or 0

    total_tours = db.query(func.count(Tour.id)).scalar() or 0
    active_tours = db.query(func.count(Tour.id)).filter(Tour.status == TourStatus.PUBLISHED).scalar() or 0
    total_bookings = count_bookings()
    confirmed = count_bookings(Booking.status == BookingStatus.CONFIRMED)
    settled = count_bookings(Booking.status == BookingStatus.PAID)
    paid = count_bookings(Booking.payment_status == PaymentStatus.PAID)
    pending_approvals = count_bookings(
        or_(Booking.status == BookingStatus.INTERESTED, Booking.payment_status == PaymentStatus.PENDING)
    )
    recent = count_bookings(Booking.created_at >= moment - timedelta(days=30))
    pending_expenses = db.query(func.count(Expense.id)).filter(Expense.is_approved.is_(False)).scalar() or 0

    return {
        "totalTours": total_tours,
        "activeTours": active_tours,
        "activeTourPercent": _percent(active_tours, total_tours),
        "totalBookings": total_bookings,
        "confirmedBookings": confirmed,
        "paidBookings": paid,
        "pendingApprovals": pending_approvals,
        "pendingExpenses": pending_expenses,
        "confirmationRate": _percent(confirmed + settled, total_bookings),
        "newBookingsLast30Days": recent,
        "monthlyGrowth": _percent(recent, total_bookings),
    }


# ============= Financial report =============

def financial_report(db: Session, date_from: Optional[datetime] = None, date_to: Optional[datetime] = None,
                     tour_id: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Revenue is the total of confirmed and paid bookings; profit is revenue minus all expenses."""
    bookings_q = db.query(Booking)
    expenses_q = db.query(Expense)
    if tour_id:
        bookings_q = bookings_q.filter(Booking.tour_id == tour_id)
        expenses_q = expenses_q.filter(Expense.tour_id == tour_id)
    if date_from:
        bookings_q = bookings_q.filter(Booking.created_at >= date_from)
        expenses_q = expenses_q.filter(Expense.expense_date >= date_from)
    if date_to:
        bookings_q = bookings_q.filter(Booking.created_at <= date_to)
        expenses_q = expenses_q.filter(Expense.expense_date <= date_to)

    bookings: List[Booking] = bookings_q.all()
    expenses: List[Expense] = expenses_q.all()

    revenue_bookings = sum(1 for b in bookings if b.status in REVENUE_STATUSES)
    revenue = sum(b.total for b in bookings if b.status in REVENUE_STATUSES)
    expense_total = sum(e.amount for e in expenses)
    profit = revenue - expense_total

    by_status: Dict[str, int] = {status.value: 0 for status in BookingStatus}
    for b in bookings:
        by_status[b.status.value] += 1

    # per tour
    per_tour: Dict[str, Dict[str, Any]] = {}

    def tour_row(tour: Tour) -> Dict[str, Any]:
        return per_tour.setdefault(tour.id, {
            "tourId": tour.id, "title": tour.title, "bookings": 0, "confirmedBookings": 0,
            "participants": 0, "revenue": 0.0, "expenses": 0.0,
        })

    for b in bookings:
        row = tour_row(b.tour)
        row["bookings"] += 1
        if b.status in REVENUE_STATUSES:
            row["confirmedBookings"] += 1
            row["revenue"] += b.total
        if b.holds_seats:
            row["participants"] += b.total_participants
    for e in expenses:
        if e.tour is not None:
            tour_row(e.tour)["expenses"] += e.amount

    tour_analysis = []
    for row in per_tour.values():
        row["revenue"] = _money(row["revenue"])
        row["expenses"] = _money(row["expenses"])
        row["profit"] = _money(row["revenue"] - row["expenses"])
        tour_analysis.append(row)
    tour_analysis.sort(key=lambda r: r["revenue"], reverse=True)

    # expense categories
    categories: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"amount": 0.0, "count": 0})
    for e in expenses:
        cat = categories[e.category.value]
        cat["amount"] += e.amount
        cat["count"] += 1
    category_breakdown = sorted(
        (
            {"category": name, "amount": _money(c["amount"]), "count": c["count"],
             "percentage": _percent(c["amount"], expense_total)}
            for name, c in categories.items()
        ),
        key=lambda r: r["amount"],
        reverse=True,
    )

    # monthly trend
    months = last_months(12, now)
    trend = {key: {"revenue": 0.0, "expenses": 0.0, "bookings": 0} for key in months}
    for b in bookings:
        key = (b.created_at.year, b.created_at.month)
        if key in trend:
            trend[key]["bookings"] += 1
            if b.status in REVENUE_STATUSES:
                trend[key]["revenue"] += b.total
    for e in expenses:
        key = (e.expense_date.year, e.expense_date.month)
        if key in trend:
            trend[key]["expenses"] += e.amount
    monthly_trends = [
        {"year": year, "month": month, "label": f"{year}-{month:02d}",
         "revenue": _money(t["revenue"]), "expenses": _money(t["expenses"]),
         "profit": _money(t["revenue"] - t["expenses"]), "bookings": t["bookings"]}
        for (year, month), t in ((key, trend[key]) for key in months)
    ]

    return {
        "summary": {
            "totalRevenue": _money(revenue),
            "totalExpenses": _money(expense_total),
            "netProfit": _money(profit),
            "profitMargin": _percent(profit, revenue),
            "totalBookings": len(bookings),
            "totalParticipants": sum(b.total_participants for b in bookings if b.holds_seats),
            "averageBookingValue": _money(revenue / revenue_bookings) if revenue_bookings else 0.0,
        },
        "bookingsByStatus": by_status,
        "tourAnalysis": tour_analysis,
        "expenseCategories": category_breakdown,
        "monthlyTrends": monthly_trends,
    }
