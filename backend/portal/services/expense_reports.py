"""
Expense aggregates for the admin stats, reports and analytics views
"""
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, desc, func
from sqlalchemy.orm import Query, Session

from portal.models import Expense, Tour


def _value(v):
    return v.value if hasattr(v, "value") else v


def _money(value) -> float:
    return round(float(value or 0), 2)


def filtered_expenses(db: Session, tour_id: Optional[str] = None, start: Optional[datetime] = None,
                      end: Optional[datetime] = None) -> Query:
    query = db.query(Expense)
    if tour_id:
        query = query.filter(Expense.tour_id == tour_id)
    if start:
        query = query.filter(Expense.expense_date >= start)
    if end:
        query = query.filter(Expense.expense_date <= end)
    return query


_approved_amount = func.coalesce(func.sum(case((Expense.is_approved.is_(True), Expense.amount), else_=0)), 0)
_pending_amount = func.coalesce(func.sum(case((Expense.is_approved.is_(False), Expense.amount), else_=0)), 0)
_approved_count = func.coalesce(func.sum(case((Expense.is_approved.is_(True), 1), else_=0)), 0)
_pending_count = func.coalesce(func.sum(case((Expense.is_approved.is_(False), 1), else_=0)), 0)


def expense_stats(db: Session, **filters) -> Dict[str, Any]:
    base = filtered_expenses(db, **filters)
    total, count, approved, pending, average = base.with_entities(
        func.coalesce(func.sum(Expense.amount), 0),
        func.count(Expense.id),
        _approved_amount,
        _pending_amount,
        func.avg(Expense.amount),
    ).one()

    by_category = (
        base.with_entities(Expense.category, func.sum(Expense.amount), func.count(Expense.id))
        .group_by(Expense.category)
        .order_by(desc(func.sum(Expense.amount)))
        .all()
    )

    return {
        "summary": {
            "totalExpenses": _money(total),
            "totalCount": count,
            "approvedExpenses": _money(approved),
            "pendingExpenses": _money(pending),
            "avgExpense": _money(average),
        },
        "byCategory": [
            {"_id": _value(category), "total": _money(amount), "count": n}
            for category, amount, n in by_category
        ],
    }


def expense_report(db: Session, **filters) -> Dict[str, Any]:
    base = filtered_expenses(db, **filters)
    total, approved, pending, count, approved_count, pending_count = base.with_entities(
        func.coalesce(func.sum(Expense.amount), 0),
        _approved_amount,
        _pending_amount,
        func.count(Expense.id),
        _approved_count,
        _pending_count,
    ).one()

    categories = (
        base.with_entities(Expense.category, func.sum(Expense.amount), func.count(Expense.id), _approved_amount)
        .group_by(Expense.category)
        .order_by(desc(func.sum(Expense.amount)))
        .all()
    )

    tours = (
        base.join(Tour, Tour.id == Expense.tour_id)
        .with_entities(Tour.id, Tour.title, func.sum(Expense.amount), func.count(Expense.id))
        .group_by(Tour.id, Tour.title)
        .order_by(desc(func.sum(Expense.amount)))
        .all()
    )

    return {
        "summary": {
            "totalExpenses": _money(total),
            "totalApproved": _money(approved),
            "totalPending": _money(pending),
            "expenseCount": count,
            "approvedCount": int(approved_count),
            "pendingCount": int(pending_count),
        },
        "categoryBreakdown": [
            {"_id": _value(category), "total": _money(amount), "count": n, "approved": _money(ok)}
            for category, amount, n, ok in categories
        ],
        "tourBreakdown": [
            {"_id": tour_id, "tourTitle": title, "total": _money(amount), "count": n}
            for tour_id, title, amount, n in tours
        ],
    }


def expense_analytics(db: Session, days: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
    since = (now or datetime.utcnow()) - timedelta(days=days)
    window: List[Expense] = db.query(Expense).filter(Expense.expense_date >= since).all()

    monthly: Dict[tuple, Dict[str, Any]] = defaultdict(lambda: {"totalAmount": 0.0, "count": 0, "approvedAmount": 0.0})
    by_category: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"totalAmount": 0.0, "count": 0})
    for expense in window:
        bucket = monthly[(expense.expense_date.year, expense.expense_date.month)]
        bucket["totalAmount"] += expense.amount
        bucket["count"] += 1
        if expense.is_approved:
            bucket["approvedAmount"] += expense.amount

        cat = by_category[_value(expense.category)]
        cat["totalAmount"] += expense.amount
        cat["count"] += 1

    monthly_trends = [
        {"_id": {"year": year, "month": month},
         "totalAmount": _money(b["totalAmount"]), "count": b["count"], "approvedAmount": _money(b["approvedAmount"])}
        for (year, month), b in sorted(monthly.items())
    ]
    top_categories = sorted(
        (
            {"_id": name, "totalAmount": _money(c["totalAmount"]), "count": c["count"],
             "avgAmount": _money(c["totalAmount"] / c["count"])}
            for name, c in by_category.items()
        ),
        key=lambda row: row["totalAmount"],
        reverse=True,
    )[:10]

    recent = (
        db.query(Expense)
        .filter(Expense.created_at >= since)
        .order_by(Expense.created_at.desc())
        .limit(10)
        .all()
    )

    return {"monthlyTrends": monthly_trends, "topCategories": top_categories, "recentActivity": recent}
