from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import AliasChoices, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel, UtcDateTime, naive_utc, page_offset, total_pages
from portal.api.v1.serializers import expense_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user, get_current_user
from portal.models import CATEGORY_LABELS, Expense, ExpenseCategory, PaymentMethod, Tour, User
from portal.queue.tasks.notifications import enqueue, send_expense_status_update
from portal.services import expense_reports

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/expenses", tags=["expenses"])

_TOUR_ALIASES = AliasChoices("tourId", "tour", "tour_id")


# ============= Request models =============

class ExpenseUpdate(CamelModel):
    tour_id: Optional[str] = Field(default=None, validation_alias=_TOUR_ALIASES)
    title: Optional[str] = Field(default=None, max_length=255)
    category: Optional[ExpenseCategory] = None
    subcategory: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    expense_date: Optional[UtcDateTime] = None
    location: Optional[Dict[str, Any]] = None
    vendor: Optional[Dict[str, Any]] = None
    payment_method: Optional[PaymentMethod] = None
    receipt_number: Optional[str] = None
    participants: Optional[int] = Field(default=None, ge=1)
    is_reimbursable: Optional[bool] = None
    notes: Optional[str] = None
    attachments: Optional[List[Any]] = None
    tags: Optional[List[str]] = None


class ExpenseCreate(ExpenseUpdate):
    category: ExpenseCategory
    description: str = Field(min_length=1)
    amount: float = Field(ge=0)
    expense_date: UtcDateTime


class AdminExpenseCreate(ExpenseCreate):
    title: str = Field(min_length=1, max_length=255)
    amount: float = Field(gt=0)


class AdminExpenseUpdate(ExpenseUpdate):
    is_approved: Optional[bool] = None
    rejection_reason: Optional[str] = None


class ApprovalChange(CamelModel):
    is_approved: bool
    rejection_reason: Optional[str] = None


class BulkIds(CamelModel):
    expense_ids: List[str] = []


# ============= Helpers =============

def _check_tour(db: Session, tour_id: Optional[str]) -> None:
    if tour_id and db.get(Tour, tour_id) is None:
        raise HTTPException(status_code=404, detail="Tour not found")


def _get_expense(db: Session, expense_id: str) -> Expense:
    expense = db.get(Expense, expense_id)
    if expense is None:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


def _visible_expense(db: Session, expense_id: str, user: User) -> Expense:
    expense = db.get(Expense, expense_id)
    if expense is None or (not user.is_admin and expense.added_by != user.id):
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


def _apply(expense: Expense, data: Dict[str, Any]) -> None:
    for key, value in data.items():
        if value is None and key not in ("tour_id", "subcategory", "notes", "receipt_number", "participants"):
            continue
        setattr(expense, key, value)
    expense.recompute_per_person_cost()


def _date_range(start: Optional[datetime], end: Optional[datetime]) -> Dict[str, Optional[datetime]]:
    return {
        "start": naive_utc(start) if start else None,
        "end": naive_utc(end) if end else None,
    }


def _require_ids(payload: Optional[BulkIds]) -> List[str]:
    if payload is None or not payload.expense_ids:
        raise HTTPException(status_code=400, detail="Expense IDs array is required")
    return payload.expense_ids


def _paged(query, page: int, limit: int) -> Dict[str, Any]:
    total = query.count()
    expenses = query.offset(page_offset(page, limit)).limit(limit).all()
    return {
        "expenses": [expense_to_dict(e) for e in expenses],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }


# ============= Catalogue & reports =============

@router.get("/categories")
def categories():
    return [
        {"value": category.value, "label": label, "icon": icon}
        for category, (label, icon) in CATEGORY_LABELS.items()
    ]


@router.get("/stats")
def stats(
    tour_id: Optional[str] = Query(None, alias="tourId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    return expense_reports.expense_stats(db, tour_id=tour_id, **_date_range(start_date, end_date))


@router.get("/reports/summary")
@router.get("/reports")
def reports(
    tour_id: Optional[str] = Query(None, alias="tourId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    return expense_reports.expense_report(db, tour_id=tour_id, **_date_range(start_date, end_date))


@router.get("/analytics/dashboard")
def analytics(days: int = Query(30, ge=1, le=3650), db: Session = Depends(get_db),
              admin: User = Depends(get_admin_user)):
    data = expense_reports.expense_analytics(db, days=days)
    data["recentActivity"] = [expense_to_dict(e) for e in data["recentActivity"]]
    return data


# ============= Bulk =============

@router.put("/bulk/approve")
def bulk_approve(payload: Optional[BulkIds] = Body(None), db: Session = Depends(get_db),
                 admin: User = Depends(get_admin_user)):
    ids = _require_ids(payload)
    pending = db.query(Expense).filter(Expense.id.in_(ids), Expense.is_approved.is_(False)).all()
    for expense in pending:
        expense.approve(admin.id)
    db.commit()

    for expense in pending:
        enqueue(send_expense_status_update, expense.id, "approved")
    return {"message": f"{len(pending)} expenses approved successfully", "modifiedCount": len(pending)}


@router.delete("/bulk/delete")
def bulk_delete(payload: Optional[BulkIds] = Body(None), db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    ids = _require_ids(payload)
    deleted = db.query(Expense).filter(Expense.id.in_(ids)).delete(synchronize_session=False)
    db.commit()
    logger.info(f"🗑️ {deleted} expenses deleted by {admin.email}")
    return {"message": f"{deleted} expenses deleted successfully", "deletedCount": deleted}


# ============= Admin =============

@router.get("/admin")
def admin_list(
    category: Optional[ExpenseCategory] = None,
    tour: Optional[str] = None,
    is_approved: Optional[bool] = Query(None, alias="isApproved"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Expense)
    if category:
        query = query.filter(Expense.category == category)
    if tour:
        query = query.filter(Expense.tour_id == tour)
    if is_approved is not None:
        query = query.filter(Expense.is_approved.is_(is_approved))
    if start_date:
        query = query.filter(Expense.expense_date >= naive_utc(start_date))
    if end_date:
        query = query.filter(Expense.expense_date <= naive_utc(end_date))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Expense.title.ilike(pattern), Expense.description.ilike(pattern)))
    return _paged(query.order_by(Expense.created_at.desc()), page, limit)


@router.post("/admin/create", status_code=201)
def admin_create(payload: AdminExpenseCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    _check_tour(db, payload.tour_id)
    expense = Expense(added_by=admin.id)
    _apply(expense, payload.model_dump(exclude_unset=True))
    expense.approve(admin.id)
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense_to_dict(expense)


@router.put("/admin/{expense_id}")
def admin_update(expense_id: str, payload: AdminExpenseUpdate, db: Session = Depends(get_db),
                 admin: User = Depends(get_admin_user)):
    expense = _get_expense(db, expense_id)
    data = payload.model_dump(exclude_unset=True)
    _check_tour(db, data.get("tour_id"))

    approval = data.pop("is_approved", None)
    _apply(expense, data)
    if approval is True and not expense.is_approved:
        expense.approve(admin.id)
    elif approval is False:
        expense.is_approved = False
    expense.updated_by = admin.id
    db.commit()
    db.refresh(expense)
    return expense_to_dict(expense)


@router.delete("/admin/{expense_id}")
def admin_delete(expense_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    expense = _get_expense(db, expense_id)
    db.delete(expense)
    db.commit()
    return {"message": "Expense deleted successfully"}


@router.patch("/admin/{expense_id}/approval")
def admin_set_approval(expense_id: str, payload: ApprovalChange, db: Session = Depends(get_db),
                       admin: User = Depends(get_admin_user)):
    expense = _get_expense(db, expense_id)
    if payload.is_approved:
        expense.approve(admin.id)
    else:
        expense.is_approved = False
        expense.approved_by = admin.id
        expense.approval_date = datetime.utcnow()
        if payload.rejection_reason and payload.rejection_reason.strip():
            expense.rejection_reason = payload.rejection_reason.strip()
    db.commit()
    db.refresh(expense)

    enqueue(send_expense_status_update, expense.id, "approved" if payload.is_approved else "rejected")
    return expense_to_dict(expense)


# ============= Member =============

@router.get("")
def list_expenses(
    tour_id: Optional[str] = Query(None, alias="tourId"),
    category: Optional[ExpenseCategory] = None,
    is_approved: Optional[bool] = Query(None, alias="isApproved"),
    added_by: Optional[str] = Query(None, alias="addedBy"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Expense)
    if not user.is_admin:
        query = query.filter(Expense.added_by == user.id)
    elif added_by:
        query = query.filter(Expense.added_by == added_by)
    if tour_id:
        query = query.filter(Expense.tour_id == tour_id)
    if category:
        query = query.filter(Expense.category == category)
    if is_approved is not None:
        query = query.filter(Expense.is_approved.is_(is_approved))
    if start_date:
        query = query.filter(Expense.expense_date >= naive_utc(start_date))
    if end_date:
        query = query.filter(Expense.expense_date <= naive_utc(end_date))
    return _paged(query.order_by(Expense.expense_date.desc()), page, limit)


@router.post("", status_code=201)
def create_expense(payload: ExpenseCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _check_tour(db, payload.tour_id)
    try:
        expense = Expense(added_by=user.id)
        _apply(expense, payload.model_dump(exclude_unset=True))
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return {"message": "Expense added successfully", "expense": expense_to_dict(expense)}

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Expense creation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during expense creation")


@router.get("/{expense_id}")
def get_expense(expense_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return expense_to_dict(_visible_expense(db, expense_id, user))


@router.put("/{expense_id}")
def update_expense(expense_id: str, payload: ExpenseUpdate, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    expense = _visible_expense(db, expense_id, user)
    data = payload.model_dump(exclude_unset=True)
    _check_tour(db, data.get("tour_id"))
    _apply(expense, data)
    expense.updated_by = user.id
    db.commit()
    db.refresh(expense)
    return {"message": "Expense updated successfully", "expense": expense_to_dict(expense)}


@router.delete("/{expense_id}")
def delete_expense(expense_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    expense = _visible_expense(db, expense_id, user)
    db.delete(expense)
    db.commit()
    return {"message": "Expense deleted successfully"}


@router.put("/{expense_id}/approve")
def approve_expense(expense_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    expense = _get_expense(db, expense_id)
    expense.approve(admin.id)
    db.commit()
    db.refresh(expense)

    enqueue(send_expense_status_update, expense.id, "approved")
    return {"message": "Expense approved successfully", "expense": expense_to_dict(expense)}
