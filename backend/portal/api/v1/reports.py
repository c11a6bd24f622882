from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from portal.api.v1.common import naive_utc
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import User
from portal.services.reports import financial_report

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/financial")
def financial(
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    tour_id: Optional[str] = Query(None, alias="tourId"),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    if date_from and date_to and naive_utc(date_to) < naive_utc(date_from):
        raise HTTPException(status_code=400, detail="dateTo must not be before dateFrom")

    try:
        return financial_report(
            db,
            date_from=naive_utc(date_from) if date_from else None,
            date_to=naive_utc(date_to) if date_to else None,
            tour_id=tour_id,
        )
    except Exception as e:
        logger.error(f"❌ Financial report failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error while generating report")
