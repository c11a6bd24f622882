from datetime import datetime
from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import AliasChoices, Field
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel, UtcDateTime
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import User
from portal.services.export_service import data_exporter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/export", tags=["export"])


class DateRange(CamelModel):
    start: Optional[UtcDateTime] = None
    end: Optional[UtcDateTime] = None


class ExportFilters(CamelModel):
    date_range: Optional[DateRange] = None
    status: Optional[str] = None
    category: Optional[str] = None


class ExportRequest(CamelModel):
    type: Literal["tours", "bookings", "expenses", "users", "members", "parts", "destinations", "analytics"] = Field(
        validation_alias=AliasChoices("type", "dataType", "data_type"),
    )
    format: Literal["csv", "excel", "pdf"]
    filters: ExportFilters = ExportFilters()


@router.post("/data")
def export_data(payload: ExportRequest, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    try:
        filters = payload.filters.model_dump(exclude_none=True)
        export = data_exporter.export(db, payload.type, payload.format, filters)

        logger.info(f"📤 Exported {export.rows} {payload.type} as {payload.format} for {admin.email}")
        return Response(
            content=export.content,
            media_type=export.media_type,
            headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
        )

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Export failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Export failed")


@router.get("/stats")
def export_stats(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    """Exportable data types with their current row counts"""
    try:
        stats = data_exporter.stats(db)
        stats["generatedAt"] = datetime.utcnow().isoformat() + "Z"
        return stats
    except Exception as e:
        logger.error(f"❌ Export stats failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch export statistics")
