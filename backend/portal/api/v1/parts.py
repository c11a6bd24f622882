from typing import Optional
import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import Field
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel
from portal.api.v1.serializers import part_to_dict
from portal.core.config import settings
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import Part, User
from portal.services.parts_import import parts_importer
from portal.services.roster_stats import parts_summary

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/parts", tags=["parts"])


class PartUpdate(CamelModel):
    section: Optional[str] = Field(default=None, min_length=1, max_length=20)
    section_description: Optional[str] = Field(default=None, max_length=255)
    member_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    no_of_persons: Optional[int] = Field(default=None, ge=0)
    sradam: Optional[str] = None
    notes: Optional[str] = None


class PartCreate(PartUpdate):
    section: str = Field(min_length=1, max_length=20)
    member_name: str = Field(min_length=1, max_length=200)


def _get_part(db: Session, part_id: str) -> Part:
    part = db.get(Part, part_id)
    if part is None:
        raise HTTPException(status_code=404, detail="Part entry not found")
    return part


@router.get("")
def list_parts(section: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Part)
    if section:
        query = query.filter(Part.section == section.upper())
    parts = query.order_by(Part.section, Part.created_at).all()
    return [part_to_dict(p) for p in parts]


@router.get("/stats")
def parts_stats(db: Session = Depends(get_db)):
    return parts_summary(db.query(Part).all())


@router.post("/import")
async def import_parts(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    try:
        extension = os.path.splitext(file.filename or "")[1].lower()
        if extension not in settings.ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Unsupported file type. Allowed: {', '.join(settings.ALLOWED_EXTENSIONS)}",
            )

        content = await file.read()
        if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
            raise HTTPException(
                status_code=400,
                detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB} MB",
            )

        logger.info(f"Importing parts roster: {file.filename}")
        rows, skipped = parts_importer.parse(content, file.filename)

        parts = [Part(**row) for row in rows]
        db.add_all(parts)
        db.commit()
        for part in parts:
            db.refresh(part)

        logger.info(f"✅ Imported {len(parts)} parts entries from {file.filename}")
        return {
            "message": f"Imported {len(parts)} entries",
            "imported": len(parts),
            "skipped": skipped,
            "parts": [part_to_dict(p) for p in parts],
        }

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Parts import failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during parts import")


@router.post("", status_code=201)
def create_part(payload: PartCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    data = payload.model_dump(exclude_none=True)
    data["section"] = data["section"].upper()
    part = Part(**data)
    db.add(part)
    db.commit()
    db.refresh(part)
    return {"message": "Part entry created successfully", "part": part_to_dict(part)}


@router.put("/{part_id}")
def update_part(part_id: str, payload: PartUpdate, db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    part = _get_part(db, part_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("section"):
        data["section"] = data["section"].upper()

    for key, value in data.items():
        if value is None:
            if key in ("section", "member_name"):
                continue
            if key == "section_description":
                value = ""
        setattr(part, key, value)
    db.commit()
    db.refresh(part)
    return {"message": "Part entry updated successfully", "part": part_to_dict(part)}


@router.delete("/{part_id}")
def delete_part(part_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    part = _get_part(db, part_id)
    db.delete(part)
    db.commit()
    return {"message": "Part entry deleted successfully"}
