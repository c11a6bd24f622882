from typing import Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.api.v1.common import AadharNumber, CamelModel
from portal.api.v1.serializers import member_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import SECTIONS, Member, User
from portal.services.roster_stats import member_summary

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/misc", tags=["misc"])

SORTABLE = set(Member.__table__.columns.keys())


class MemberUpdate(CamelModel):
    section: Optional[str] = None
    section_desc: Optional[str] = Field(default=None, min_length=1, max_length=255)
    s_no: Optional[int] = Field(default=None, ge=1)
    mob_s_no: Optional[int] = Field(default=None, ge=1)
    group_s_no: Optional[int] = Field(default=None, ge=1)
    name_aadhar: Optional[str] = Field(default=None, min_length=1, max_length=15)
    gender: Optional[Literal["M", "F"]] = None
    age: Optional[int] = Field(default=None, ge=1, le=150)
    aadhar_no: Optional[AadharNumber] = None
    persons: Optional[int] = Field(default=None, ge=0)
    sram: Optional[str] = None
    fwd_jny: Optional[str] = None
    rtn_jny: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("section")
    @classmethod
    def known_section(cls, value):
        if value is not None and value.upper() not in SECTIONS:
            raise ValueError(f"Section must be one of {', '.join(SECTIONS)}")
        return value.upper() if value else value

    @field_validator("aadhar_no", mode="before")
    @classmethod
    def blank_aadhar(cls, value):
        return value or None


class MemberCreate(MemberUpdate):
    section: str
    section_desc: str = Field(min_length=1, max_length=255)
    s_no: int = Field(ge=1)
    mob_s_no: int = Field(ge=1)
    group_s_no: int = Field(ge=1)
    name_aadhar: str = Field(min_length=1, max_length=15)
    gender: Literal["M", "F"]


def _get_member(db: Session, member_id: str) -> Member:
    member = db.get(Member, member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


def _ensure_unique_slot(db: Session, section: str, s_no: int, exclude_id: Optional[str] = None) -> None:
    query = db.query(Member).filter(Member.section == section, Member.s_no == s_no)
    if exclude_id:
        query = query.filter(Member.id != exclude_id)
    if query.first() is not None:
        raise HTTPException(
            status_code=400,
            detail=f"Member with section {section} and serial number {s_no} already exists",
        )


@router.get("")
def list_members(
    section: Optional[str] = None,
    gender: Optional[Literal["M", "F"]] = None,
    min_age: Optional[int] = Query(None, alias="minAge"),
    max_age: Optional[int] = Query(None, alias="maxAge"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
    sort_by: str = Query("s_no", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Member)
    if section:
        query = query.filter(Member.section == section.upper())
    if gender:
        query = query.filter(Member.gender == gender)
    if min_age is not None:
        query = query.filter(Member.age >= min_age)
    if max_age is not None:
        query = query.filter(Member.age <= max_age)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Member.name_aadhar.ilike(pattern),
            Member.section_desc.ilike(pattern),
            Member.aadhar_no.ilike(pattern),
        ))

    column = getattr(Member, sort_by) if sort_by in SORTABLE else Member.s_no
    total = query.count()
    members = (
        query.order_by(column.asc() if sort_order == "asc" else column.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "members": [member_to_dict(m) for m in members],
        "pagination": {
            "total": total,
            "page": page,
            "pages": (total + limit - 1) // limit,
            "limit": limit,
        },
    }


@router.get("/stats/summary")
def member_stats(db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    return member_summary(db)


@router.get("/{member_id}")
def get_member(member_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    return member_to_dict(_get_member(db, member_id))


@router.post("", status_code=201)
def create_member(payload: MemberCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    _ensure_unique_slot(db, payload.section, payload.s_no)

    data = payload.model_dump(exclude_none=True)
    member = Member(**data, created_by=admin.id)
    db.add(member)
    db.commit()
    db.refresh(member)

    logger.info(f"✅ Member created: {member.section}-{member.s_no} {member.name_aadhar}")
    return {"message": "Member created successfully", "member": member_to_dict(member)}


@router.put("/{member_id}")
def update_member(member_id: str, payload: MemberUpdate, db: Session = Depends(get_db),
                  admin: User = Depends(get_admin_user)):
    member = _get_member(db, member_id)
    data = payload.model_dump(exclude_unset=True)

    section = data.get("section") or member.section
    s_no = data.get("s_no") or member.s_no
    if (section, s_no) != (member.section, member.s_no):
        _ensure_unique_slot(db, section, s_no, exclude_id=member.id)

    for key, value in data.items():
        # required columns keep their value when null is sent
        if value is None and key not in ("age", "aadhar_no", "persons"):
            continue
        setattr(member, key, value)
    member.updated_by = admin.id
    db.commit()
    db.refresh(member)

    return {"message": "Member updated successfully", "member": member_to_dict(member)}


@router.delete("/{member_id}")
def delete_member(member_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    member = _get_member(db, member_id)
    db.delete(member)
    db.commit()
    logger.info(f"🗑️ Member deleted: {member_id}")
    return {"message": "Member deleted successfully"}
