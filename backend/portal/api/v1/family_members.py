from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from portal.api.v1.common import FamilyMemberIn, FamilyMemberUpdate
from portal.api.v1.serializers import family_member_to_dict
from portal.core.database import get_db
from portal.core.security import get_current_user
from portal.models import FamilyMember, User

router = APIRouter(prefix="/family-members", tags=["family-members"])


def _own_member(db: Session, user: User, member_id: str) -> FamilyMember:
    member = db.get(FamilyMember, member_id)
    if member is None or member.user_id != user.id:
        raise HTTPException(status_code=404, detail="Family member not found")
    return member


@router.get("")
def list_family_members(user: User = Depends(get_current_user)):
    return [family_member_to_dict(m) for m in user.family_members]


@router.post("", status_code=201)
def create_family_member(payload: FamilyMemberIn, user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    member = payload.to_row()
    member.user_id = user.id
    db.add(member)
    db.commit()
    db.refresh(member)
    return family_member_to_dict(member)


@router.put("/{member_id}")
def update_family_member(member_id: str, payload: FamilyMemberUpdate, user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    member = _own_member(db, user, member_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "relationship" in data:
        member.relationship_type = data.pop("relationship").value
    for key, value in data.items():
        setattr(member, key, value)
    db.commit()
    db.refresh(member)
    return family_member_to_dict(member)


@router.delete("/{member_id}")
def delete_family_member(member_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    member = _own_member(db, user, member_id)
    db.delete(member)
    db.commit()
    return {"message": "Family member removed successfully"}
