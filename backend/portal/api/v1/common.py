"""
Shared request-model base and small helpers for the v1 routers
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portal.models import FamilyMember, FamilyRelationship


def naive_utc(value: datetime) -> datetime:
    # columns hold naive UTC
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UtcDateTime = Annotated[datetime, AfterValidator(naive_utc)]
AadharNumber = Annotated[str, Field(pattern=r"^[0-9]{12}$")]
PhoneNumber = Annotated[str, Field(pattern=r"^[0-9]{10}$")]
Pincode = Annotated[str, Field(pattern=r"^[0-9]{6}$")]


class CamelModel(BaseModel):
    """Request bodies arrive in camelCase; snake_case names are accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FamilyMemberIn(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    relationship: FamilyRelationship
    age: int = Field(ge=0, le=120)
    aadhar_number: AadharNumber
    phone_number: Optional[PhoneNumber] = None

    def to_row(self) -> FamilyMember:
        return FamilyMember(
            name=self.name.strip(),
            relationship_type=self.relationship.value,
            age=self.age,
            aadhar_number=self.aadhar_number,
            phone_number=self.phone_number,
        )


class FamilyMemberUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    relationship: Optional[FamilyRelationship] = None
    age: Optional[int] = Field(default=None, ge=0, le=120)
    aadhar_number: Optional[AadharNumber] = None
    phone_number: Optional[PhoneNumber] = None


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit > 0 else 0


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def apply_updates(row: Any, data: Dict[str, Any], protected: tuple = ("id", "created_at", "created_by")) -> None:
    for key, value in data.items():
        if key in protected:
            continue
        setattr(row, key, value)
