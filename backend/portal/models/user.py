"""
Portal users (members and admins) and their family members
"""
import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid, enum_column


class UserRole(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"


class FamilyRelationship(str, enum.Enum):
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    OTHER = "other"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(10), nullable=False)
    aadhar_number = Column(String(12), unique=True, nullable=False, index=True)

    # address
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    pincode = Column(String(6), nullable=True)

    role = enum_column(UserRole, nullable=False, default=UserRole.MEMBER, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    profile_image = Column(String(500), nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    family_members = relationship(
        "FamilyMember", back_populates="user", cascade="all, delete-orphan",
        order_by="FamilyMember.created_at",
    )
    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"


class FamilyMember(TimestampMixin, Base):
    __tablename__ = "family_members"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    relationship_type = Column("relationship", String(20), nullable=False)
    age = Column(Integer, nullable=False)
    aadhar_number = Column(String(12), nullable=False)
    phone_number = Column(String(10), nullable=True)

    user = relationship("User", back_populates="family_members")

    def __repr__(self):
        return f"<FamilyMember {self.name} ({self.relationship_type})>"
