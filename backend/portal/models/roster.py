"""
Group rosters: Misc members and Parts entries, grouped into sections A-D
"""
from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid


SECTIONS = ("A", "B", "C", "D")


# ── 1. members (Misc) ────────────────────────────────────

class Member(TimestampMixin, Base):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("section", "s_no", name="uq_members_section_s_no"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    section = Column(String(1), nullable=False, index=True)
    section_desc = Column(String(255), nullable=False)
    s_no = Column(Integer, nullable=False)
    mob_s_no = Column(Integer, nullable=False, index=True)
    group_s_no = Column(Integer, nullable=False, index=True)
    name_aadhar = Column(String(15), nullable=False, index=True)
    gender = Column(String(1), nullable=False)
    age = Column(Integer, nullable=True)
    aadhar_no = Column(String(12), nullable=True, index=True)
    persons = Column(Integer, nullable=True)
    sram = Column(String(100), nullable=False, default="")
    fwd_jny = Column(String(255), nullable=False, default="")
    rtn_jny = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=False, default="")

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    creator = relationship("User", foreign_keys=[created_by])
    updater = relationship("User", foreign_keys=[updated_by])

    @property
    def display_info(self) -> str:
        return f"{self.section}-{self.s_no}: {self.name_aadhar}"

    def __repr__(self):
        return f"<Member {self.display_info}>"


# ── 2. parts ─────────────────────────────────────────────

class Part(TimestampMixin, Base):
    __tablename__ = "parts"

    id = Column(String(36), primary_key=True, default=_uuid)
    section = Column(String(20), nullable=False, index=True)
    section_description = Column(String(255), nullable=False, default="")
    member_name = Column(String(200), nullable=False)
    no_of_persons = Column(Integer, nullable=True)  # null for cancelled entries
    sradam = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.no_of_persons is not None

    def __repr__(self):
        return f"<Part {self.section} {self.member_name}>"
