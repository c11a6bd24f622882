"""
Expenses recorded against tours, subject to admin approval
"""
from datetime import datetime
import enum

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin, _uuid, enum_column


class ExpenseCategory(str, enum.Enum):
    TRANSPORTATION = "transportation"
    ACCOMMODATION = "accommodation"
    MEALS = "meals"
    TEMPLE_DONATIONS = "temple-donations"
    GUIDE_FEES = "guide-fees"
    ENTRANCE_FEES = "entrance-fees"
    PHOTOGRAPHY = "photography"
    SHOPPING = "shopping"
    MEDICAL = "medical"
    EMERGENCY = "emergency"
    MISCELLANEOUS = "miscellaneous"


CATEGORY_LABELS = {
    ExpenseCategory.TRANSPORTATION: ("Transportation", "🚗"),
    ExpenseCategory.ACCOMMODATION: ("Accommodation", "🏨"),
    ExpenseCategory.MEALS: ("Meals & Food", "🍽️"),
    ExpenseCategory.TEMPLE_DONATIONS: ("Temple Donations", "🕉️"),
    ExpenseCategory.GUIDE_FEES: ("Guide Fees", "👨‍🏫"),
    ExpenseCategory.ENTRANCE_FEES: ("Entrance Fees", "🎫"),
    ExpenseCategory.PHOTOGRAPHY: ("Photography", "📸"),
    ExpenseCategory.SHOPPING: ("Shopping", "🛍️"),
    ExpenseCategory.MEDICAL: ("Medical", "💊"),
    ExpenseCategory.EMERGENCY: ("Emergency", "🚨"),
    ExpenseCategory.MISCELLANEOUS: ("Miscellaneous", "📋"),
}


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    BANK_TRANSFER = "bank-transfer"
    CHEQUE = "cheque"
    NETBANKING = "netbanking"
    OTHER = "other"


class Expense(TimestampMixin, Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=_uuid)
    tour_id = Column(String(36), ForeignKey("tours.id", ondelete="SET NULL"), nullable=True, index=True)
    added_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    updated_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=True)
    category = enum_column(ExpenseCategory, nullable=False, index=True)
    subcategory = Column(String(100), nullable=True)
    description = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False, default="INR")
    expense_date = Column(DateTime, nullable=False, index=True)

    location = Column(JSON, nullable=True)  # {"city", "state", "place"}
    vendor = Column(JSON, nullable=True)    # {"name", "contact", "address"}

    payment_method = enum_column(PaymentMethod, nullable=False, default=PaymentMethod.CASH)
    receipt_number = Column(String(100), nullable=True)
    participants = Column(Integer, nullable=True)
    per_person_cost = Column(Float, nullable=True)

    is_reimbursable = Column(Boolean, nullable=False, default=True)
    is_approved = Column(Boolean, nullable=False, default=False, index=True)
    approved_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approval_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    notes = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    tour = relationship("Tour", back_populates="expenses")
    submitter = relationship("User", foreign_keys=[added_by])
    approver = relationship("User", foreign_keys=[approved_by])

    def recompute_per_person_cost(self):
        if self.participants and self.amount:
            self.per_person_cost = self.amount / self.participants
        else:
            self.per_person_cost = None

    def approve(self, admin_id: str):
        self.is_approved = True
        self.approved_by = admin_id
        self.approval_date = datetime.utcnow()
        self.rejection_reason = None

    def __repr__(self):
        return f"<Expense {self.category.value if self.category else '-'} {self.amount}>"
