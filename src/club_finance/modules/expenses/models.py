from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_finance.core.models import Base, FiscalYearScoped, Timestamped, UUIDPrimaryKey


class ExpenseCategory(str, enum.Enum):
    DONATION = "donation"
    PERSONAL_CONTRIBUTION = "personal_contribution"
    TRAVEL_EXPENSE = "travel_expense"
    ACCOMMODATION = "accommodation"
    EVENT_MATERIAL = "event_material"
    FOOD_REFRESHMENTS = "food_refreshments"
    MISCELLANEOUS = "miscellaneous"


class PaymentMode(str, enum.Enum):
    UPI = "upi"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


class ExpenseStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REIMBURSED = "reimbursed"
    PAID = "paid"


TERMINAL_STATUSES = frozenset(
    {ExpenseStatus.REJECTED, ExpenseStatus.REIMBURSED, ExpenseStatus.PAID}
)

# Statuses that count as money the club has accepted.
CONTRIBUTING_STATUSES = frozenset(
    {ExpenseStatus.APPROVED, ExpenseStatus.REIMBURSED, ExpenseStatus.PAID}
)

MIN_AMOUNT = Decimal("1")


class Expense(UUIDPrimaryKey, Timestamped, FiscalYearScoped, Base):
    __tablename__ = "expenses_expense"
    __table_args__ = (
        CheckConstraint("amount >= 1", name="ck_expense_amount_min"),
        Index("ix_expense_member_status", "member_id", "status"),
        Index("ix_expense_status_year", "status", "fiscal_year"),
    )

    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id"), index=True
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("events_event.id"), index=True
    )

    category: Mapped[ExpenseCategory] = mapped_column(
        Enum(ExpenseCategory, native_enum=False), index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    expense_date: Mapped[date] = mapped_column(Date, index=True)
    payment_mode: Mapped[PaymentMode] = mapped_column(Enum(PaymentMode, native_enum=False))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    bill_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    bill_original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[ExpenseStatus] = mapped_column(
        Enum(ExpenseStatus, native_enum=False), index=True, default=ExpenseStatus.PENDING
    )

    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id"), nullable=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id"), nullable=True
    )
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reimbursed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id"), nullable=True
    )
    reimbursed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reimbursement_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)

    member = relationship("Member", foreign_keys=[member_id])
    event = relationship("Event")
    approved_by = relationship("Member", foreign_keys=[approved_by_id])
    rejected_by = relationship("Member", foreign_keys=[rejected_by_id])
    reimbursed_by = relationship("Member", foreign_keys=[reimbursed_by_id])

    @property
    def has_bill(self) -> bool:
        return bool(self.bill_key)
