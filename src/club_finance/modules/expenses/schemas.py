from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from club_finance.modules.expenses.models import ExpenseCategory, ExpenseStatus, PaymentMode


class ExpenseCreate(BaseModel):
    event_id: uuid.UUID
    category: ExpenseCategory
    amount: Decimal = Field(ge=1)
    expense_date: date
    payment_mode: PaymentMode
    description: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class ManualExpenseCreate(ExpenseCreate):
    member_id: uuid.UUID
    status: ExpenseStatus = ExpenseStatus.APPROVED


class ExpenseUpdate(BaseModel):
    category: ExpenseCategory | None = None
    amount: Decimal | None = Field(default=None, ge=1)
    expense_date: date | None = None
    payment_mode: PaymentMode | None = None
    description: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class ExpenseOut(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    event_id: uuid.UUID
    category: ExpenseCategory
    amount: Decimal
    expense_date: date
    payment_mode: PaymentMode
    description: str | None
    notes: str | None
    status: ExpenseStatus
    has_bill: bool
    bill_original_name: str | None
    approved_by_id: uuid.UUID | None
    approved_at: datetime | None
    rejected_by_id: uuid.UUID | None
    rejected_at: datetime | None
    rejection_reason: str | None
    reimbursed_by_id: uuid.UUID | None
    reimbursed_at: datetime | None
    reimbursement_reference: str | None
    fiscal_year: str
    archived: bool
    created_at: datetime
    updated_at: datetime
    allowed_actions: list[str] = []


class ExpensePage(BaseModel):
    items: list[ExpenseOut]
    total: int
    page: int
    limit: int
    pages: int
    has_next: bool
    has_prev: bool
