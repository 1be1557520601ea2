from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from club_finance.modules.events.models import EventCategory, EventStatus
from club_finance.modules.expenses.models import ExpenseCategory, ExpenseStatus
from club_finance.modules.identity.models import MemberRole


class RollupOut(BaseModel):
    group_key: str
    label: str | None = None
    total_amount: Decimal
    count: int


class StatusTotalsOut(BaseModel):
    total_expenses: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_rejected: Decimal
    total_reimbursed: Decimal


class MemberRef(BaseModel):
    id: uuid.UUID
    member_code: str
    first_name: str
    last_name: str
    email: str
    role: MemberRole


class ContributorOut(BaseModel):
    rank: int
    member: MemberRef | None
    total_amount: Decimal
    count: int
    events_count: int


class FinancialSummaryOut(BaseModel):
    fiscal_year: str
    totals: StatusTotalsOut
    by_category: list[RollupOut]
    by_status: list[RollupOut]
    by_month: list[RollupOut]
    by_event: list[RollupOut]
    top_contributors: list[ContributorOut]


class MemberReportRow(BaseModel):
    member: MemberRef | None
    total_amount: Decimal
    expense_count: int
    approved_amount: Decimal
    pending_amount: Decimal
    rejected_amount: Decimal


class MemberReportOut(BaseModel):
    fiscal_year: str
    members: list[MemberReportRow]


class EventReportRow(BaseModel):
    event_id: uuid.UUID
    name: str
    category: EventCategory
    start_date: date
    end_date: date
    status: EventStatus
    estimated_budget: Decimal
    total_expenses: Decimal
    approved_expenses: Decimal
    expense_count: int
    budget_variance: Decimal


class EventReportOut(BaseModel):
    fiscal_year: str
    events: list[EventReportRow]


class LeaderboardOut(BaseModel):
    fiscal_year: str
    entries: list[ContributorOut]


class RollupReportOut(BaseModel):
    fiscal_year: str
    dimension: str
    groups: list[RollupOut]


class RecentExpenseOut(BaseModel):
    id: uuid.UUID
    expense_date: date
    event_name: str | None
    category: ExpenseCategory
    amount: Decimal
    status: ExpenseStatus
    member: MemberRef | None = None


class MemberDashboardOut(BaseModel):
    fiscal_year: str
    member: MemberRef
    totals: StatusTotalsOut
    total_contribution: Decimal
    recent_expenses: list[RecentExpenseOut]


class AdminDashboardOut(BaseModel):
    fiscal_year: str
    active_members: int
    events_count: int
    totals: StatusTotalsOut
    by_month: list[RollupOut]
    by_category: list[RollupOut]
    top_contributors: list[ContributorOut]
    recent_expenses: list[RecentExpenseOut]
