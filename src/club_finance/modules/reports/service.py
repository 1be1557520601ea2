from __future__ import annotations

import time
import uuid
from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from club_finance.core.config import settings
from club_finance.core.errors import NotFound
from club_finance.core.logging import get_logger, log_event, monotonic_ms
from club_finance.core.storage import get_storage
from club_finance.modules.events.models import Event
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import CONTRIBUTING_STATUSES, Expense
from club_finance.modules.expenses.store import ExpenseFilter
from club_finance.modules.identity.models import Member, MemberRole
from club_finance.modules.reports import formatters
from club_finance.modules.reports.aggregation import (
    Contributor,
    Dimension,
    Rollup,
    event_budget_variance,
    member_breakdown,
    rollup,
    top_contributors,
    totals_by_status,
)
from club_finance.modules.reports.schemas import (
    AdminDashboardOut,
    ContributorOut,
    EventReportOut,
    EventReportRow,
    FinancialSummaryOut,
    LeaderboardOut,
    MemberDashboardOut,
    MemberRef,
    MemberReportOut,
    MemberReportRow,
    RecentExpenseOut,
    RollupOut,
    RollupReportOut,
    StatusTotalsOut,
)

logger = get_logger(__name__)


def year_expenses(
    session: Session,
    *,
    fiscal_year: str,
    event_id: uuid.UUID | None = None,
    has_bill: bool | None = None,
) -> list[Expense]:
    flt = ExpenseFilter(fiscal_year=fiscal_year, event_id=event_id, has_bill=has_bill)
    return store.find_by_filter(session, flt, order_by="expense_date")


def _members_by_id(session: Session, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Member]:
    ids = set(ids)
    if not ids:
        return {}
    return {m.id: m for m in session.scalars(select(Member).where(Member.id.in_(ids)))}


def _events_by_id(session: Session, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Event]:
    ids = set(ids)
    if not ids:
        return {}
    return {e.id: e for e in session.scalars(select(Event).where(Event.id.in_(ids)))}


def _member_ref(member: Member | None) -> MemberRef | None:
    if member is None:
        return None
    return MemberRef.model_validate(member, from_attributes=True)


def _rollup_out(rows: list[Rollup], labels: dict | None = None) -> list[RollupOut]:
    labels = labels or {}
    return [
        RollupOut(
            group_key=str(r.group_key),
            label=labels.get(r.group_key),
            total_amount=r.total_amount,
            count=r.count,
        )
        for r in rows
    ]


def _contributors_out(session: Session, contributors: list[Contributor]) -> list[ContributorOut]:
    members = _members_by_id(session, (c.member_id for c in contributors))
    return [
        ContributorOut(
            rank=c.rank,
            member=_member_ref(members.get(c.member_id)),
            total_amount=c.total_amount,
            count=c.count,
            events_count=c.events_count,
        )
        for c in contributors
    ]


def financial_summary(session: Session, *, fiscal_year: str) -> FinancialSummaryOut:
    start = time.monotonic()
    records = year_expenses(session, fiscal_year=fiscal_year)
    by_status = rollup(records, Dimension.STATUS)
    by_event = rollup(records, Dimension.EVENT)[: settings.summary_top_n]
    events = _events_by_id(session, (r.group_key for r in by_event))

    summary = FinancialSummaryOut(
        fiscal_year=fiscal_year,
        totals=StatusTotalsOut.model_validate(totals_by_status(by_status), from_attributes=True),
        by_category=_rollup_out(rollup(records, Dimension.CATEGORY)),
        by_status=_rollup_out(by_status),
        by_month=_rollup_out(rollup(records, Dimension.MONTH)),
        by_event=_rollup_out(by_event, {k: e.name for k, e in events.items()}),
        top_contributors=_contributors_out(
            session, top_contributors(records, limit=settings.summary_top_n)
        ),
    )
    log_event(
        logger,
        "report.summary.built",
        fiscal_year=fiscal_year,
        record_count=len(records),
        duration_ms=monotonic_ms(start),
    )
    return summary


def rollup_report(session: Session, *, fiscal_year: str, dimension: str) -> RollupReportOut:
    records = year_expenses(session, fiscal_year=fiscal_year)
    rows = rollup(records, dimension)
    labels: dict = {}
    if dimension == Dimension.EVENT.value:
        labels = {k: e.name for k, e in _events_by_id(session, (r.group_key for r in rows)).items()}
    elif dimension == Dimension.MEMBER.value:
        labels = {
            k: m.full_name
            for k, m in _members_by_id(session, (r.group_key for r in rows)).items()
        }
    return RollupReportOut(
        fiscal_year=fiscal_year, dimension=dimension, groups=_rollup_out(rows, labels)
    )


def member_wise_report(session: Session, *, fiscal_year: str) -> MemberReportOut:
    breakdown = member_breakdown(year_expenses(session, fiscal_year=fiscal_year))
    members = _members_by_id(session, (b.member_id for b in breakdown))
    return MemberReportOut(
        fiscal_year=fiscal_year,
        members=[
            MemberReportRow(
                member=_member_ref(members.get(b.member_id)),
                total_amount=b.total_amount,
                expense_count=b.count,
                approved_amount=b.approved_amount,
                pending_amount=b.pending_amount,
                rejected_amount=b.rejected_amount,
            )
            for b in breakdown
        ],
    )


def event_wise_report(
    session: Session, *, fiscal_year: str, today: date | None = None
) -> EventReportOut:
    today = today or date.today()
    events = list(
        session.scalars(
            select(Event).where(Event.fiscal_year == fiscal_year).order_by(Event.start_date.desc())
        )
    )
    # Expenses are matched by event, whichever year they were filed in.
    records: list[Expense] = []
    if events:
        records = list(
            session.scalars(select(Expense).where(Expense.event_id.in_([e.id for e in events])))
        )
    by_id = {e.id: e for e in events}
    rows = []
    for v in event_budget_variance(events, records):
        event = by_id[v.event_id]
        rows.append(
            EventReportRow(
                event_id=v.event_id,
                name=v.name,
                category=event.category,
                start_date=event.start_date,
                end_date=event.end_date,
                status=event.status_on(today),
                estimated_budget=v.estimated_budget,
                total_expenses=v.total_expenses,
                approved_expenses=v.approved_expenses,
                expense_count=v.expense_count,
                budget_variance=v.variance,
            )
        )
    return EventReportOut(fiscal_year=fiscal_year, events=rows)


def leaderboard(session: Session, *, fiscal_year: str) -> LeaderboardOut:
    records = year_expenses(session, fiscal_year=fiscal_year)
    return LeaderboardOut(
        fiscal_year=fiscal_year,
        entries=_contributors_out(session, top_contributors(records, limit=settings.leaderboard_size)),
    )


def _recent_out(
    session: Session, records: list[Expense], *, with_member: bool
) -> list[RecentExpenseOut]:
    events = _events_by_id(session, (e.event_id for e in records))
    members = _members_by_id(session, (e.member_id for e in records)) if with_member else {}
    return [
        RecentExpenseOut(
            id=e.id,
            expense_date=e.expense_date,
            event_name=events[e.event_id].name if e.event_id in events else None,
            category=e.category,
            amount=e.amount,
            status=e.status,
            member=_member_ref(members.get(e.member_id)),
        )
        for e in records
    ]


def member_dashboard(session: Session, *, member: Member, fiscal_year: str) -> MemberDashboardOut:
    """One member's own totals for the year plus their latest submissions."""
    records = store.find_by_filter(
        session, ExpenseFilter(member_id=member.id, fiscal_year=fiscal_year)
    )
    contribution = sum(
        (Decimal(str(e.amount)) for e in records if e.status in CONTRIBUTING_STATUSES),
        Decimal("0"),
    )
    totals = totals_by_status(rollup(records, Dimension.STATUS))
    return MemberDashboardOut(
        fiscal_year=fiscal_year,
        member=_member_ref(member),
        totals=StatusTotalsOut.model_validate(totals, from_attributes=True),
        total_contribution=contribution,
        recent_expenses=_recent_out(
            session, records[: settings.dashboard_recent_size], with_member=False
        ),
    )


def admin_dashboard(session: Session, *, fiscal_year: str) -> AdminDashboardOut:
    records = store.find_by_filter(session, ExpenseFilter(fiscal_year=fiscal_year))
    active_members = session.scalar(
        select(func.count())
        .select_from(Member)
        .where(Member.is_active.is_(True), Member.role != MemberRole.ALUMNI)
    )
    events_count = session.scalar(
        select(func.count()).select_from(Event).where(Event.fiscal_year == fiscal_year)
    )
    totals = totals_by_status(rollup(records, Dimension.STATUS))
    return AdminDashboardOut(
        fiscal_year=fiscal_year,
        active_members=active_members or 0,
        events_count=events_count or 0,
        totals=StatusTotalsOut.model_validate(totals, from_attributes=True),
        by_month=_rollup_out(rollup(records, Dimension.MONTH)),
        by_category=_rollup_out(rollup(records, Dimension.CATEGORY)),
        top_contributors=_contributors_out(
            session, top_contributors(records, limit=settings.summary_top_n)
        ),
        recent_expenses=_recent_out(
            session, records[: settings.dashboard_recent_size], with_member=True
        ),
    )


def _report_rows(session: Session, records: list[Expense]) -> list[formatters.ReportRow]:
    members = _members_by_id(session, (e.member_id for e in records))
    events = _events_by_id(session, (e.event_id for e in records))
    rows = []
    for e in records:
        member = members.get(e.member_id)
        event = events.get(e.event_id)
        rows.append(
            formatters.ReportRow(
                expense_id=e.id,
                expense_date=e.expense_date,
                member_code=member.member_code if member else "",
                member_name=member.full_name if member else "",
                email=member.email if member else "",
                event_name=event.name if event else "",
                category=e.category.value,
                amount=Decimal(str(e.amount)),
                payment_mode=e.payment_mode.value,
                status=e.status.value,
                description=e.description or "",
            )
        )
    return rows


def export_pdf(session: Session, *, fiscal_year: str) -> tuple[bytes, str]:
    start = time.monotonic()
    records = year_expenses(session, fiscal_year=fiscal_year)
    rows = _report_rows(session, records)
    total = sum((r.amount for r in rows), Decimal("0"))
    approved = sum(
        (Decimal(str(e.amount)) for e in records if e.status in CONTRIBUTING_STATUSES),
        Decimal("0"),
    )
    body = formatters.render_financial_pdf(
        club_name=settings.club_name,
        fiscal_year=fiscal_year,
        rows=rows,
        total_amount=total,
        approved_amount=approved,
        generated_at=datetime.now(UTC),
    )
    log_event(
        logger,
        "export.pdf.finish",
        fiscal_year=fiscal_year,
        row_count=len(rows),
        byte_size=len(body),
        duration_ms=monotonic_ms(start),
    )
    return body, f"financial-report-{fiscal_year}.pdf"


def export_xlsx(session: Session, *, fiscal_year: str) -> tuple[bytes, str]:
    start = time.monotonic()
    rows = _report_rows(session, year_expenses(session, fiscal_year=fiscal_year))
    body = formatters.render_financial_xlsx(
        club_name=settings.club_name,
        rows=rows,
        total_amount=sum((r.amount for r in rows), Decimal("0")),
    )
    log_event(
        logger,
        "export.xlsx.finish",
        fiscal_year=fiscal_year,
        row_count=len(rows),
        byte_size=len(body),
        duration_ms=monotonic_ms(start),
    )
    return body, f"financial-report-{fiscal_year}.xlsx"


def export_bills(
    session: Session, *, fiscal_year: str, event_id: uuid.UUID | None = None
) -> tuple[bytes, str]:
    start = time.monotonic()
    records = year_expenses(session, fiscal_year=fiscal_year, event_id=event_id, has_bill=True)
    if not records:
        raise NotFound("No bills found for the specified criteria", fiscal_year=fiscal_year)

    members = _members_by_id(session, (e.member_id for e in records))
    events = _events_by_id(session, (e.event_id for e in records))
    entries = [
        formatters.BillEntry(
            expense_id=e.id,
            storage_key=e.bill_key,
            first_name=members[e.member_id].first_name if e.member_id in members else "",
            event_name=events[e.event_id].name if e.event_id in events else "",
            amount=Decimal(str(e.amount)),
        )
        for e in records
    ]
    body, written = formatters.render_bills_zip(entries, storage=get_storage())
    if not written:
        raise NotFound("No bills found for the specified criteria", fiscal_year=fiscal_year)
    log_event(
        logger,
        "export.bills.finish",
        fiscal_year=fiscal_year,
        event_id=str(event_id) if event_id else None,
        file_count=written,
        byte_size=len(body),
        duration_ms=monotonic_ms(start),
    )
    return body, f"bills-{fiscal_year}.zip"
