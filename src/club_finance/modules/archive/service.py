from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from club_finance.core.errors import Conflict, NotFound, StoreFailure
from club_finance.core.fiscal import parse_fiscal_year, resolve_fiscal_year
from club_finance.core.logging import get_logger, log_event, log_exception
from club_finance.modules.archive.models import Archive, ArchiveStatus
from club_finance.modules.audit.service import record_audit
from club_finance.modules.events.models import Event
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import CONTRIBUTING_STATUSES, Expense, ExpenseStatus
from club_finance.modules.expenses.store import ExpenseFilter
from club_finance.modules.identity.models import Member, MemberRole

logger = get_logger(__name__)


def list_archives(session: Session) -> list[Archive]:
    return list(session.scalars(select(Archive).order_by(Archive.fiscal_year.desc())))


def get_archive(session: Session, *, fiscal_year: str) -> Archive:
    archive = session.scalar(
        select(Archive).where(Archive.fiscal_year == parse_fiscal_year(fiscal_year))
    )
    if not archive:
        raise NotFound("Archive not found for this year", fiscal_year=fiscal_year)
    return archive


def is_year_closed(session: Session, fiscal_year: str) -> bool:
    status = session.scalar(select(Archive.status).where(Archive.fiscal_year == fiscal_year))
    return status == ArchiveStatus.ARCHIVED


def close_fiscal_year(
    session: Session,
    *,
    actor: Member,
    fiscal_year: str | None = None,
    notes: str | None = None,
    carry_over_members: bool = True,
    today: date | None = None,
) -> Archive:
    """
    Freeze a fiscal year.

    Records the year's summary, flags every expense and event of the year as
    archived and, unless members carry over, moves plain members to alumni.
    All of it commits as one unit.
    """
    year = resolve_fiscal_year(fiscal_year, today=today or date.today())
    archive = session.scalar(select(Archive).where(Archive.fiscal_year == year))
    if archive and archive.status == ArchiveStatus.ARCHIVED:
        raise Conflict("This year has already been archived", fiscal_year=year)

    records = store.find_by_filter(session, ExpenseFilter(fiscal_year=year))
    total = sum((Decimal(str(e.amount)) for e in records), Decimal("0"))
    contributions = sum(
        (Decimal(str(e.amount)) for e in records if e.status in CONTRIBUTING_STATUSES),
        Decimal("0"),
    )
    reimbursements = sum(
        (Decimal(str(e.amount)) for e in records if e.status == ExpenseStatus.REIMBURSED),
        Decimal("0"),
    )

    try:
        total_members = session.scalar(
            select(func.count())
            .select_from(Member)
            .where(Member.fiscal_year == year, Member.is_active.is_(True))
        )
        total_events = session.scalar(
            select(func.count()).select_from(Event).where(Event.fiscal_year == year)
        )

        if archive is None:
            archive = Archive(fiscal_year=year)
        archive.status = ArchiveStatus.ARCHIVED
        archive.closed_at = datetime.now(UTC)
        archive.closed_by_id = actor.id
        archive.notes = notes
        archive.total_members = int(total_members or 0)
        archive.total_events = int(total_events or 0)
        archive.total_expenses = total
        archive.total_contributions = contributions
        archive.total_reimbursements = reimbursements
        session.add(archive)

        expenses_frozen = session.execute(
            update(Expense)
            .where(Expense.fiscal_year == year)
            .values(archived=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        events_frozen = session.execute(
            update(Event)
            .where(Event.fiscal_year == year)
            .values(archived=True)
            .execution_options(synchronize_session=False)
        ).rowcount
        alumni = 0
        if not carry_over_members:
            alumni = session.execute(
                update(Member)
                .where(Member.fiscal_year == year, Member.role == MemberRole.MEMBER)
                .values(role=MemberRole.ALUMNI)
                .execution_options(synchronize_session=False)
            ).rowcount
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise Conflict("This year has already been archived", fiscal_year=year) from e
    except SQLAlchemyError as e:
        session.rollback()
        log_exception(logger, "archive.close.failure", fiscal_year=year)
        raise StoreFailure("Failed to close fiscal year", fiscal_year=year) from e

    session.refresh(archive)
    log_event(
        logger,
        "archive.close.success",
        fiscal_year=year,
        expenses_frozen=expenses_frozen,
        events_frozen=events_frozen,
        alumni=alumni,
    )
    record_audit(
        action="year_close",
        actor_id=actor.id,
        target_type="archive",
        target_id=archive.id,
        description=f"Year {year} closed and archived",
        change_set={"carry_over_members": carry_over_members, "notes": notes},
    )
    return archive
