"""
Ledger store: persistence contract for expense records.

All writes that depend on the current status go through ``update`` with an
``expected_status``, which issues one conditional UPDATE. A zero-row result is
diagnosed afterwards so the caller can tell a lost race (``Conflict``) apart
from a missing row (``NotFound``) or a frozen one (``PreconditionFailed``).
Driver errors surface as ``StoreFailure`` and are never retried here.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from sqlalchemy import Select, func, select
from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from club_finance.core.errors import (
    Conflict,
    InvalidArgument,
    NotFound,
    PreconditionFailed,
    StoreFailure,
    ValidationError,
)
from club_finance.core.fiscal import parse_fiscal_year
from club_finance.core.logging import get_logger, log_event, log_exception
from club_finance.modules.expenses.models import (
    MIN_AMOUNT,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    PaymentMode,
)

logger = get_logger(__name__)

REQUIRED_FIELDS = (
    "member_id",
    "event_id",
    "category",
    "amount",
    "expense_date",
    "payment_mode",
    "fiscal_year",
)

IMMUTABLE_FIELDS = frozenset({"id", "member_id", "fiscal_year", "created_at"})


@dataclass(frozen=True)
class ExpenseFilter:
    member_id: uuid.UUID | None = None
    event_id: uuid.UUID | None = None
    status: ExpenseStatus | None = None
    category: ExpenseCategory | None = None
    fiscal_year: str | None = None
    archived: bool | None = None
    date_from: date | None = None
    date_to: date | None = None
    has_bill: bool | None = None

    def __post_init__(self) -> None:
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise InvalidArgument("date_from must not be after date_to")

    def apply(self, q: Select) -> Select:
        if self.member_id is not None:
            q = q.where(Expense.member_id == self.member_id)
        if self.event_id is not None:
            q = q.where(Expense.event_id == self.event_id)
        if self.status is not None:
            q = q.where(Expense.status == self.status)
        if self.category is not None:
            q = q.where(Expense.category == self.category)
        if self.fiscal_year is not None:
            q = q.where(Expense.fiscal_year == self.fiscal_year)
        if self.archived is not None:
            q = q.where(Expense.archived.is_(self.archived))
        if self.date_from is not None:
            q = q.where(Expense.expense_date >= self.date_from)
        if self.date_to is not None:
            q = q.where(Expense.expense_date <= self.date_to)
        if self.has_bill is True:
            q = q.where(Expense.bill_key.is_not(None))
        elif self.has_bill is False:
            q = q.where(Expense.bill_key.is_(None))
        return q


@contextmanager
def _store_errors(session: Session, operation: str, **fields: Any) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        log_exception(logger, "ledger.store.failure", operation=operation, **fields)
        raise StoreFailure(f"Ledger store {operation} failed", operation=operation) from e


def insert(session: Session, expense: Expense) -> uuid.UUID:
    _validate_new(expense)
    if expense.status is None:
        expense.status = ExpenseStatus.PENDING
    if expense.archived is None:
        expense.archived = False
    with _store_errors(session, "insert"):
        session.add(expense)
        try:
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ValidationError(f"Expense violates a store constraint: {e.orig}") from e
        session.refresh(expense)
    log_event(
        logger,
        "ledger.expense.inserted",
        expense_id=str(expense.id),
        status=expense.status.value,
        fiscal_year=expense.fiscal_year,
    )
    return expense.id


def find_by_id(session: Session, expense_id: uuid.UUID) -> Expense:
    with _store_errors(session, "find_by_id", expense_id=str(expense_id)):
        expense = session.scalar(select(Expense).where(Expense.id == expense_id))
    if not expense:
        raise NotFound("Expense not found", expense_id=str(expense_id))
    return expense


def find_by_filter(
    session: Session,
    flt: ExpenseFilter,
    *,
    order_by: Literal["created_at", "expense_date"] = "created_at",
    offset: int | None = None,
    limit: int | None = None,
) -> list[Expense]:
    column = Expense.created_at if order_by == "created_at" else Expense.expense_date
    q = flt.apply(select(Expense)).order_by(column.desc(), Expense.id)
    if offset:
        q = q.offset(offset)
    if limit is not None:
        q = q.limit(limit)
    with _store_errors(session, "find_by_filter"):
        return list(session.scalars(q))


def count_by_filter(session: Session, flt: ExpenseFilter) -> int:
    q = flt.apply(select(func.count()).select_from(Expense))
    with _store_errors(session, "count_by_filter"):
        return int(session.scalar(q) or 0)


def update(
    session: Session,
    expense_id: uuid.UUID,
    patch: dict[str, Any],
    *,
    expected_status: ExpenseStatus | None = None,
) -> Expense:
    """
    Atomic conditional update.

    Matches ``id`` and, when given, ``expected_status``; archived rows never
    match. Returns the freshly loaded record.
    """
    frozen = IMMUTABLE_FIELDS.intersection(patch)
    if frozen:
        raise ValidationError(f"Fields cannot be changed: {', '.join(sorted(frozen))}")
    if not patch:
        expense = find_by_id(session, expense_id)
        if expense.archived:
            raise PreconditionFailed(
                "Expense belongs to an archived fiscal year", expense_id=str(expense_id)
            )
        return expense
    if "amount" in patch:
        patch = {**patch, "amount": _coerce_amount(patch["amount"])}

    stmt = sql_update(Expense).where(Expense.id == expense_id, Expense.archived.is_(False))
    if expected_status is not None:
        stmt = stmt.where(Expense.status == expected_status)
    stmt = stmt.values(**patch).execution_options(synchronize_session=False)

    with _store_errors(session, "update", expense_id=str(expense_id)):
        result = session.execute(stmt)
        if result.rowcount == 0:
            session.rollback()
            _raise_for_unmatched(session, expense_id, expected_status=expected_status)
        session.commit()
        expense = session.get(Expense, expense_id, populate_existing=True)
    log_event(
        logger,
        "ledger.expense.updated",
        expense_id=str(expense_id),
        fields=sorted(patch),
        expected_status=expected_status.value if expected_status else None,
    )
    return expense


def delete(session: Session, expense_id: uuid.UUID) -> None:
    expense = find_by_id(session, expense_id)
    if expense.archived:
        raise PreconditionFailed(
            "Expense belongs to an archived fiscal year", expense_id=str(expense_id)
        )
    with _store_errors(session, "delete", expense_id=str(expense_id)):
        session.delete(expense)
        session.commit()
    log_event(logger, "ledger.expense.deleted", expense_id=str(expense_id))


def _raise_for_unmatched(
    session: Session, expense_id: uuid.UUID, *, expected_status: ExpenseStatus | None
) -> None:
    row = session.execute(
        select(Expense.status, Expense.archived).where(Expense.id == expense_id)
    ).first()
    if row is None:
        raise NotFound("Expense not found", expense_id=str(expense_id))
    current_status, archived = row
    if archived:
        raise PreconditionFailed(
            "Expense belongs to an archived fiscal year", expense_id=str(expense_id)
        )
    log_event(
        logger,
        "ledger.expense.conflict",
        expense_id=str(expense_id),
        expected_status=expected_status.value if expected_status else None,
        current_status=current_status.value,
    )
    raise Conflict(
        "Expense was modified concurrently; re-fetch and retry",
        expense_id=str(expense_id),
        current_status=current_status,
    )


def _coerce_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite() or amount < MIN_AMOUNT:
        raise ValidationError("Amount must be at least 1", amount=str(value))
    return amount


def _validate_new(expense: Expense) -> None:
    missing = [f for f in REQUIRED_FIELDS if getattr(expense, f, None) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing
        )
    expense.amount = _coerce_amount(expense.amount)
    try:
        expense.category = ExpenseCategory(expense.category)
        expense.payment_mode = PaymentMode(expense.payment_mode)
        if expense.status is not None:
            expense.status = ExpenseStatus(expense.status)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    try:
        expense.fiscal_year = parse_fiscal_year(expense.fiscal_year)
    except InvalidArgument as e:
        raise ValidationError(e.message) from e
