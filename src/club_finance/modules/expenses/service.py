from __future__ import annotations

import math
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import PurePath

from sqlalchemy.orm import Session

from club_finance.core.config import settings
from club_finance.core.errors import (
    ClubFinanceError,
    NotFound,
    PermissionDenied,
    PreconditionFailed,
    StoreFailure,
    ValidationError,
)
from club_finance.core.fiscal import fiscal_year_for
from club_finance.core.logging import get_logger, log_event
from club_finance.core.storage import StorageError, bill_key, get_storage
from club_finance.modules.audit.service import record_audit
from club_finance.modules.events.service import get_event
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    PaymentMode,
)
from club_finance.modules.expenses.store import ExpenseFilter
from club_finance.modules.identity.models import Member
from club_finance.modules.identity.service import get_member
from club_finance.modules.notifications.dispatcher import NotificationType, notify_expense

logger = get_logger(__name__)

DETAIL_FIELDS = frozenset(
    {"category", "amount", "expense_date", "payment_mode", "description", "notes"}
)

# Statuses an approver may file a manual entry under.
MANUAL_STATUSES = frozenset({ExpenseStatus.PENDING, ExpenseStatus.APPROVED, ExpenseStatus.PAID})


@dataclass(frozen=True)
class Page:
    items: list[Expense]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def page_window(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp ``page`` to >= 1 and ``limit`` to 1..``max_page_size``."""
    page = max(1, page or 1)
    limit = min(settings.max_page_size, max(1, limit or settings.default_page_size))
    return page, limit


def submit_expense(
    session: Session,
    *,
    member: Member,
    event_id: uuid.UUID,
    category: ExpenseCategory,
    amount: Decimal,
    expense_date: date,
    payment_mode: PaymentMode,
    description: str | None = None,
    notes: str | None = None,
    today: date | None = None,
) -> Expense:
    event = get_event(session, event_id=event_id)
    if event.archived:
        raise PreconditionFailed("Event belongs to an archived fiscal year", event_id=str(event.id))

    expense = Expense(
        member_id=member.id,
        event_id=event.id,
        category=category,
        amount=amount,
        expense_date=expense_date,
        payment_mode=payment_mode,
        description=_clean(description),
        notes=_clean(notes),
        status=ExpenseStatus.PENDING,
        fiscal_year=fiscal_year_for(today or date.today()),
        archived=False,
    )
    store.insert(session, expense)
    log_event(
        logger,
        "expense.submitted",
        expense_id=str(expense.id),
        event_id=str(event.id),
        amount=str(expense.amount),
    )
    record_audit(
        action="expense_create",
        actor_id=member.id,
        target_type="expense",
        target_id=expense.id,
        description=f"Expense submitted: {expense.amount} for {event.name}",
    )
    notify_expense(NotificationType.EXPENSE_SUBMITTED, expense)
    return expense


def create_manual_expense(
    session: Session,
    *,
    actor: Member,
    member_id: uuid.UUID,
    event_id: uuid.UUID,
    category: ExpenseCategory,
    amount: Decimal,
    expense_date: date,
    payment_mode: PaymentMode,
    description: str | None = None,
    notes: str | None = None,
    status: ExpenseStatus = ExpenseStatus.APPROVED,
    today: date | None = None,
) -> Expense:
    """
    Approver-entered expense on behalf of a member.

    This is the only way a record reaches ``paid``. Entries filed as approved
    or paid carry the acting approver in the approval metadata.
    """
    if status not in MANUAL_STATUSES:
        raise ValidationError(
            f"Manual expenses cannot be created as {status.value}",
            allowed=sorted(s.value for s in MANUAL_STATUSES),
        )
    owner = get_member(session, member_id=member_id)
    event = get_event(session, event_id=event_id)
    if event.archived:
        raise PreconditionFailed("Event belongs to an archived fiscal year", event_id=str(event.id))

    expense = Expense(
        member_id=owner.id,
        event_id=event.id,
        category=category,
        amount=amount,
        expense_date=expense_date,
        payment_mode=payment_mode,
        description=_clean(description),
        notes=_clean(notes),
        status=status,
        fiscal_year=fiscal_year_for(today or date.today()),
        archived=False,
    )
    if status != ExpenseStatus.PENDING:
        expense.approved_by_id = actor.id
        expense.approved_at = datetime.now(UTC)
    store.insert(session, expense)
    log_event(
        logger,
        "expense.manual.created",
        expense_id=str(expense.id),
        status=status.value,
        amount=str(expense.amount),
    )
    record_audit(
        action="expense_create",
        actor_id=actor.id,
        target_type="expense",
        target_id=expense.id,
        description=f"Manual expense added: {expense.amount} for {owner.full_name}",
        change_set={"status": status},
    )
    return expense


def update_expense_details(
    session: Session, *, expense_id: uuid.UUID, actor: Member, changes: dict
) -> Expense:
    """Edit descriptive fields. Status and approval metadata are never touched here."""
    refused = set(changes) - DETAIL_FIELDS
    if refused:
        raise ValidationError(
            f"Fields cannot be edited: {', '.join(sorted(refused))}",
            fields=sorted(refused),
        )
    applied = {k: v for k, v in changes.items() if v is not None}
    if "description" in applied:
        applied["description"] = _clean(applied["description"])
    if "notes" in applied:
        applied["notes"] = _clean(applied["notes"])

    expense = store.update(session, expense_id, applied)
    record_audit(
        action="expense_update",
        actor_id=actor.id,
        target_type="expense",
        target_id=expense.id,
        description="Expense updated",
        change_set=applied,
    )
    return expense


def delete_expense(session: Session, *, expense_id: uuid.UUID, actor: Member) -> None:
    expense = store.find_by_id(session, expense_id)
    stored_key, amount = expense.bill_key, expense.amount
    store.delete(session, expense_id)
    if stored_key:
        get_storage().delete(key=stored_key)
    record_audit(
        action="expense_delete",
        actor_id=actor.id,
        target_type="expense",
        target_id=expense_id,
        description=f"Expense deleted: {amount}",
    )


def list_expenses(
    session: Session,
    *,
    flt: ExpenseFilter,
    page: int | None = None,
    limit: int | None = None,
) -> Page:
    page, limit = page_window(page, limit)
    total = store.count_by_filter(session, flt)
    items = store.find_by_filter(session, flt, offset=(page - 1) * limit, limit=limit)
    return Page(items=items, total=total, page=page, limit=limit)


def get_expense_for_member(
    session: Session, *, expense_id: uuid.UUID, member: Member
) -> Expense:
    expense = store.find_by_id(session, expense_id)
    if not member.is_admin and expense.member_id != member.id:
        raise PermissionDenied("Not authorized to view this expense")
    return expense


def attach_bill(
    session: Session,
    *,
    expense_id: uuid.UUID,
    actor: Member,
    filename: str,
    content_type: str | None,
    body: bytes,
) -> Expense:
    expense = store.find_by_id(session, expense_id)
    if expense.member_id != actor.id and not actor.is_approver:
        raise PermissionDenied("Not authorized to attach a bill to this expense")
    if expense.archived:
        raise PreconditionFailed(
            "Expense belongs to an archived fiscal year", expense_id=str(expense.id)
        )
    if not body:
        raise ValidationError("Bill file is empty")
    if len(body) > settings.max_bill_bytes:
        raise ValidationError(
            "Bill file is too large", max_bytes=settings.max_bill_bytes, byte_size=len(body)
        )
    content_type = content_type or mimetypes.guess_type(filename or "")[0]
    if content_type not in settings.allowed_bill_types:
        raise ValidationError(
            "Only image and PDF bills are allowed", content_type=content_type
        )

    original_name = filename or "bill"
    key = bill_key(expense.id, filename=original_name, content_type=content_type)
    storage = get_storage()
    previous_key = expense.bill_key
    replaced_body = _read_quietly(storage, key) if previous_key == key else None
    try:
        storage.put(key=key, body=body)
    except (StorageError, OSError) as e:
        raise StoreFailure("Bill storage unavailable", expense_id=str(expense.id)) from e

    try:
        expense = store.update(
            session, expense.id, {"bill_key": key, "bill_original_name": original_name[:255]}
        )
    except ClubFinanceError:
        # Put back whatever the record still points at.
        if replaced_body is not None:
            storage.put(key=key, body=replaced_body)
        else:
            storage.delete(key=key)
        log_event(logger, "upload.bill.reverted", expense_id=str(expense_id), storage_key=key)
        raise
    if previous_key and previous_key != key:
        storage.delete(key=previous_key)
    record_audit(
        action="expense_bill_upload",
        actor_id=actor.id,
        target_type="expense",
        target_id=expense.id,
        description=f"Bill attached: {original_name}",
    )
    return expense


def read_bill(session: Session, *, expense_id: uuid.UUID, member: Member) -> tuple[bytes, str]:
    expense = store.find_by_id(session, expense_id)
    if expense.member_id != member.id and not (member.is_admin or member.is_approver):
        raise PermissionDenied("Not authorized to view this bill")
    if not expense.bill_key:
        raise NotFound("Expense has no bill attached", expense_id=str(expense.id))
    try:
        body = get_storage().get(key=expense.bill_key)
    except StorageError as e:
        raise NotFound("Bill file is missing", expense_id=str(expense.id)) from e
    return body, expense.bill_original_name or PurePath(expense.bill_key).name


def _read_quietly(storage, key: str) -> bytes | None:
    try:
        return storage.get(key=key)
    except StorageError:
        return None


def _clean(value: str | None) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value).strip()
