"""
Expense approval state machine.

``apply_transition`` is the only code path that changes ``Expense.status`` after
creation. Commands are small value objects; the transition table maps each
command type to the single source status it is legal from. The write itself is
a conditional update on that source status, so two approvers acting on the
same pending record cannot both succeed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from club_finance.core.errors import (
    InvalidArgument,
    InvalidTransition,
    PreconditionFailed,
    ValidationError,
)
from club_finance.core.logging import get_logger, log_event
from club_finance.modules.audit.service import record_audit
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import Expense, ExpenseStatus
from club_finance.modules.identity.models import Member
from club_finance.modules.notifications.dispatcher import NotificationType, notify_expense

logger = get_logger(__name__)


@dataclass(frozen=True)
class Approve:
    pass


@dataclass(frozen=True)
class Reject:
    reason: str


@dataclass(frozen=True)
class Reimburse:
    reference: str | None = None


Command = Approve | Reject | Reimburse


@dataclass(frozen=True)
class Transition:
    source: ExpenseStatus
    target: ExpenseStatus
    audit_action: str
    notification: NotificationType


TRANSITIONS: dict[type, Transition] = {
    Approve: Transition(
        ExpenseStatus.PENDING,
        ExpenseStatus.APPROVED,
        "expense_approve",
        NotificationType.EXPENSE_APPROVED,
    ),
    Reject: Transition(
        ExpenseStatus.PENDING,
        ExpenseStatus.REJECTED,
        "expense_reject",
        NotificationType.EXPENSE_REJECTED,
    ),
    Reimburse: Transition(
        ExpenseStatus.APPROVED,
        ExpenseStatus.REIMBURSED,
        "expense_reimburse",
        NotificationType.EXPENSE_REIMBURSED,
    ),
}


def command_name(command: Command | type) -> str:
    cls = command if isinstance(command, type) else type(command)
    return cls.__name__.lower()


def allowed_commands(status: ExpenseStatus) -> list[type]:
    return [cmd for cmd, t in TRANSITIONS.items() if t.source == status]


def apply_transition(
    session: Session,
    *,
    expense: Expense,
    command: Command,
    actor: Member,
    now: datetime | None = None,
) -> Expense:
    transition = TRANSITIONS.get(type(command))
    if transition is None:
        raise InvalidArgument(f"Unknown command: {command!r}")

    if isinstance(command, Reject) and not (command.reason or "").strip():
        raise ValidationError("Rejection reason is required")

    if expense.archived:
        raise PreconditionFailed(
            "Expense belongs to an archived fiscal year", expense_id=str(expense.id)
        )

    observed = expense.status
    if observed != transition.source:
        raise InvalidTransition(
            f"Cannot {command_name(command)} expense with status: {observed.value}",
            current_status=observed,
        )

    now = now or datetime.now(UTC)
    patch = {"status": transition.target, **_metadata_for(command, actor_id=actor.id, now=now)}
    updated = store.update(session, expense.id, patch, expected_status=transition.source)

    log_event(
        logger,
        "workflow.transition",
        expense_id=str(updated.id),
        command=command_name(command),
        from_status=observed.value,
        to_status=updated.status.value,
        actor_id=str(actor.id),
    )
    record_audit(
        action=transition.audit_action,
        actor_id=actor.id,
        target_type="expense",
        target_id=updated.id,
        description=_audit_description(command, updated),
        change_set={"from": observed, "to": updated.status, **patch},
    )
    notify_expense(transition.notification, updated)
    return updated


def transition_expense(
    session: Session, *, expense_id: uuid.UUID, command: Command, actor: Member
) -> Expense:
    expense = store.find_by_id(session, expense_id)
    return apply_transition(session, expense=expense, command=command, actor=actor)


def _metadata_for(command: Command, *, actor_id: uuid.UUID, now: datetime) -> dict[str, Any]:
    if isinstance(command, Approve):
        return {"approved_by_id": actor_id, "approved_at": now}
    if isinstance(command, Reject):
        return {
            "rejected_by_id": actor_id,
            "rejected_at": now,
            "rejection_reason": command.reason.strip(),
        }
    reference = (command.reference or "").strip() or None
    return {
        "reimbursed_by_id": actor_id,
        "reimbursed_at": now,
        "reimbursement_reference": reference,
    }


def _audit_description(command: Command, expense: Expense) -> str:
    if isinstance(command, Reject):
        return f"Expense rejected: {expense.amount} - {expense.rejection_reason}"
    if isinstance(command, Reimburse):
        return f"Expense reimbursed: {expense.amount}"
    return f"Expense approved: {expense.amount}"
