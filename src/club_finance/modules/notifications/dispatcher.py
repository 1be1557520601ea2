"""
Notification dispatch for expense lifecycle events.

Delivery is fire-and-forget: ``notify_expense`` never raises, so a broken
transport cannot undo a committed write. The default dispatcher only emits a
structured log line; deployments install a real transport with
``set_dispatcher``.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import asdict, dataclass
from decimal import Decimal

from club_finance.core.logging import get_logger, log_event, log_exception
from club_finance.modules.expenses.models import Expense, ExpenseStatus

logger = get_logger(__name__)


class NotificationType(str, enum.Enum):
    EXPENSE_SUBMITTED = "expense_submitted"
    EXPENSE_APPROVED = "expense_approved"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_REIMBURSED = "expense_reimbursed"


@dataclass(frozen=True)
class Notification:
    event_type: NotificationType
    expense_id: uuid.UUID
    member_id: uuid.UUID
    amount: Decimal
    event_id: uuid.UUID
    new_status: ExpenseStatus

    def payload(self) -> dict[str, str]:
        return {
            k: v.value if isinstance(v, enum.Enum) else str(v) for k, v in asdict(self).items()
        }


class NotificationDispatcher:
    def dispatch(self, notification: Notification) -> None:  # pragma: no cover
        raise NotImplementedError


class LoggingDispatcher(NotificationDispatcher):
    def dispatch(self, notification: Notification) -> None:
        log_event(logger, "notification.dispatch", **notification.payload())


_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = LoggingDispatcher()
    return _dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher | None) -> None:
    """Install ``dispatcher``; ``None`` restores the logging default."""
    global _dispatcher  # noqa: PLW0603
    _dispatcher = dispatcher


def notify_expense(event_type: NotificationType, expense: Expense) -> None:
    notification = Notification(
        event_type=event_type,
        expense_id=expense.id,
        member_id=expense.member_id,
        amount=expense.amount,
        event_id=expense.event_id,
        new_status=expense.status,
    )
    try:
        get_dispatcher().dispatch(notification)
    except Exception:  # noqa: BLE001
        log_exception(
            logger,
            "notification.dispatch.failure",
            event_type=event_type.value,
            expense_id=str(expense.id),
        )
