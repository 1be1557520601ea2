"""
In-process aggregation over expense records.

Every function here is pure: it takes records already pulled from the ledger
store (ORM rows or any object exposing the same attributes) and returns plain
dataclasses. Sums are exact ``Decimal`` arithmetic.
"""

from __future__ import annotations

import enum
import uuid
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from club_finance.core.errors import InvalidArgument
from club_finance.modules.expenses.models import CONTRIBUTING_STATUSES, Expense, ExpenseStatus

ZERO = Decimal("0")


class Dimension(str, enum.Enum):
    CATEGORY = "category"
    STATUS = "status"
    MONTH = "month"
    EVENT = "event"
    MEMBER = "member"


@dataclass(frozen=True)
class Rollup:
    group_key: Any
    total_amount: Decimal
    count: int


@dataclass(frozen=True)
class StatusTotals:
    total_expenses: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_rejected: Decimal
    total_reimbursed: Decimal


@dataclass(frozen=True)
class Contributor:
    rank: int
    member_id: uuid.UUID
    total_amount: Decimal
    count: int
    events_count: int


@dataclass(frozen=True)
class EventVariance:
    event_id: uuid.UUID
    name: str
    estimated_budget: Decimal
    total_expenses: Decimal
    approved_expenses: Decimal
    expense_count: int
    variance: Decimal


@dataclass(frozen=True)
class MemberBreakdown:
    member_id: uuid.UUID
    total_amount: Decimal
    count: int
    approved_amount: Decimal
    pending_amount: Decimal
    rejected_amount: Decimal


def _value(v: Any) -> Any:
    return v.value if isinstance(v, enum.Enum) else v


_KEY_FUNCS: dict[Dimension, Callable[[Expense], Any]] = {
    Dimension.CATEGORY: lambda e: _value(e.category),
    Dimension.STATUS: lambda e: _value(e.status),
    Dimension.MONTH: lambda e: f"{e.expense_date.year:04d}-{e.expense_date.month:02d}",
    Dimension.EVENT: lambda e: e.event_id,
    Dimension.MEMBER: lambda e: e.member_id,
}


def _amount(e: Expense) -> Decimal:
    return Decimal(str(e.amount))


def rollup(records: Iterable[Expense], dimension: Dimension | str) -> list[Rollup]:
    """
    Group ``records`` by ``dimension``.

    Sorted by total descending, ties by key ascending. ``month`` groups are
    keyed "YYYY-MM" and sorted chronologically instead.
    """
    try:
        dim = Dimension(dimension)
    except ValueError as e:
        raise InvalidArgument(
            f"Unknown dimension: {dimension!r}", allowed=[d.value for d in Dimension]
        ) from e

    key_of = _KEY_FUNCS[dim]
    totals: dict[Any, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[Any, int] = defaultdict(int)
    for e in records:
        key = key_of(e)
        totals[key] += _amount(e)
        counts[key] += 1

    out = [Rollup(group_key=k, total_amount=totals[k], count=counts[k]) for k in totals]
    if dim == Dimension.MONTH:
        out.sort(key=lambda r: r.group_key)
    else:
        out.sort(key=lambda r: (-r.total_amount, str(r.group_key)))
    return out


def totals_by_status(status_rollups: Iterable[Rollup]) -> StatusTotals:
    by_status = {_value(r.group_key): r.total_amount for r in status_rollups}
    return StatusTotals(
        total_expenses=sum(by_status.values(), ZERO),
        total_approved=by_status.get(ExpenseStatus.APPROVED.value, ZERO),
        total_pending=by_status.get(ExpenseStatus.PENDING.value, ZERO),
        total_rejected=by_status.get(ExpenseStatus.REJECTED.value, ZERO),
        total_reimbursed=by_status.get(ExpenseStatus.REIMBURSED.value, ZERO),
    )


def _contributing(records: Iterable[Expense]) -> list[Expense]:
    return [e for e in records if ExpenseStatus(e.status) in CONTRIBUTING_STATUSES]


def top_contributors(records: Iterable[Expense], limit: int = 10) -> list[Contributor]:
    if limit < 1:
        raise InvalidArgument("limit must be at least 1", limit=limit)
    contributing = _contributing(records)
    events: dict[uuid.UUID, set] = defaultdict(set)
    for e in contributing:
        events[e.member_id].add(e.event_id)

    ranked = rollup(contributing, Dimension.MEMBER)[:limit]
    return [
        Contributor(
            rank=i,
            member_id=r.group_key,
            total_amount=r.total_amount,
            count=r.count,
            events_count=len(events[r.group_key]),
        )
        for i, r in enumerate(ranked, start=1)
    ]


def event_budget_variance(events: Iterable[Any], records: Iterable[Expense]) -> list[EventVariance]:
    """One row per event, in the order given. Negative variance means overspend."""
    by_event: dict[uuid.UUID, list[Expense]] = defaultdict(list)
    for e in records:
        by_event[e.event_id].append(e)

    out: list[EventVariance] = []
    for event in events:
        spent = by_event.get(event.id, [])
        total = sum((_amount(e) for e in spent), ZERO)
        budget = Decimal(str(event.estimated_budget or 0))
        out.append(
            EventVariance(
                event_id=event.id,
                name=event.name,
                estimated_budget=budget,
                total_expenses=total,
                approved_expenses=sum((_amount(e) for e in _contributing(spent)), ZERO),
                expense_count=len(spent),
                variance=budget - total,
            )
        )
    return out


def member_breakdown(records: Iterable[Expense]) -> list[MemberBreakdown]:
    rows: dict[uuid.UUID, dict[str, Any]] = {}
    for e in records:
        row = rows.setdefault(
            e.member_id,
            {"total": ZERO, "count": 0, "approved": ZERO, "pending": ZERO, "rejected": ZERO},
        )
        amount = _amount(e)
        status = ExpenseStatus(e.status)
        row["total"] += amount
        row["count"] += 1
        if status in CONTRIBUTING_STATUSES:
            row["approved"] += amount
        elif status == ExpenseStatus.PENDING:
            row["pending"] += amount
        elif status == ExpenseStatus.REJECTED:
            row["rejected"] += amount

    out = [
        MemberBreakdown(
            member_id=member_id,
            total_amount=row["total"],
            count=row["count"],
            approved_amount=row["approved"],
            pending_amount=row["pending"],
            rejected_amount=row["rejected"],
        )
        for member_id, row in rows.items()
    ]
    out.sort(key=lambda r: (-r.total_amount, str(r.member_id)))
    return out
