from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from club_finance.core.db import SessionLocal
from club_finance.core.errors import (
    Conflict,
    InvalidTransition,
    PreconditionFailed,
    ValidationError,
)
from club_finance.modules.audit.models import AuditEvent
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import ExpenseStatus
from club_finance.modules.identity.models import Member, MemberRole
from club_finance.modules.notifications.dispatcher import NotificationType
from club_finance.modules.workflow.service import (
    Approve,
    Reject,
    Reimburse,
    allowed_commands,
    apply_transition,
    transition_expense,
)


def test_submit_approve_reimburse_then_reject_fails(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)

        expense = make_expense(session, member=member, event=event, amount="1500")
        assert expense.status == ExpenseStatus.PENDING
        assert expense.amount == Decimal("1500")

        approved = apply_transition(session, expense=expense, command=Approve(), actor=treasurer)
        assert approved.status == ExpenseStatus.APPROVED
        assert approved.approved_by_id == treasurer.id
        assert approved.approved_at is not None

        reimbursed = apply_transition(
            session, expense=approved, command=Reimburse(reference="UTR123"), actor=treasurer
        )
        assert reimbursed.status == ExpenseStatus.REIMBURSED
        assert reimbursed.reimbursement_reference == "UTR123"
        assert reimbursed.reimbursed_by_id == treasurer.id

        with pytest.raises(InvalidTransition) as exc:
            apply_transition(session, expense=reimbursed, command=Reject("late"), actor=treasurer)
        assert exc.value.current_status == ExpenseStatus.REIMBURSED


def test_reject_requires_reason(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense = make_expense(session, member=member, event=event)

        with pytest.raises(ValidationError):
            apply_transition(session, expense=expense, command=Reject("   "), actor=treasurer)

        assert store.find_by_id(session, expense.id).status == ExpenseStatus.PENDING

        rejected = apply_transition(
            session, expense=expense, command=Reject(" No receipt "), actor=treasurer
        )
        assert rejected.status == ExpenseStatus.REJECTED
        assert rejected.rejection_reason == "No receipt"
        assert rejected.rejected_by_id == treasurer.id
        assert rejected.approved_by_id is None


@pytest.mark.parametrize(
    "status, command",
    [
        (ExpenseStatus.PENDING, Reimburse()),
        (ExpenseStatus.APPROVED, Approve()),
        (ExpenseStatus.APPROVED, Reject("dup")),
        (ExpenseStatus.REJECTED, Approve()),
        (ExpenseStatus.REJECTED, Reimburse()),
    ],
)
def test_illegal_commands_leave_record_unmodified(
    status, command, make_member, make_event, make_expense
):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense = make_expense(session, member=member, event=event)
        if status == ExpenseStatus.APPROVED:
            expense = apply_transition(session, expense=expense, command=Approve(), actor=treasurer)
        elif status == ExpenseStatus.REJECTED:
            expense = apply_transition(
                session, expense=expense, command=Reject("no"), actor=treasurer
            )
        updated_at = expense.updated_at

        with pytest.raises(InvalidTransition) as exc:
            apply_transition(session, expense=expense, command=command, actor=treasurer)
        assert exc.value.current_status == status

        session.expire_all()
        fresh = store.find_by_id(session, expense.id)
        assert fresh.status == status
        assert fresh.updated_at == updated_at


def test_allowed_commands():
    assert allowed_commands(ExpenseStatus.PENDING) == [Approve, Reject]
    assert allowed_commands(ExpenseStatus.APPROVED) == [Reimburse]
    for terminal in (ExpenseStatus.REJECTED, ExpenseStatus.REIMBURSED, ExpenseStatus.PAID):
        assert allowed_commands(terminal) == []


def test_concurrent_approvals_one_wins(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        first = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        second = make_member(session, email="president@example.com", role=MemberRole.PRESIDENT)
        event = make_event(session, actor=first)
        expense_id = make_expense(session, member=member, event=event).id
        first_id, second_id = first.id, second.id

    with SessionLocal() as session_a, SessionLocal() as session_b:
        seen_a = store.find_by_id(session_a, expense_id)
        seen_b = store.find_by_id(session_b, expense_id)
        actor_a = session_a.get(Member, first_id)
        actor_b = session_b.get(Member, second_id)
        assert seen_a.status == seen_b.status == ExpenseStatus.PENDING

        apply_transition(session_a, expense=seen_a, command=Approve(), actor=actor_a)
        with pytest.raises(Conflict):
            apply_transition(session_b, expense=seen_b, command=Approve(), actor=actor_b)

    with SessionLocal() as session:
        final = store.find_by_id(session, expense_id)
        assert final.status == ExpenseStatus.APPROVED
        assert final.approved_by_id == first_id


def test_stale_approve_against_rejected_record_is_conflict(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense_id = make_expense(session, member=member, event=event).id
        treasurer_id = treasurer.id

    with SessionLocal() as session_a, SessionLocal() as session_b:
        actor_a = session_a.get(Member, treasurer_id)
        actor_b = session_b.get(Member, treasurer_id)
        seen_b = store.find_by_id(session_b, expense_id)
        transition_expense(session_a, expense_id=expense_id, command=Reject("dup"), actor=actor_a)

        with pytest.raises(Conflict) as exc:
            apply_transition(session_b, expense=seen_b, command=Approve(), actor=actor_b)
        assert exc.value.context["current_status"] == ExpenseStatus.REJECTED


def test_transitions_notify_and_audit(notifications, make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense = make_expense(session, member=member, event=event, amount="800")
        apply_transition(session, expense=expense, command=Approve(), actor=treasurer)

        kinds = [n.event_type for n in notifications.sent]
        assert kinds == [NotificationType.EXPENSE_SUBMITTED, NotificationType.EXPENSE_APPROVED]
        approved = notifications.sent[-1]
        assert approved.expense_id == expense.id
        assert approved.member_id == member.id
        assert approved.event_id == event.id
        assert approved.amount == Decimal("800")
        assert approved.new_status == ExpenseStatus.APPROVED

        actions = [
            a.action
            for a in session.scalars(
                select(AuditEvent).where(AuditEvent.target_id == expense.id)
            )
        ]
        assert sorted(actions) == ["expense_approve", "expense_create"]


def test_audit_and_notification_failures_do_not_undo_transition(
    monkeypatch, make_member, make_event, make_expense
):
    import club_finance.modules.audit.service as audit_service
    from club_finance.modules.notifications.dispatcher import set_dispatcher

    class _Broken:
        def dispatch(self, notification) -> None:
            raise RuntimeError("transport down")

    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense = make_expense(session, member=member, event=event)

        def _no_session():
            raise RuntimeError("audit store down")

        monkeypatch.setattr(audit_service, "SessionLocal", _no_session)
        set_dispatcher(_Broken())

        approved = apply_transition(session, expense=expense, command=Approve(), actor=treasurer)
        assert approved.status == ExpenseStatus.APPROVED

    with SessionLocal() as session:
        assert store.find_by_id(session, expense.id).status == ExpenseStatus.APPROVED


def test_archived_expense_cannot_transition(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="treasurer@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense = make_expense(session, member=member, event=event)
        store.update(session, expense.id, {"archived": True})

        with pytest.raises(PreconditionFailed):
            apply_transition(session, expense=expense, command=Approve(), actor=treasurer)
