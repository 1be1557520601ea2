from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest

from club_finance.core.db import SessionLocal
from club_finance.core.errors import (
    Conflict,
    InvalidArgument,
    NotFound,
    PreconditionFailed,
    ValidationError,
)
from club_finance.modules.expenses import store
from club_finance.modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    PaymentMode,
)
from club_finance.modules.expenses.store import ExpenseFilter
from club_finance.modules.identity.models import MemberRole


def _expense(member, event, **overrides) -> Expense:
    fields = dict(
        member_id=member.id,
        event_id=event.id,
        category=ExpenseCategory.FOOD_REFRESHMENTS,
        amount=Decimal("250"),
        expense_date=date(2025, 8, 10),
        payment_mode=PaymentMode.CASH,
        fiscal_year="2025-2026",
    )
    fields.update(overrides)
    return Expense(**fields)


def test_insert_defaults_status_and_archive_flag(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)

        expense_id = store.insert(session, _expense(member, event))

        stored = store.find_by_id(session, expense_id)
        assert stored.status == ExpenseStatus.PENDING
        assert stored.archived is False
        assert stored.amount == Decimal("250")
        assert stored.created_at is not None


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": Decimal("0.50")},
        {"amount": "not-a-number"},
        {"amount": None},
        {"payment_mode": "barter"},
        {"fiscal_year": "2025"},
        {"event_id": None},
    ],
)
def test_insert_rejects_invalid_records(overrides, make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)

        with pytest.raises(ValidationError):
            store.insert(session, _expense(member, event, **overrides))

        assert store.count_by_filter(session, ExpenseFilter()) == 0


def test_find_by_id_missing():
    with SessionLocal() as session:
        with pytest.raises(NotFound):
            store.find_by_id(session, uuid.uuid4())


def test_find_by_filter_combines_conditions(make_member, make_event):
    with SessionLocal() as session:
        alice = make_member(session, email="alice@example.com")
        bob = make_member(session, email="bob@example.com")
        event = make_event(session, actor=alice)
        other_event = make_event(session, actor=alice, name="Book Drive")

        store.insert(session, _expense(alice, event, expense_date=date(2025, 8, 1)))
        store.insert(session, _expense(alice, event, expense_date=date(2025, 9, 15)))
        store.insert(
            session,
            _expense(alice, other_event, category=ExpenseCategory.DONATION),
        )
        store.insert(session, _expense(bob, event, status=ExpenseStatus.APPROVED))
        store.insert(session, _expense(bob, event, fiscal_year="2024-2025"))

        assert store.count_by_filter(session, ExpenseFilter(member_id=alice.id)) == 3
        assert store.count_by_filter(session, ExpenseFilter(fiscal_year="2025-2026")) == 4
        assert (
            store.count_by_filter(
                session, ExpenseFilter(member_id=bob.id, status=ExpenseStatus.APPROVED)
            )
            == 1
        )
        assert (
            store.count_by_filter(session, ExpenseFilter(category=ExpenseCategory.DONATION)) == 1
        )
        in_window = store.find_by_filter(
            session,
            ExpenseFilter(
                member_id=alice.id,
                event_id=event.id,
                date_from=date(2025, 9, 1),
                date_to=date(2025, 9, 30),
            ),
        )
        assert [e.expense_date for e in in_window] == [date(2025, 9, 15)]
        assert store.find_by_filter(session, ExpenseFilter(has_bill=True)) == []


def test_filter_rejects_inverted_date_range():
    with pytest.raises(InvalidArgument):
        ExpenseFilter(date_from=date(2025, 9, 1), date_to=date(2025, 8, 1))


def test_find_by_filter_pages_newest_first(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)
        for day in range(1, 6):
            store.insert(session, _expense(member, event, expense_date=date(2025, 8, day)))

        flt = ExpenseFilter(member_id=member.id)
        first = store.find_by_filter(session, flt, order_by="expense_date", offset=0, limit=2)
        second = store.find_by_filter(session, flt, order_by="expense_date", offset=2, limit=2)
        last = store.find_by_filter(session, flt, order_by="expense_date", offset=4, limit=2)

        assert [e.expense_date.day for e in first] == [5, 4]
        assert [e.expense_date.day for e in second] == [3, 2]
        assert [e.expense_date.day for e in last] == [1]
        assert store.count_by_filter(session, flt) == 5


def test_update_missing_record():
    with SessionLocal() as session:
        with pytest.raises(NotFound):
            store.update(session, uuid.uuid4(), {"notes": "x"})


def test_update_refuses_immutable_fields(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        other = make_member(session, email="other@example.com")
        event = make_event(session, actor=member)
        expense_id = store.insert(session, _expense(member, event))

        for patch in ({"member_id": other.id}, {"fiscal_year": "2024-2025"}):
            with pytest.raises(ValidationError):
                store.update(session, expense_id, patch)

        assert store.find_by_id(session, expense_id).member_id == member.id


def test_update_validates_amount(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)
        expense_id = store.insert(session, _expense(member, event))

        with pytest.raises(ValidationError):
            store.update(session, expense_id, {"amount": Decimal("0")})

        updated = store.update(session, expense_id, {"amount": "300.25", "notes": "fuel"})
        assert updated.amount == Decimal("300.25")
        assert updated.notes == "fuel"


def test_delete_removes_record_but_not_archived_ones(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)
        live_id = store.insert(session, _expense(member, event))
        frozen_id = store.insert(session, _expense(member, event, archived=True))

        store.delete(session, live_id)
        with pytest.raises(NotFound):
            store.find_by_id(session, live_id)

        with pytest.raises(PreconditionFailed):
            store.delete(session, frozen_id)
        with pytest.raises(PreconditionFailed):
            store.update(session, frozen_id, {"notes": "late edit"})


def test_store_failure_is_typed(monkeypatch, make_member, make_event):
    from sqlalchemy.exc import OperationalError

    from club_finance.core.errors import StoreFailure

    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)

        def _boom(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session, "scalars", _boom)
        with pytest.raises(StoreFailure):
            store.find_by_filter(session, ExpenseFilter(event_id=event.id))


def test_insert_keeps_explicit_status(make_member, make_event):
    with SessionLocal() as session:
        treasurer = make_member(session, email="t@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense_id = store.insert(
            session, _expense(treasurer, event, status=ExpenseStatus.PAID)
        )
        assert store.find_by_id(session, expense_id).status == ExpenseStatus.PAID


def test_conditional_update_moves_status_once(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)
        expense_id = store.insert(session, _expense(member, event))

        approved = store.update(
            session,
            expense_id,
            {"status": ExpenseStatus.APPROVED},
            expected_status=ExpenseStatus.PENDING,
        )
        assert approved.status == ExpenseStatus.APPROVED

        with pytest.raises(Conflict) as exc:
            store.update(
                session,
                expense_id,
                {"status": ExpenseStatus.REJECTED},
                expected_status=ExpenseStatus.PENDING,
            )
        assert exc.value.context["current_status"] == ExpenseStatus.APPROVED
        assert store.find_by_id(session, expense_id).status == ExpenseStatus.APPROVED


def test_empty_patch_on_archived_record_is_refused(make_member, make_event):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        event = make_event(session, actor=member)
        live_id = store.insert(session, _expense(member, event))
        frozen_id = store.insert(session, _expense(member, event, archived=True))

        assert store.update(session, live_id, {}).id == live_id
        with pytest.raises(PreconditionFailed):
            store.update(session, frozen_id, {})
