from __future__ import annotations

import os
import shutil
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Set env before any club_finance imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.club_finance_test.db")
os.environ.setdefault("LOCAL_STORAGE_PATH", ".tmp_storage_test")


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: list = []

    def dispatch(self, notification) -> None:
        self.sent.append(notification)


@pytest.fixture(autouse=True)
def _reset_db_and_storage() -> None:
    import club_finance.core.storage as storage_mod
    import club_finance.models  # noqa: F401
    from club_finance.core.db import engine
    from club_finance.core.models import Base
    from club_finance.modules.notifications.dispatcher import set_dispatcher

    storage_mod._storage = None
    set_dispatcher(None)

    storage_path = Path(os.environ["LOCAL_STORAGE_PATH"])
    if storage_path.exists():
        shutil.rmtree(storage_path)

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield

    set_dispatcher(None)


@pytest.fixture
def notifications() -> RecordingDispatcher:
    from club_finance.modules.notifications.dispatcher import set_dispatcher

    recorder = RecordingDispatcher()
    set_dispatcher(recorder)
    return recorder


@pytest.fixture
def make_member():
    from club_finance.modules.identity.models import MemberRole
    from club_finance.modules.identity.service import create_member

    def _make(session, *, email, role=MemberRole.MEMBER, is_admin=False, first_name="Test"):
        return create_member(
            session,
            email=email,
            password="password123",
            first_name=first_name,
            last_name="Member",
            role=role,
            is_admin=is_admin,
        )

    return _make


@pytest.fixture
def make_event():
    from club_finance.modules.events.models import EventCategory
    from club_finance.modules.events.service import create_event

    def _make(session, *, actor, name="Blood Donation Camp", budget="0", start=None, end=None):
        start = start or date.today()
        return create_event(
            session,
            actor=actor,
            name=name,
            category=EventCategory.COMMUNITY_SERVICE,
            start_date=start,
            end_date=end or start,
            estimated_budget=Decimal(budget),
        )

    return _make


@pytest.fixture
def make_expense():
    from club_finance.modules.expenses.models import ExpenseCategory, PaymentMode
    from club_finance.modules.expenses.service import submit_expense

    def _make(
        session,
        *,
        member,
        event,
        amount="1500",
        category=ExpenseCategory.TRAVEL_EXPENSE,
        expense_date=None,
    ):
        return submit_expense(
            session,
            member=member,
            event_id=event.id,
            category=category,
            amount=Decimal(amount),
            expense_date=expense_date or date.today(),
            payment_mode=PaymentMode.UPI,
        )

    return _make
