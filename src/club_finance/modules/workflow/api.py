from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from club_finance.api.deps import require_approver
from club_finance.core.db import db_session
from club_finance.modules.expenses.api import expense_out
from club_finance.modules.expenses.schemas import ExpenseOut
from club_finance.modules.identity.models import Member
from club_finance.modules.workflow.schemas import RejectRequest, ReimburseRequest
from club_finance.modules.workflow.service import (
    Approve,
    Reject,
    Reimburse,
    transition_expense,
)

router = APIRouter(tags=["workflow"])


@router.post("/expenses/{expense_id}/approve", response_model=ExpenseOut)
def approve_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ExpenseOut:
    expense = transition_expense(session, expense_id=expense_id, command=Approve(), actor=actor)
    return expense_out(expense)


@router.post("/expenses/{expense_id}/reject", response_model=ExpenseOut)
def reject_expense_endpoint(
    expense_id: uuid.UUID,
    payload: RejectRequest,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ExpenseOut:
    expense = transition_expense(
        session, expense_id=expense_id, command=Reject(reason=payload.reason), actor=actor
    )
    return expense_out(expense)


@router.post("/expenses/{expense_id}/reimburse", response_model=ExpenseOut)
def reimburse_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ReimburseRequest | None = None,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ExpenseOut:
    reference = payload.reference if payload else None
    expense = transition_expense(
        session, expense_id=expense_id, command=Reimburse(reference=reference), actor=actor
    )
    return expense_out(expense)
