from __future__ import annotations

import mimetypes
import uuid
from datetime import date

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from club_finance.api.deps import get_current_member, require_admin, require_approver
from club_finance.core.db import db_session
from club_finance.core.fiscal import resolve_fiscal_year
from club_finance.core.logging import get_logger, log_event
from club_finance.modules.expenses.models import Expense, ExpenseCategory, ExpenseStatus
from club_finance.modules.expenses.schemas import (
    ExpenseCreate,
    ExpenseOut,
    ExpensePage,
    ExpenseUpdate,
    ManualExpenseCreate,
)
from club_finance.modules.expenses.service import (
    Page,
    attach_bill,
    create_manual_expense,
    delete_expense,
    get_expense_for_member,
    list_expenses,
    read_bill,
    submit_expense,
    update_expense_details,
)
from club_finance.modules.expenses.store import ExpenseFilter
from club_finance.modules.identity.models import Member
from club_finance.modules.workflow.service import allowed_commands, command_name

router = APIRouter(tags=["expenses"])
logger = get_logger(__name__)


def expense_out(expense: Expense) -> ExpenseOut:
    out = ExpenseOut.model_validate(expense, from_attributes=True)
    if not expense.archived:
        out.allowed_actions = [command_name(c) for c in allowed_commands(expense.status)]
    return out


def page_out(page: Page) -> ExpensePage:
    return ExpensePage(
        items=[expense_out(e) for e in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
        pages=page.pages,
        has_next=page.has_next,
        has_prev=page.has_prev,
    )


@router.post("/expenses", response_model=ExpenseOut, status_code=201)
def submit_expense_endpoint(
    payload: ExpenseCreate,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> ExpenseOut:
    expense = submit_expense(session, member=member, **payload.model_dump())
    return expense_out(expense)


@router.post("/expenses/manual", response_model=ExpenseOut, status_code=201)
def create_manual_expense_endpoint(
    payload: ManualExpenseCreate,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ExpenseOut:
    expense = create_manual_expense(session, actor=actor, **payload.model_dump())
    return expense_out(expense)


@router.get("/expenses", response_model=ExpensePage)
def list_expenses_endpoint(
    fiscal_year: str | None = None,
    status: ExpenseStatus | None = None,
    category: ExpenseCategory | None = None,
    event_id: uuid.UUID | None = None,
    member_id: uuid.UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> ExpensePage:
    flt = ExpenseFilter(
        fiscal_year=resolve_fiscal_year(fiscal_year, today=date.today()),
        status=status,
        category=category,
        event_id=event_id,
        member_id=member_id,
        date_from=date_from,
        date_to=date_to,
    )
    return page_out(list_expenses(session, flt=flt, page=page, limit=limit))


@router.get("/expenses/mine", response_model=ExpensePage)
def my_expenses_endpoint(
    fiscal_year: str | None = None,
    status: ExpenseStatus | None = None,
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> ExpensePage:
    flt = ExpenseFilter(
        member_id=member.id,
        fiscal_year=resolve_fiscal_year(fiscal_year, today=date.today()),
        status=status,
    )
    return page_out(list_expenses(session, flt=flt, page=page, limit=limit))


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> ExpenseOut:
    return expense_out(get_expense_for_member(session, expense_id=expense_id, member=member))


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense_endpoint(
    expense_id: uuid.UUID,
    payload: ExpenseUpdate,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ExpenseOut:
    expense = update_expense_details(
        session,
        expense_id=expense_id,
        actor=actor,
        changes=payload.model_dump(exclude_unset=True),
    )
    return expense_out(expense)


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> Response:
    delete_expense(session, expense_id=expense_id, actor=actor)
    return Response(status_code=204)


@router.post("/expenses/{expense_id}/bill", response_model=ExpenseOut)
async def upload_bill_endpoint(
    expense_id: uuid.UUID,
    upload: UploadFile = File(...),
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> ExpenseOut:
    body = await upload.read()
    log_event(
        logger,
        "upload.received",
        expense_id=str(expense_id),
        filename=upload.filename or "bill",
        content_type=upload.content_type,
        byte_size=len(body),
    )
    expense = attach_bill(
        session,
        expense_id=expense_id,
        actor=member,
        filename=upload.filename or "bill",
        content_type=upload.content_type,
        body=body,
    )
    return expense_out(expense)


@router.get("/expenses/{expense_id}/bill")
def download_bill_endpoint(
    expense_id: uuid.UUID,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> Response:
    body, filename = read_bill(session, expense_id=expense_id, member=member)
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
