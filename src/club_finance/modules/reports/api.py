from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from club_finance.api.deps import get_current_member, require_admin
from club_finance.core.db import db_session
from club_finance.core.fiscal import resolve_fiscal_year
from club_finance.modules.identity.models import Member
from club_finance.modules.reports.schemas import (
    AdminDashboardOut,
    EventReportOut,
    FinancialSummaryOut,
    LeaderboardOut,
    MemberDashboardOut,
    MemberReportOut,
    RollupReportOut,
)
from club_finance.modules.reports.service import (
    admin_dashboard,
    event_wise_report,
    export_bills,
    export_pdf,
    export_xlsx,
    financial_summary,
    leaderboard,
    member_dashboard,
    member_wise_report,
    rollup_report,
)

router = APIRouter(tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _year(fiscal_year: str | None) -> str:
    return resolve_fiscal_year(fiscal_year, today=date.today())


def _attachment(body: bytes, *, filename: str, media_type: str) -> Response:
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/reports/financial-summary", response_model=FinancialSummaryOut)
def financial_summary_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> FinancialSummaryOut:
    return financial_summary(session, fiscal_year=_year(fiscal_year))


@router.get("/reports/member-wise", response_model=MemberReportOut)
def member_wise_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> MemberReportOut:
    return member_wise_report(session, fiscal_year=_year(fiscal_year))


@router.get("/reports/event-wise", response_model=EventReportOut)
def event_wise_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> EventReportOut:
    return event_wise_report(session, fiscal_year=_year(fiscal_year))


@router.get("/reports/rollup", response_model=RollupReportOut)
def rollup_endpoint(
    dimension: str,
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> RollupReportOut:
    return rollup_report(session, fiscal_year=_year(fiscal_year), dimension=dimension)


@router.get("/reports/leaderboard", response_model=LeaderboardOut)
def leaderboard_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(get_current_member),
) -> LeaderboardOut:
    return leaderboard(session, fiscal_year=_year(fiscal_year))


@router.get("/reports/dashboard", response_model=AdminDashboardOut)
def admin_dashboard_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> AdminDashboardOut:
    return admin_dashboard(session, fiscal_year=_year(fiscal_year))


@router.get("/reports/dashboard/me", response_model=MemberDashboardOut)
def member_dashboard_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> MemberDashboardOut:
    return member_dashboard(session, member=member, fiscal_year=_year(fiscal_year))


@router.get("/reports/export/pdf")
def export_pdf_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> Response:
    body, filename = export_pdf(session, fiscal_year=_year(fiscal_year))
    return _attachment(body, filename=filename, media_type="application/pdf")


@router.get("/reports/export/excel")
def export_excel_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> Response:
    body, filename = export_xlsx(session, fiscal_year=_year(fiscal_year))
    return _attachment(body, filename=filename, media_type=XLSX_MEDIA_TYPE)


@router.get("/reports/export/bills")
def export_bills_endpoint(
    fiscal_year: str | None = None,
    event_id: uuid.UUID | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> Response:
    body, filename = export_bills(session, fiscal_year=_year(fiscal_year), event_id=event_id)
    return _attachment(body, filename=filename, media_type="application/zip")
