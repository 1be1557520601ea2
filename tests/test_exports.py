from __future__ import annotations

import io
import zipfile
from datetime import date

import pytest
from openpyxl import load_workbook
from pypdf import PdfReader

from club_finance.core.config import settings
from club_finance.core.db import SessionLocal
from club_finance.core.errors import NotFound
from club_finance.core.fiscal import fiscal_year_for
from club_finance.core.storage import get_storage
from club_finance.modules.expenses.service import attach_bill
from club_finance.modules.identity.models import MemberRole
from club_finance.modules.reports.formatters import XLSX_COLUMNS, XLSX_SHEET_TITLE
from club_finance.modules.reports.service import export_bills, export_pdf, export_xlsx
from club_finance.modules.workflow.service import Approve, apply_transition

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _seed(session, make_member, make_event, make_expense):
    member = make_member(session, email="asha@example.com", first_name="Asha")
    treasurer = make_member(session, email="t@example.com", role=MemberRole.TREASURER)
    event = make_event(session, actor=treasurer, name="Beach Cleanup")
    pending = make_expense(session, member=member, event=event, amount="1500")
    approved = make_expense(session, member=member, event=event, amount="800")
    apply_transition(session, expense=approved, command=Approve(), actor=treasurer)
    return member, treasurer, event, pending


def test_xlsx_export_layout(make_member, make_event, make_expense):
    year = fiscal_year_for(date.today())
    with SessionLocal() as session:
        _seed(session, make_member, make_event, make_expense)
        body, filename = export_xlsx(session, fiscal_year=year)

    assert filename == f"financial-report-{year}.xlsx"
    wb = load_workbook(io.BytesIO(body))
    ws = wb[XLSX_SHEET_TITLE]

    headers = [c.value for c in ws[1]]
    assert headers == [h for h, _ in XLSX_COLUMNS]
    assert headers[6] == "Amount (₹)"
    header = ws["A1"]
    assert header.font.bold
    assert header.fill.fgColor.rgb == "FF4472C4"

    assert ws.cell(row=2, column=3).value == "Asha Member"
    assert ws.cell(row=2, column=5).value == "Beach Cleanup"
    total_row = ws.max_row
    assert total_row == 5
    assert ws.cell(row=total_row, column=1).value == "TOTAL"
    assert ws.cell(row=total_row, column=7).value == 2300


def test_pdf_export_metadata_and_totals(make_member, make_event, make_expense):
    year = fiscal_year_for(date.today())
    with SessionLocal() as session:
        _seed(session, make_member, make_event, make_expense)
        body, filename = export_pdf(session, fiscal_year=year)

    assert filename == f"financial-report-{year}.pdf"
    reader = PdfReader(io.BytesIO(body))
    assert reader.metadata.title == f"{settings.club_name} Financial Report {year}"
    text = reader.pages[0].extract_text() or ""
    assert "Total Entries: 2" in text
    assert "INR 2,300.00" in text
    assert "INR 800.00" in text


def test_pdf_export_of_empty_year_still_renders():
    with SessionLocal() as session:
        body, _ = export_pdf(session, fiscal_year="2019-2020")
    reader = PdfReader(io.BytesIO(body))
    assert len(reader.pages) == 1
    assert "Total Entries: 0" in (reader.pages[0].extract_text() or "")


def test_bills_zip_entry_names(make_member, make_event, make_expense):
    year = fiscal_year_for(date.today())
    with SessionLocal() as session:
        member, _, _, pending = _seed(session, make_member, make_event, make_expense)
        attach_bill(
            session,
            expense_id=pending.id,
            actor=member,
            filename="fuel.png",
            content_type="image/png",
            body=PNG_BYTES,
        )
        body, filename = export_bills(session, fiscal_year=year)
        pending_id = pending.id

    assert filename == f"bills-{year}.zip"
    with zipfile.ZipFile(io.BytesIO(body)) as zf:
        assert zf.namelist() == [f"Asha_Beach Cleanup_1500_{pending_id}.png"]
        assert zf.read(zf.namelist()[0]) == PNG_BYTES


def test_bills_zip_without_bills_is_not_found(make_member, make_event, make_expense):
    year = fiscal_year_for(date.today())
    with SessionLocal() as session:
        member, _, _, pending = _seed(session, make_member, make_event, make_expense)
        with pytest.raises(NotFound):
            export_bills(session, fiscal_year=year)

        attach_bill(
            session,
            expense_id=pending.id,
            actor=member,
            filename="fuel.png",
            content_type="image/png",
            body=PNG_BYTES,
        )
        get_storage().delete(key=f"expenses/{pending.id}/bill.png")
        with pytest.raises(NotFound):
            export_bills(session, fiscal_year=year)
