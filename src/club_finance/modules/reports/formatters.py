from __future__ import annotations

import io
import uuid
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import PurePath

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from pypdf import PdfReader, PdfWriter

from club_finance.core.fiscal import format_currency
from club_finance.core.logging import get_logger, log_event
from club_finance.core.storage import ObjectStorage, StorageError

logger = get_logger(__name__)

# Courier only covers latin-1, so the rupee sign is spelled out in PDFs.
PDF_CURRENCY_SYMBOL = "INR "

XLSX_SHEET_TITLE = "Financial Report"
XLSX_COLUMNS: list[tuple[str, int]] = [
    ("Date", 12),
    ("Member ID", 15),
    ("Member Name", 20),
    ("Email", 25),
    ("Event", 25),
    ("Category", 18),
    ("Amount (₹)", 12),
    ("Payment Mode", 15),
    ("Status", 12),
    ("Description", 30),
]
XLSX_HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")
XLSX_HEADER_FONT = Font(bold=True, color="FFFFFFFF")


@dataclass(frozen=True)
class ReportRow:
    expense_id: uuid.UUID
    expense_date: date
    member_code: str
    member_name: str
    email: str
    event_name: str
    category: str
    amount: Decimal
    payment_mode: str
    status: str
    description: str


@dataclass(frozen=True)
class BillEntry:
    expense_id: uuid.UUID
    storage_key: str
    first_name: str
    event_name: str
    amount: Decimal


# PDF


PAGE_WIDTH = 612
PAGE_HEIGHT = 792
PAGE_MARGIN = 50
COURIER_ADVANCE = 0.6


@dataclass(frozen=True)
class PdfLine:
    text: str = ""
    size: int = 8
    bold: bool = False
    center: bool = False


def render_financial_pdf(
    *,
    club_name: str,
    fiscal_year: str,
    rows: list[ReportRow],
    total_amount: Decimal,
    approved_amount: Decimal,
    generated_at: datetime,
) -> bytes:
    lines = [
        PdfLine(f"{club_name} Financial Report", size=16, bold=True, center=True),
        PdfLine(f"Year: {fiscal_year}", size=12, center=True),
        PdfLine(),
        PdfLine(f"Total Expenses: {format_currency(total_amount, symbol=PDF_CURRENCY_SYMBOL)}", 10),
        PdfLine(f"Approved/Paid: {format_currency(approved_amount, symbol=PDF_CURRENCY_SYMBOL)}", 10),
        PdfLine(f"Total Entries: {len(rows)}", 10),
        PdfLine(),
        PdfLine(_table_row("Date", "Member", "Event", "Category", "Amount", "Status"), bold=True),
        PdfLine("-" * 96),
    ]
    for row in rows:
        lines.append(
            PdfLine(
                _table_row(
                    row.expense_date.isoformat(),
                    row.member_name,
                    row.event_name,
                    row.category,
                    format_currency(row.amount, symbol=""),
                    row.status,
                )
            )
        )
    lines.extend(
        [
            PdfLine(),
            PdfLine(),
            PdfLine(f"Generated on: {generated_at:%Y-%m-%d %H:%M:%S}", size=7, center=True),
        ]
    )

    raw = _assemble_pdf(_paginate(lines))
    writer = PdfWriter()
    writer.append_pages_from_reader(PdfReader(io.BytesIO(raw)))
    writer.add_metadata(
        {
            "/Title": f"{club_name} Financial Report {fiscal_year}",
            "/Author": club_name,
            "/Subject": f"Fiscal year {fiscal_year}",
        }
    )
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def _table_row(*cells: str) -> str:
    widths = (10, 20, 20, 18, 14, 10)
    return " ".join(_fit(c, w) for c, w in zip(cells, widths))


def _fit(text: str, width: int) -> str:
    text = str(text or "")
    if len(text) > width:
        text = text[: width - 1] + "."
    return text.ljust(width)


def _paginate(lines: Iterable[PdfLine]) -> list[list[tuple[PdfLine, float]]]:
    pages: list[list[tuple[PdfLine, float]]] = [[]]
    y = PAGE_HEIGHT - PAGE_MARGIN
    for line in lines:
        leading = line.size * 1.4
        if y - leading < PAGE_MARGIN and pages[-1]:
            pages.append([])
            y = PAGE_HEIGHT - PAGE_MARGIN
        y -= leading
        pages[-1].append((line, y))
    return pages


def _pdf_text(s: str) -> str:
    s = s.encode("latin-1", errors="replace").decode("latin-1")
    s = s.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return "".join(ch if ord(ch) >= 32 else " " for ch in s)


def _assemble_pdf(pages: list[list[tuple[PdfLine, float]]]) -> bytes:
    # Objects 1-4 are catalog, page tree, regular and bold font; pages follow in pairs.
    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Courier >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Courier-Bold >>",
    ]
    kids: list[str] = []
    for idx, placed in enumerate(pages):
        page_num, content_num = 5 + idx * 2, 6 + idx * 2
        kids.append(f"{page_num} 0 R")

        ops: list[str] = []
        for line, y in placed:
            if not line.text:
                continue
            x = float(PAGE_MARGIN)
            if line.center:
                x = max((PAGE_WIDTH - len(line.text) * line.size * COURIER_ADVANCE) / 2, 0)
            font = "F2" if line.bold else "F1"
            ops.append(
                f"BT /{font} {line.size} Tf 1 0 0 1 {x:.2f} {y:.2f} Tm ({_pdf_text(line.text)}) Tj ET"
            )
        stream = ("\n".join(ops) + "\n").encode("latin-1")

        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {PAGE_WIDTH} {PAGE_HEIGHT}] "
                f"/Resources << /Font << /F1 3 0 R /F2 4 0 R >> >> /Contents {content_num} 0 R >>"
            ).encode("ascii")
        )
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode("ascii") + stream + b"endstream"
        )
    objects[1] = f"<< /Type /Pages /Kids [{' '.join(kids)}] /Count {len(pages)} >>".encode(
        "ascii"
    )

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out.extend(f"{num} 0 obj\n".encode("ascii") + body + b"\nendobj\n")
    xref_at = len(out)
    out.extend(f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii"))
    out.extend("".join(f"{off:010d} 00000 n \n" for off in offsets).encode("ascii"))
    out.extend(
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode(
            "ascii"
        )
    )
    return bytes(out)


# Spreadsheet


def render_financial_xlsx(*, club_name: str, rows: list[ReportRow], total_amount: Decimal) -> bytes:
    wb = Workbook()
    wb.properties.creator = club_name
    ws = wb.active
    ws.title = XLSX_SHEET_TITLE

    ws.append([header for header, _ in XLSX_COLUMNS])
    for idx, (_, width) in enumerate(XLSX_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    for cell in ws[1]:
        cell.fill = XLSX_HEADER_FILL
        cell.font = XLSX_HEADER_FONT
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append(
            [
                row.expense_date,
                row.member_code,
                row.member_name,
                row.email,
                row.event_name,
                row.category,
                row.amount,
                row.payment_mode,
                row.status,
                row.description,
            ]
        )
    ws.append([])
    ws.append(["TOTAL", None, None, None, None, None, total_amount])

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


# Bill archive


def bill_entry_name(entry: BillEntry) -> str:
    """``{first}_{event}_{amount}_{id}{ext}`` with path separators flattened."""
    amount = f"{entry.amount.normalize():f}"
    ext = PurePath(entry.storage_key).suffix
    name = f"{entry.first_name or 'Unknown'}_{entry.event_name or 'Event'}_{amount}_{entry.expense_id}{ext}"
    return name.replace("/", "_").replace("\\", "_")


def render_bills_zip(entries: list[BillEntry], *, storage: ObjectStorage) -> tuple[bytes, int]:
    """Zip every retrievable bill. Returns the archive and the number of files written."""
    out = io.BytesIO()
    written = 0
    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for entry in entries:
            try:
                body = storage.get(key=entry.storage_key)
            except StorageError:
                log_event(
                    logger,
                    "export.bills.missing",
                    expense_id=str(entry.expense_id),
                    storage_key=entry.storage_key,
                )
                continue
            zf.writestr(bill_entry_name(entry), body)
            written += 1
    return out.getvalue(), written
