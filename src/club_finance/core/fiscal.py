from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from club_finance.core.errors import InvalidArgument

# Rotaract years run 1 July to 30 June.
FISCAL_YEAR_START_MONTH = 7

_FISCAL_YEAR_RE = re.compile(r"^(\d{4})-(\d{4})$")


def fiscal_year_for(day: date) -> str:
    if day.month >= FISCAL_YEAR_START_MONTH:
        return f"{day.year}-{day.year + 1}"
    return f"{day.year - 1}-{day.year}"


def parse_fiscal_year(label: str) -> str:
    m = _FISCAL_YEAR_RE.match((label or "").strip())
    if not m or int(m.group(2)) != int(m.group(1)) + 1:
        raise InvalidArgument(f"Invalid fiscal year: {label!r} (expected e.g. 2025-2026)")
    return m.group(0)


def resolve_fiscal_year(label: str | None, *, today: date) -> str:
    """Explicit label if given, else the year containing ``today``."""
    if label:
        return parse_fiscal_year(label)
    return fiscal_year_for(today)


def fiscal_year_bounds(label: str) -> tuple[date, date]:
    start_year = int(parse_fiscal_year(label)[:4])
    return (
        date(start_year, FISCAL_YEAR_START_MONTH, 1),
        date(start_year + 1, FISCAL_YEAR_START_MONTH - 1, 30),
    )


def format_currency(amount: Decimal | int | float, *, symbol: str = "₹") -> str:
    """Indian digit grouping: 1234567.5 -> ₹12,34,567.50."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, fraction = f"{abs(value):.2f}".partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{sign}{symbol}{whole}.{fraction}"
