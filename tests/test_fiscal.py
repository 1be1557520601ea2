from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from club_finance.core.errors import InvalidArgument
from club_finance.core.fiscal import (
    fiscal_year_bounds,
    fiscal_year_for,
    format_currency,
    parse_fiscal_year,
    resolve_fiscal_year,
)


def test_fiscal_year_boundary():
    assert fiscal_year_for(date(2025, 6, 30)) == "2024-2025"
    assert fiscal_year_for(date(2025, 7, 1)) == "2025-2026"
    assert fiscal_year_for(date(2026, 1, 1)) == "2025-2026"


@pytest.mark.parametrize("label", ["2025", "2025-2027", "25-26", "", "2025/2026"])
def test_parse_fiscal_year_rejects_malformed(label):
    with pytest.raises(InvalidArgument):
        parse_fiscal_year(label)


def test_resolve_fiscal_year_defaults_to_current():
    assert resolve_fiscal_year(None, today=date(2025, 9, 1)) == "2025-2026"
    assert resolve_fiscal_year(" 2023-2024 ", today=date(2025, 9, 1)) == "2023-2024"


def test_fiscal_year_bounds():
    assert fiscal_year_bounds("2025-2026") == (date(2025, 7, 1), date(2026, 6, 30))


def test_format_currency_uses_indian_grouping():
    assert format_currency(Decimal("1234567.5")) == "₹12,34,567.50"
    assert format_currency(999) == "₹999.00"
    assert format_currency(Decimal("100000")) == "₹1,00,000.00"
    assert format_currency(Decimal("-2000"), symbol="INR ") == "-INR 2,000.00"
