from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from club_finance.modules.archive.models import ArchiveStatus


class CloseYearRequest(BaseModel):
    fiscal_year: str | None = None
    notes: str | None = Field(default=None, max_length=2000)
    carry_over_members: bool = True


class ArchiveOut(BaseModel):
    id: uuid.UUID
    fiscal_year: str
    status: ArchiveStatus
    closed_at: datetime | None
    closed_by_id: uuid.UUID | None
    notes: str | None
    total_members: int
    total_events: int
    total_expenses: Decimal
    total_contributions: Decimal
    total_reimbursements: Decimal
    created_at: datetime
    updated_at: datetime
