from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from club_finance.modules.events.models import EventCategory, EventStatus


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    category: EventCategory
    start_date: date
    end_date: date
    venue: str | None = None
    estimated_budget: Decimal = Field(default=Decimal("0"), ge=0)


class EventUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    category: EventCategory | None = None
    start_date: date | None = None
    end_date: date | None = None
    venue: str | None = None
    estimated_budget: Decimal | None = Field(default=None, ge=0)
    cancelled: bool | None = None


class EventOut(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    category: EventCategory
    start_date: date
    end_date: date
    venue: str | None
    estimated_budget: Decimal
    status: EventStatus
    fiscal_year: str
    archived: bool
    created_by_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
