from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, EmailStr, Field

from club_finance.modules.board.models import BoardPosition


class BoardSeatIn(BaseModel):
    position: BoardPosition
    name: str = Field(min_length=1, max_length=100)
    member_id: uuid.UUID | None = None
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    linkedin: str | None = Field(default=None, max_length=300)


class BoardSeatOut(BaseModel):
    position: BoardPosition
    name: str
    member_id: uuid.UUID | None
    email: str | None
    phone: str | None
    linkedin: str | None


class BoardIn(BaseModel):
    fiscal_year: str | None = None
    theme: str | None = Field(default=None, max_length=200)
    theme_description: str | None = None
    installation_date: date | None = None
    installation_venue: str | None = Field(default=None, max_length=300)
    seats: list[BoardSeatIn] | None = None


class BoardOut(BaseModel):
    id: uuid.UUID | None
    fiscal_year: str
    theme: str | None = None
    theme_description: str | None = None
    installation_date: date | None = None
    installation_venue: str | None = None
    is_active: bool = True
    seats: list[BoardSeatOut] = []


class BoardSummaryOut(BaseModel):
    id: uuid.UUID
    fiscal_year: str
    theme: str | None
    installation_date: date | None
