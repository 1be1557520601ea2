from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field

from club_finance.modules.identity.models import MemberRole


class MemberOut(BaseModel):
    id: uuid.UUID
    member_code: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: str | None
    role: MemberRole
    is_admin: bool
    is_active: bool
    fiscal_year: str


class MemberCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: str | None = Field(default=None, pattern=r"^[6-9]\d{9}$")
    password: str = Field(min_length=8)


class MemberRoleUpdate(BaseModel):
    role: MemberRole | None = None
    is_admin: bool | None = None
    is_active: bool | None = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
