from __future__ import annotations

from pydantic import BaseModel, Field


class RejectRequest(BaseModel):
    reason: str = Field(max_length=1000)


class ReimburseRequest(BaseModel):
    reference: str | None = Field(default=None, max_length=200)
