from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

FISCAL_YEAR_LENGTH = len("2025-2026")


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    type_annotation_map = {
        uuid.UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }


class UUIDPrimaryKey:
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)


class Timestamped:
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)


class FiscalYearScoped:
    """Rows partitioned by fiscal year and frozen once that year is archived."""

    fiscal_year: Mapped[str] = mapped_column(String(FISCAL_YEAR_LENGTH), index=True)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
