from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_finance.core.models import Base, Timestamped, UUIDPrimaryKey


class ArchiveStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Archive(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "archive_fiscal_year"

    fiscal_year: Mapped[str] = mapped_column(String(9), unique=True, index=True)
    status: Mapped[ArchiveStatus] = mapped_column(
        Enum(ArchiveStatus, native_enum=False), default=ArchiveStatus.ACTIVE
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_members: Mapped[int] = mapped_column(Integer, default=0)
    total_events: Mapped[int] = mapped_column(Integer, default=0)
    total_expenses: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total_contributions: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total_reimbursements: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    closed_by = relationship("Member")
