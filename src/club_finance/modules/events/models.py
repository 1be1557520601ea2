from __future__ import annotations

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_finance.core.models import Base, FiscalYearScoped, Timestamped, UUIDPrimaryKey


class EventCategory(str, enum.Enum):
    COMMUNITY_SERVICE = "community_service"
    PROFESSIONAL_DEVELOPMENT = "professional_development"
    INTERNATIONAL_SERVICE = "international_service"
    CLUB_SERVICE = "club_service"
    FUNDRAISING = "fundraising"
    SOCIAL = "social"
    INSTALLATION = "installation"
    OTHER = "other"


class EventStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Event(UUIDPrimaryKey, Timestamped, FiscalYearScoped, Base):
    __tablename__ = "events_event"

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[EventCategory] = mapped_column(
        Enum(EventCategory, native_enum=False), index=True
    )
    start_date: Mapped[date] = mapped_column(Date, index=True)
    end_date: Mapped[date] = mapped_column(Date)
    venue: Mapped[str | None] = mapped_column(String(300), nullable=True)
    estimated_budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    cancelled: Mapped[bool] = mapped_column(default=False)

    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_member.id")
    )

    created_by = relationship("Member")

    @property
    def status(self) -> EventStatus:
        return self.status_on(date.today())

    def status_on(self, today: date) -> EventStatus:
        return derive_event_status(
            start_date=self.start_date,
            end_date=self.end_date,
            cancelled=self.cancelled,
            today=today,
        )


def derive_event_status(
    *, start_date: date, end_date: date, cancelled: bool, today: date
) -> EventStatus:
    if cancelled:
        return EventStatus.CANCELLED
    if today < start_date:
        return EventStatus.UPCOMING
    if today <= end_date:
        return EventStatus.ONGOING
    return EventStatus.COMPLETED
