from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from club_finance.core.errors import NotFound, PreconditionFailed, ValidationError
from club_finance.core.fiscal import fiscal_year_for
from club_finance.modules.archive.service import is_year_closed
from club_finance.modules.audit.service import record_audit
from club_finance.modules.events.models import Event, EventCategory
from club_finance.modules.expenses.models import Expense
from club_finance.modules.identity.models import Member

_EDITABLE_FIELDS = (
    "name",
    "description",
    "category",
    "start_date",
    "end_date",
    "venue",
    "estimated_budget",
    "cancelled",
)


def get_event(session: Session, *, event_id: uuid.UUID) -> Event:
    event = session.scalar(select(Event).where(Event.id == event_id))
    if not event:
        raise NotFound("Event not found", event_id=str(event_id))
    return event


def list_events(session: Session, *, fiscal_year: str | None = None) -> list[Event]:
    q = select(Event)
    if fiscal_year:
        q = q.where(Event.fiscal_year == fiscal_year)
    return list(session.scalars(q.order_by(Event.start_date.desc())))


def create_event(
    session: Session,
    *,
    actor: Member,
    name: str,
    category: EventCategory,
    start_date: date,
    end_date: date,
    description: str | None = None,
    venue: str | None = None,
    estimated_budget: Decimal = Decimal("0"),
) -> Event:
    name = name.strip()
    if not name:
        raise ValidationError("Event name is required")
    _check_dates(start_date, end_date)
    if estimated_budget < 0:
        raise ValidationError("Estimated budget cannot be negative")

    event = Event(
        name=name,
        description=description,
        category=category,
        start_date=start_date,
        end_date=end_date,
        venue=venue,
        estimated_budget=estimated_budget,
        cancelled=False,
        fiscal_year=fiscal_year_for(start_date),
        archived=False,
        created_by_id=actor.id,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    record_audit(
        action="event_create",
        actor_id=actor.id,
        target_type="event",
        target_id=event.id,
        description=f"Event created: {event.name}",
    )
    return event


def update_event(session: Session, *, event: Event, actor: Member, changes: dict) -> Event:
    if event.archived:
        raise PreconditionFailed("Event belongs to an archived fiscal year", event_id=str(event.id))

    applied = {k: v for k, v in changes.items() if k in _EDITABLE_FIELDS and v is not None}
    _check_dates(
        applied.get("start_date", event.start_date), applied.get("end_date", event.end_date)
    )
    if "start_date" in applied:
        target_year = fiscal_year_for(applied["start_date"])
        if target_year != event.fiscal_year:
            if is_year_closed(session, target_year):
                raise PreconditionFailed(
                    "Cannot move an event into an archived fiscal year", fiscal_year=target_year
                )
            applied["fiscal_year"] = target_year
    for field, value in applied.items():
        setattr(event, field, value)
    session.add(event)
    session.commit()
    session.refresh(event)
    record_audit(
        action="event_update",
        actor_id=actor.id,
        target_type="event",
        target_id=event.id,
        description=f"Event updated: {event.name}",
        change_set=applied,
    )
    return event


def delete_event(session: Session, *, event: Event, actor: Member) -> None:
    if event.archived:
        raise PreconditionFailed("Event belongs to an archived fiscal year", event_id=str(event.id))
    expense_count = session.scalar(
        select(func.count()).select_from(Expense).where(Expense.event_id == event.id)
    )
    if expense_count:
        raise PreconditionFailed(
            f"Cannot delete event with {expense_count} associated expenses",
            expense_count=expense_count,
        )
    event_id, event_name = event.id, event.name
    session.delete(event)
    session.commit()
    record_audit(
        action="event_delete",
        actor_id=actor.id,
        target_type="event",
        target_id=event_id,
        description=f"Event deleted: {event_name}",
    )


def _check_dates(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")
