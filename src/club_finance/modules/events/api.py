from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from club_finance.api.deps import get_current_member, require_approver
from club_finance.core.db import db_session
from club_finance.modules.events.schemas import EventCreate, EventOut, EventUpdate
from club_finance.modules.events.service import (
    create_event,
    delete_event,
    get_event,
    list_events,
    update_event,
)
from club_finance.modules.identity.models import Member

router = APIRouter(tags=["events"])


@router.post("/events", response_model=EventOut, status_code=201)
def create_event_endpoint(
    payload: EventCreate,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> EventOut:
    event = create_event(session, actor=actor, **payload.model_dump())
    return EventOut.model_validate(event, from_attributes=True)


@router.get("/events", response_model=list[EventOut])
def list_events_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(get_current_member),
) -> list[EventOut]:
    return [
        EventOut.model_validate(e, from_attributes=True)
        for e in list_events(session, fiscal_year=fiscal_year)
    ]


@router.get("/events/{event_id}", response_model=EventOut)
def get_event_endpoint(
    event_id: uuid.UUID,
    session: Session = Depends(db_session),
    _: Member = Depends(get_current_member),
) -> EventOut:
    return EventOut.model_validate(get_event(session, event_id=event_id), from_attributes=True)


@router.patch("/events/{event_id}", response_model=EventOut)
def update_event_endpoint(
    event_id: uuid.UUID,
    payload: EventUpdate,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> EventOut:
    event = get_event(session, event_id=event_id)
    updated = update_event(
        session, event=event, actor=actor, changes=payload.model_dump(exclude_unset=True)
    )
    return EventOut.model_validate(updated, from_attributes=True)


@router.delete("/events/{event_id}", status_code=204)
def delete_event_endpoint(
    event_id: uuid.UUID,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> Response:
    delete_event(session, event=get_event(session, event_id=event_id), actor=actor)
    return Response(status_code=204)
