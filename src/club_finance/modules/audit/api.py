from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from club_finance.api.deps import require_admin
from club_finance.core.db import db_session
from club_finance.modules.audit.schemas import AuditEventOut
from club_finance.modules.audit.service import list_audit_events
from club_finance.modules.identity.models import Member

router = APIRouter(tags=["audit"])


@router.get("/audit", response_model=list[AuditEventOut])
def list_audit_endpoint(
    target_id: uuid.UUID | None = None,
    actor_id: uuid.UUID | None = None,
    action: str | None = None,
    fiscal_year: str | None = None,
    limit: int | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> list[AuditEventOut]:
    events = list_audit_events(
        session,
        target_id=target_id,
        actor_id=actor_id,
        action=action,
        fiscal_year=fiscal_year,
        limit=limit,
    )
    return [AuditEventOut.model_validate(e, from_attributes=True) for e in events]
