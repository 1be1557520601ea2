from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_finance.core.config import settings
from club_finance.core.db import SessionLocal
from club_finance.core.fiscal import fiscal_year_for
from club_finance.core.logging import get_logger, log_event, log_exception
from club_finance.modules.audit.models import AuditEvent

logger = get_logger(__name__)


def record_audit(
    *,
    action: str,
    actor_id: uuid.UUID | None,
    target_type: str,
    target_id: uuid.UUID | None,
    description: str,
    change_set: dict[str, Any] | None = None,
) -> None:
    """
    Best-effort audit trail.

    Written through its own session so a failure here can never roll back (or be
    rolled back with) the caller's unit of work. Errors are logged and dropped.
    """
    try:
        with SessionLocal() as session:
            session.add(
                AuditEvent(
                    action=action,
                    actor_id=actor_id,
                    target_type=target_type,
                    target_id=target_id,
                    description=description,
                    change_set=_jsonable(change_set or {}),
                    fiscal_year=fiscal_year_for(date.today()),
                )
            )
            session.commit()
    except Exception:  # noqa: BLE001
        log_exception(
            logger,
            "audit.record.failure",
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id else None,
        )
        return
    log_event(
        logger,
        "audit.record.success",
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id else None,
    )


def list_audit_events(
    session: Session,
    *,
    target_id: uuid.UUID | None = None,
    actor_id: uuid.UUID | None = None,
    action: str | None = None,
    fiscal_year: str | None = None,
    limit: int | None = None,
) -> list[AuditEvent]:
    """Newest first. ``limit`` is clamped to 1..``settings.audit_page_size``."""
    q = select(AuditEvent)
    if target_id is not None:
        q = q.where(AuditEvent.target_id == target_id)
    if actor_id is not None:
        q = q.where(AuditEvent.actor_id == actor_id)
    if action:
        q = q.where(AuditEvent.action == action)
    if fiscal_year:
        q = q.where(AuditEvent.fiscal_year == fiscal_year)
    limit = max(1, min(limit or settings.audit_page_size, settings.audit_page_size))
    q = q.order_by(AuditEvent.occurred_at.desc(), AuditEvent.id).limit(limit)
    return list(session.scalars(q))


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (Decimal, uuid.UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
