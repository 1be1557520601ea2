from __future__ import annotations

import club_finance.models  # noqa: F401
from club_finance.core.config import settings
from club_finance.core.db import SessionLocal, engine
from club_finance.core.logging import get_logger, log_event
from club_finance.core.models import Base
from club_finance.modules.identity.models import MemberRole
from club_finance.modules.identity.service import create_member, get_member_by_email

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment in {"dev", "test"} and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)

    if not settings.init_admin_emails or not settings.init_admin_password:
        return

    with SessionLocal() as session:
        for email in settings.init_admin_emails:
            existing = get_member_by_email(session, email=email)
            if existing:
                if not existing.is_admin:
                    existing.is_admin = True
                    session.add(existing)
                    session.commit()
                continue
            member = create_member(
                session,
                email=email,
                password=settings.init_admin_password,
                first_name="Club",
                last_name="Admin",
                role=MemberRole.PRESIDENT,
                is_admin=True,
            )
            log_event(logger, "bootstrap.admin.created", member_id=str(member.id))
