from __future__ import annotations

import uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from club_finance.core.db import db_session
from club_finance.core.errors import PermissionDenied, Unauthenticated
from club_finance.core.logging import set_member_context
from club_finance.core.security import decode_access_token
from club_finance.modules.identity.models import Member

bearer_scheme = HTTPBearer(auto_error=False)


def _member_id_from(credentials: HTTPAuthorizationCredentials | None) -> uuid.UUID:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Not authenticated")
    subject = decode_access_token(credentials.credentials)
    try:
        return uuid.UUID(subject or "")
    except ValueError as e:
        raise Unauthenticated("Invalid or expired token") from e


def get_current_member(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(db_session),
) -> Member:
    member = session.get(Member, _member_id_from(credentials))
    if member is None or not member.is_active:
        raise Unauthenticated("Member is unknown or deactivated")
    set_member_context(str(member.id))
    return member


def require_admin(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_admin:
        raise PermissionDenied("Administrators only", role=member.role)
    return member


def require_approver(member: Member = Depends(get_current_member)) -> Member:
    """Treasurer, secretary, joint secretary or president."""
    if not member.is_approver:
        raise PermissionDenied("Approvers only", role=member.role)
    return member
