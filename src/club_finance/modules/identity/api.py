from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from club_finance.api.deps import get_current_member, require_admin
from club_finance.core.db import db_session
from club_finance.core.errors import PermissionDenied
from club_finance.core.security import create_access_token
from club_finance.modules.identity.models import Member
from club_finance.modules.identity.schemas import (
    MemberCreate,
    MemberOut,
    MemberRoleUpdate,
    TokenOut,
)
from club_finance.modules.identity.service import (
    authenticate_member,
    create_member,
    get_member,
    list_members,
    update_member_role,
)

router = APIRouter(tags=["identity"])


@router.post("/auth/token", response_model=TokenOut)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(db_session),
) -> TokenOut:
    member = authenticate_member(session, email=form_data.username, password=form_data.password)
    return TokenOut(access_token=create_access_token(subject=str(member.id)))


@router.get("/auth/me", response_model=MemberOut)
def me(member: Member = Depends(get_current_member)) -> MemberOut:
    return MemberOut.model_validate(member, from_attributes=True)


@router.post("/members", response_model=MemberOut, status_code=201)
def register_member(payload: MemberCreate, session: Session = Depends(db_session)) -> MemberOut:
    member = create_member(
        session,
        email=str(payload.email),
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
    )
    return MemberOut.model_validate(member, from_attributes=True)


@router.get("/members", response_model=list[MemberOut])
def list_members_endpoint(
    fiscal_year: str | None = None,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> list[MemberOut]:
    members = list_members(session, fiscal_year=fiscal_year)
    return [MemberOut.model_validate(m, from_attributes=True) for m in members]


@router.get("/members/{member_id}", response_model=MemberOut)
def get_member_endpoint(
    member_id: uuid.UUID,
    session: Session = Depends(db_session),
    member: Member = Depends(get_current_member),
) -> MemberOut:
    if not member.is_admin and member.id != member_id:
        raise PermissionDenied("Not authorized to view this member")
    return MemberOut.model_validate(get_member(session, member_id=member_id), from_attributes=True)


@router.patch("/members/{member_id}", response_model=MemberOut)
def update_member_endpoint(
    member_id: uuid.UUID,
    payload: MemberRoleUpdate,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> MemberOut:
    target = get_member(session, member_id=member_id)
    updated = update_member_role(session, member=target, **payload.model_dump(exclude_unset=True))
    return MemberOut.model_validate(updated, from_attributes=True)
