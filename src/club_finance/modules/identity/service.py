from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_finance.core.errors import Conflict, NotFound, Unauthenticated
from club_finance.core.fiscal import fiscal_year_for
from club_finance.core.security import generate_member_code, hash_password, verify_password
from club_finance.modules.identity.models import Member, MemberRole


def get_member_by_email(session: Session, *, email: str) -> Member | None:
    return session.scalar(select(Member).where(Member.email == email.strip().lower()))


def get_member(session: Session, *, member_id: uuid.UUID) -> Member:
    member = session.scalar(select(Member).where(Member.id == member_id))
    if not member:
        raise NotFound("Member not found", member_id=str(member_id))
    return member


def list_members(session: Session, *, fiscal_year: str | None = None) -> list[Member]:
    q = select(Member)
    if fiscal_year:
        q = q.where(Member.fiscal_year == fiscal_year)
    return list(session.scalars(q.order_by(Member.last_name, Member.first_name)))


def create_member(
    session: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    role: MemberRole = MemberRole.MEMBER,
    is_admin: bool = False,
    today: date | None = None,
) -> Member:
    if get_member_by_email(session, email=email):
        raise Conflict("Email already exists")

    today = today or date.today()
    code = generate_member_code(today=today)
    while session.scalar(select(Member.id).where(Member.member_code == code)):
        code = generate_member_code(today=today)

    member = Member(
        member_code=code,
        email=email.strip().lower(),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        password_hash=hash_password(password),
        role=role,
        is_admin=is_admin,
        is_active=True,
        fiscal_year=fiscal_year_for(today),
    )
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def update_member_role(
    session: Session,
    *,
    member: Member,
    role: MemberRole | None = None,
    is_admin: bool | None = None,
    is_active: bool | None = None,
) -> Member:
    if role is not None:
        member.role = role
    if is_admin is not None:
        member.is_admin = is_admin
    if is_active is not None:
        member.is_active = is_active
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def authenticate_member(session: Session, *, email: str, password: str) -> Member:
    member = get_member_by_email(session, email=email)
    if not member or not member.is_active or not verify_password(password, member.password_hash):
        raise Unauthenticated("Invalid credentials")
    return member
