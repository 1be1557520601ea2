from __future__ import annotations

import enum

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from club_finance.core.models import Base, Timestamped, UUIDPrimaryKey


class MemberRole(str, enum.Enum):
    MEMBER = "member"
    SECRETARY = "secretary"
    JOINT_SECRETARY = "joint_secretary"
    TREASURER = "treasurer"
    PRESIDENT = "president"
    VICE_PRESIDENT = "vice_president"
    FACULTY_COORDINATOR = "faculty_coordinator"
    ALUMNI = "alumni"


# Roles allowed to approve, reject and reimburse expenses.
APPROVER_ROLES = frozenset(
    {
        MemberRole.SECRETARY,
        MemberRole.JOINT_SECRETARY,
        MemberRole.TREASURER,
        MemberRole.PRESIDENT,
    }
)


class Member(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "identity_member"

    member_code: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String(50))
    last_name: Mapped[str] = mapped_column(String(50))
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(200))
    role: Mapped[MemberRole] = mapped_column(Enum(MemberRole, native_enum=False), index=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    fiscal_year: Mapped[str] = mapped_column(String(9), index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_approver(self) -> bool:
        return self.role in APPROVER_ROLES
