from __future__ import annotations

import enum
import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_finance.core.models import FISCAL_YEAR_LENGTH, Base, Timestamped, UUIDPrimaryKey


class BoardPosition(str, enum.Enum):
    PRESIDENT = "president"
    IMMEDIATE_PAST_PRESIDENT = "immediate_past_president"
    VICE_PRESIDENT = "vice_president"
    SECRETARY = "secretary"
    JOINT_SECRETARY = "joint_secretary"
    TREASURER = "treasurer"
    SERGEANT_AT_ARMS = "sergeant_at_arms"
    DIRECTOR_CLUB_SERVICE = "director_club_service"
    DIRECTOR_COMMUNITY_SERVICE = "director_community_service"
    DIRECTOR_PROFESSIONAL_DEVELOPMENT = "director_professional_development"
    DIRECTOR_INTERNATIONAL_SERVICE = "director_international_service"
    DIRECTOR_PUBLIC_RELATIONS = "director_public_relations"
    EDITOR = "editor"
    WEBMASTER = "webmaster"


# Display order, most senior first.
POSITION_ORDER = {p: i for i, p in enumerate(BoardPosition)}


class Board(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "board_board"

    fiscal_year: Mapped[str] = mapped_column(String(FISCAL_YEAR_LENGTH), unique=True, index=True)
    theme: Mapped[str | None] = mapped_column(String(200), nullable=True)
    theme_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    installation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    installation_venue: Mapped[str | None] = mapped_column(String(300), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class BoardSeat(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "board_seat"
    __table_args__ = (UniqueConstraint("board_id", "position", name="uq_board_seat_position"),)

    board_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("board_board.id"), index=True)
    position: Mapped[BoardPosition] = mapped_column(Enum(BoardPosition, native_enum=False))
    name: Mapped[str] = mapped_column(String(100))
    member_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("identity_member.id"), nullable=True
    )
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    linkedin: Mapped[str | None] = mapped_column(String(300), nullable=True)

    board = relationship("Board")
    member = relationship("Member")
