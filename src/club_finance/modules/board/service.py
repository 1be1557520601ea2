from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from club_finance.core.errors import NotFound, PreconditionFailed, ValidationError
from club_finance.core.fiscal import fiscal_year_for, parse_fiscal_year, resolve_fiscal_year
from club_finance.core.logging import get_logger, log_event
from club_finance.modules.archive.service import is_year_closed
from club_finance.modules.audit.service import record_audit
from club_finance.modules.board.models import POSITION_ORDER, Board, BoardPosition, BoardSeat
from club_finance.modules.identity.models import Member
from club_finance.modules.identity.service import get_member

logger = get_logger(__name__)

_BOARD_FIELDS = ("theme", "theme_description", "installation_date", "installation_venue")
_SEAT_FIELDS = ("name", "member_id", "email", "phone", "linkedin")


def find_board(session: Session, *, fiscal_year: str) -> Board | None:
    return session.scalar(select(Board).where(Board.fiscal_year == fiscal_year))


def get_board(session: Session, *, fiscal_year: str) -> Board:
    board = find_board(session, fiscal_year=parse_fiscal_year(fiscal_year))
    if not board:
        raise NotFound("Board not found for this year", fiscal_year=fiscal_year)
    return board


def board_history(session: Session) -> list[Board]:
    return list(session.scalars(select(Board).order_by(Board.fiscal_year.desc())))


def board_seats(session: Session, *, board_id: uuid.UUID) -> list[BoardSeat]:
    seats = session.scalars(select(BoardSeat).where(BoardSeat.board_id == board_id))
    return sorted(seats, key=lambda s: POSITION_ORDER[s.position])


def save_board(
    session: Session,
    *,
    actor: Member,
    fiscal_year: str | None = None,
    seats: list[dict[str, Any]] | None = None,
    today: date | None = None,
    **details: Any,
) -> Board:
    """
    Create the board for a fiscal year or update it in place.

    Detail fields left as None keep their current value. When ``seats`` is
    given it replaces the whole roster; each position may appear once.
    """
    year = resolve_fiscal_year(fiscal_year, today=today or date.today())
    _ensure_open(session, year)
    if seats is not None:
        positions = [BoardPosition(s["position"]) for s in seats]
        duplicated = sorted({p.value for p in positions if positions.count(p) > 1})
        if duplicated:
            raise ValidationError("Each board position can be held once", positions=duplicated)
        for s in seats:
            _check_seat(session, s)

    board = find_board(session, fiscal_year=year)
    created = board is None
    if created:
        board = Board(fiscal_year=year, is_active=True)
    for field in _BOARD_FIELDS:
        if details.get(field) is not None:
            setattr(board, field, details[field])
    session.add(board)
    session.flush()

    if seats is not None:
        session.execute(delete(BoardSeat).where(BoardSeat.board_id == board.id))
        for s in seats:
            session.add(
                BoardSeat(
                    board_id=board.id,
                    position=BoardPosition(s["position"]),
                    **{f: s.get(f) for f in _SEAT_FIELDS},
                )
            )
    session.commit()
    session.refresh(board)

    log_event(logger, "board.saved", fiscal_year=year, created=created, seat_count=len(seats or []))
    record_audit(
        action="board_update",
        actor_id=actor.id,
        target_type="board",
        target_id=board.id,
        description=f"Board updated for {year}",
        change_set={k: details.get(k) for k in _BOARD_FIELDS if details.get(k) is not None},
    )
    return board


def set_board_seat(
    session: Session,
    *,
    actor: Member,
    position: BoardPosition,
    name: str,
    member_id: uuid.UUID | None = None,
    email: str | None = None,
    phone: str | None = None,
    linkedin: str | None = None,
    today: date | None = None,
) -> Board:
    """Fill or replace one position on the current year's board."""
    year = fiscal_year_for(today or date.today())
    _ensure_open(session, year)
    fields = {
        "name": name,
        "member_id": member_id,
        "email": email,
        "phone": phone,
        "linkedin": linkedin,
    }
    _check_seat(session, fields)

    board = find_board(session, fiscal_year=year)
    if board is None:
        board = Board(fiscal_year=year, is_active=True)
        session.add(board)
        session.flush()
    seat = session.scalar(
        select(BoardSeat).where(BoardSeat.board_id == board.id, BoardSeat.position == position)
    )
    if seat is None:
        seat = BoardSeat(board_id=board.id, position=position)
    for field, value in fields.items():
        setattr(seat, field, value)
    seat.name = name.strip()
    session.add(seat)
    session.commit()
    session.refresh(board)

    record_audit(
        action="board_update",
        actor_id=actor.id,
        target_type="board",
        target_id=board.id,
        description=f"Board member updated: {position.value}",
        change_set={"position": position, "name": seat.name},
    )
    return board


def _ensure_open(session: Session, fiscal_year: str) -> None:
    if is_year_closed(session, fiscal_year):
        raise PreconditionFailed(
            "Board of an archived fiscal year is read-only", fiscal_year=fiscal_year
        )


def _check_seat(session: Session, seat: dict[str, Any]) -> None:
    if not (seat.get("name") or "").strip():
        raise ValidationError("Board member name is required")
    if seat.get("member_id") is not None:
        get_member(session, member_id=seat["member_id"])
