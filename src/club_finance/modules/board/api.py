from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from club_finance.api.deps import require_admin
from club_finance.core.db import db_session
from club_finance.core.fiscal import fiscal_year_for
from club_finance.modules.board.models import Board
from club_finance.modules.board.schemas import (
    BoardIn,
    BoardOut,
    BoardSeatIn,
    BoardSeatOut,
    BoardSummaryOut,
)
from club_finance.modules.board.service import (
    board_history,
    board_seats,
    find_board,
    get_board,
    save_board,
    set_board_seat,
)
from club_finance.modules.identity.models import Member

router = APIRouter(tags=["board"])


def _board_out(session: Session, board: Board) -> BoardOut:
    out = BoardOut.model_validate(board, from_attributes=True)
    out.seats = [
        BoardSeatOut.model_validate(s, from_attributes=True)
        for s in board_seats(session, board_id=board.id)
    ]
    return out


@router.get("/board", response_model=BoardOut)
def current_board_endpoint(session: Session = Depends(db_session)) -> BoardOut:
    year = fiscal_year_for(date.today())
    board = find_board(session, fiscal_year=year)
    if board is None:
        return BoardOut(id=None, fiscal_year=year)
    return _board_out(session, board)


@router.get("/board/history", response_model=list[BoardSummaryOut])
def board_history_endpoint(session: Session = Depends(db_session)) -> list[BoardSummaryOut]:
    return [BoardSummaryOut.model_validate(b, from_attributes=True) for b in board_history(session)]


@router.get("/board/{fiscal_year}", response_model=BoardOut)
def board_by_year_endpoint(fiscal_year: str, session: Session = Depends(db_session)) -> BoardOut:
    return _board_out(session, get_board(session, fiscal_year=fiscal_year))


@router.post("/board", response_model=BoardOut)
def save_board_endpoint(
    payload: BoardIn,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_admin),
) -> BoardOut:
    data = payload.model_dump()
    seats = data.pop("seats")
    board = save_board(session, actor=actor, seats=seats, **data)
    return _board_out(session, board)


@router.put("/board/seats", response_model=BoardOut)
def set_board_seat_endpoint(
    payload: BoardSeatIn,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_admin),
) -> BoardOut:
    board = set_board_seat(session, actor=actor, **payload.model_dump())
    return _board_out(session, board)
