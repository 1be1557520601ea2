from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from club_finance.core.db import SessionLocal
from club_finance.core.errors import NotFound, PreconditionFailed, ValidationError
from club_finance.core.fiscal import fiscal_year_for
from club_finance.core.security import create_access_token
from club_finance.main import app
from club_finance.modules.archive.service import close_fiscal_year
from club_finance.modules.audit.service import list_audit_events
from club_finance.modules.board.models import BoardPosition
from club_finance.modules.board.service import (
    board_history,
    board_seats,
    get_board,
    save_board,
    set_board_seat,
)
from club_finance.modules.identity.models import MemberRole

TODAY = date(2025, 9, 1)


def _seats(board, session):
    return [(s.position, s.name) for s in board_seats(session, board_id=board.id)]


def test_save_board_creates_then_updates(make_member):
    with SessionLocal() as session:
        admin = make_member(session, email="admin@example.com", is_admin=True)
        board = save_board(
            session,
            actor=admin,
            today=TODAY,
            theme="Lead the Change",
            seats=[
                {"position": BoardPosition.TREASURER, "name": "Kiran"},
                {"position": BoardPosition.PRESIDENT, "name": "Asha", "member_id": admin.id},
            ],
        )
        assert board.fiscal_year == "2025-2026"
        assert _seats(board, session) == [
            (BoardPosition.PRESIDENT, "Asha"),
            (BoardPosition.TREASURER, "Kiran"),
        ]

        again = save_board(
            session, actor=admin, today=TODAY, installation_venue="Town Hall", theme=None
        )
        assert again.id == board.id
        assert again.theme == "Lead the Change"
        assert again.installation_venue == "Town Hall"
        assert len(_seats(again, session)) == 2

        replaced = save_board(
            session,
            actor=admin,
            today=TODAY,
            seats=[{"position": BoardPosition.EDITOR, "name": "Meera"}],
        )
        assert _seats(replaced, session) == [(BoardPosition.EDITOR, "Meera")]
        assert len(list_audit_events(session, target_id=board.id, action="board_update")) == 3


def test_save_board_validates_roster(make_member):
    with SessionLocal() as session:
        admin = make_member(session, email="admin@example.com", is_admin=True)

        with pytest.raises(ValidationError):
            save_board(
                session,
                actor=admin,
                today=TODAY,
                seats=[
                    {"position": BoardPosition.SECRETARY, "name": "A"},
                    {"position": BoardPosition.SECRETARY, "name": "B"},
                ],
            )
        with pytest.raises(ValidationError):
            save_board(
                session,
                actor=admin,
                today=TODAY,
                seats=[{"position": BoardPosition.SECRETARY, "name": "  "}],
            )
        assert board_history(session) == []


def test_set_board_seat_fills_and_replaces_position(make_member):
    with SessionLocal() as session:
        admin = make_member(session, email="admin@example.com", is_admin=True)

        board = set_board_seat(
            session, actor=admin, position=BoardPosition.PRESIDENT, name="Asha", today=TODAY
        )
        set_board_seat(
            session, actor=admin, position=BoardPosition.WEBMASTER, name="Dev", today=TODAY
        )
        board = set_board_seat(
            session,
            actor=admin,
            position=BoardPosition.PRESIDENT,
            name=" Rohan ",
            email="rohan@example.com",
            today=TODAY,
        )

        assert _seats(board, session) == [
            (BoardPosition.PRESIDENT, "Rohan"),
            (BoardPosition.WEBMASTER, "Dev"),
        ]
        assert get_board(session, fiscal_year="2025-2026").id == board.id


def test_board_lookup_and_history(make_member):
    with SessionLocal() as session:
        admin = make_member(session, email="admin@example.com", is_admin=True)
        save_board(session, actor=admin, fiscal_year="2024-2025", theme="Old")
        save_board(session, actor=admin, fiscal_year="2025-2026", theme="New")

        assert [b.fiscal_year for b in board_history(session)] == ["2025-2026", "2024-2025"]
        with pytest.raises(NotFound):
            get_board(session, fiscal_year="2019-2020")


def test_board_of_closed_year_is_read_only(make_member):
    with SessionLocal() as session:
        admin = make_member(session, email="admin@example.com", is_admin=True)
        save_board(session, actor=admin, fiscal_year="2024-2025", theme="Old")
        close_fiscal_year(session, actor=admin, fiscal_year="2024-2025")

        with pytest.raises(PreconditionFailed):
            save_board(session, actor=admin, fiscal_year="2024-2025", theme="Rewrite")
        with pytest.raises(PreconditionFailed):
            set_board_seat(
                session,
                actor=admin,
                position=BoardPosition.EDITOR,
                name="Late",
                today=date(2025, 1, 10),
            )


def test_board_endpoints(make_member):
    with SessionLocal() as session:
        admin = make_member(
            session, email="admin@example.com", role=MemberRole.PRESIDENT, is_admin=True
        )
        member = make_member(session, email="member@example.com")
        admin_headers = {"Authorization": f"Bearer {create_access_token(subject=str(admin.id))}"}
        member_headers = {"Authorization": f"Bearer {create_access_token(subject=str(member.id))}"}

    client = TestClient(app)
    year = fiscal_year_for(date.today())

    empty = client.get("/api/board")
    assert empty.status_code == 200
    assert empty.json()["fiscal_year"] == year
    assert empty.json()["id"] is None
    assert empty.json()["seats"] == []

    payload = {
        "theme": "Service Above Self",
        "seats": [{"position": "treasurer", "name": "Kiran", "email": "kiran@example.com"}],
    }
    assert client.post("/api/board", json=payload, headers=member_headers).status_code == 403
    saved = client.post("/api/board", json=payload, headers=admin_headers)
    assert saved.status_code == 200, saved.text
    assert saved.json()["seats"][0]["position"] == "treasurer"

    seat = client.put(
        "/api/board/seats", json={"position": "president", "name": "Asha"}, headers=admin_headers
    )
    assert seat.status_code == 200, seat.text
    assert [s["position"] for s in seat.json()["seats"]] == ["president", "treasurer"]

    current = client.get("/api/board")
    assert current.json()["theme"] == "Service Above Self"
    assert client.get(f"/api/board/{year}").json()["id"] == saved.json()["id"]
    assert [b["fiscal_year"] for b in client.get("/api/board/history").json()] == [year]
    assert client.get("/api/board/2019-2020").status_code == 404
