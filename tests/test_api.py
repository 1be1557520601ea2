from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient

from club_finance.core.db import SessionLocal
from club_finance.core.security import create_access_token
from club_finance.main import app
from club_finance.modules.identity.models import MemberRole


def _auth(member) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=str(member.id))}"}


def test_register_and_login():
    client = TestClient(app)
    resp = client.post(
        "/api/members",
        json={
            "email": "Priya@Example.com",
            "first_name": "Priya",
            "last_name": "Nair",
            "password": "password123",
        },
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["email"] == "priya@example.com"
    assert resp.json()["role"] == "member"

    dup = client.post(
        "/api/members",
        json={
            "email": "priya@example.com",
            "first_name": "Priya",
            "last_name": "Nair",
            "password": "password123",
        },
    )
    assert dup.status_code == 409
    assert dup.json()["code"] == "CONFLICT"

    token = client.post(
        "/api/auth/token", data={"username": "priya@example.com", "password": "password123"}
    )
    assert token.status_code == 200
    me = client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {token.json()['access_token']}"}
    )
    assert me.json()["first_name"] == "Priya"

    bad = client.post("/api/auth/token", data={"username": "priya@example.com", "password": "x"})
    assert bad.status_code == 401
    assert bad.json()["code"] == "UNAUTHENTICATED"


def test_expense_lifecycle_over_http(make_member):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com", first_name="Ravi")
        treasurer = make_member(session, email="t@example.com", role=MemberRole.TREASURER)
        member_headers, treasurer_headers = _auth(member), _auth(treasurer)
        member_id = str(member.id)

    client = TestClient(app)
    today = date.today().isoformat()

    forbidden_event = client.post(
        "/api/events",
        headers=member_headers,
        json={
            "name": "Food Drive",
            "category": "community_service",
            "start_date": today,
            "end_date": today,
        },
    )
    assert forbidden_event.status_code == 403

    event = client.post(
        "/api/events",
        headers=treasurer_headers,
        json={
            "name": "Food Drive",
            "category": "community_service",
            "start_date": today,
            "end_date": today,
            "estimated_budget": "1000",
        },
    )
    assert event.status_code == 201, event.text
    event_id = event.json()["id"]

    submitted = client.post(
        "/api/expenses",
        headers=member_headers,
        json={
            "event_id": event_id,
            "category": "travel_expense",
            "amount": "1500",
            "expense_date": today,
            "payment_mode": "upi",
            "description": "Auto fare",
        },
    )
    assert submitted.status_code == 201, submitted.text
    expense = submitted.json()
    assert expense["status"] == "pending"
    assert expense["allowed_actions"] == ["approve", "reject"]
    expense_id = expense["id"]

    too_small = client.post(
        "/api/expenses",
        headers=member_headers,
        json={
            "event_id": event_id,
            "category": "travel_expense",
            "amount": "0.5",
            "expense_date": today,
            "payment_mode": "upi",
        },
    )
    assert too_small.status_code == 422

    denied = client.post(f"/api/expenses/{expense_id}/approve", headers=member_headers)
    assert denied.status_code == 403
    assert denied.json()["code"] == "PERMISSION_DENIED"

    approved = client.post(f"/api/expenses/{expense_id}/approve", headers=treasurer_headers)
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"
    assert approved.json()["allowed_actions"] == ["reimburse"]

    again = client.post(f"/api/expenses/{expense_id}/approve", headers=treasurer_headers)
    assert again.status_code == 409
    assert again.json()["code"] == "INVALID_TRANSITION"
    assert again.json()["current_status"] == "approved"

    reimbursed = client.post(
        f"/api/expenses/{expense_id}/reimburse",
        headers=treasurer_headers,
        json={"reference": "UTR-42"},
    )
    assert reimbursed.status_code == 200, reimbursed.text
    assert reimbursed.json()["status"] == "reimbursed"
    assert reimbursed.json()["allowed_actions"] == []

    mine = client.get("/api/expenses/mine", headers=member_headers)
    assert mine.json()["total"] == 1
    assert mine.json()["items"][0]["reimbursement_reference"] == "UTR-42"

    board = client.get("/api/reports/leaderboard", headers=member_headers)
    assert board.status_code == 200
    (entry,) = board.json()["entries"]
    assert entry["rank"] == 1
    assert entry["member"]["id"] == member_id
    assert Decimal(entry["total_amount"]) == Decimal("1500")

    summary = client.get("/api/reports/financial-summary", headers=member_headers)
    assert summary.status_code == 403


def test_reject_without_reason_is_validation_error(make_member, make_event, make_expense):
    with SessionLocal() as session:
        member = make_member(session, email="member@example.com")
        treasurer = make_member(session, email="t@example.com", role=MemberRole.TREASURER)
        event = make_event(session, actor=treasurer)
        expense_id = make_expense(session, member=member, event=event).id
        headers = _auth(treasurer)

    client = TestClient(app)
    resp = client.post(f"/api/expenses/{expense_id}/reject", headers=headers, json={"reason": " "})
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_admin_reports_and_exports(make_member, make_event, make_expense):
    with SessionLocal() as session:
        admin = make_member(
            session, email="admin@example.com", role=MemberRole.PRESIDENT, is_admin=True
        )
        event = make_event(session, actor=admin, budget="1000")
        make_expense(session, member=admin, event=event, amount="1200")
        headers = _auth(admin)

    client = TestClient(app)

    rollup = client.get("/api/reports/rollup", params={"dimension": "category"}, headers=headers)
    assert rollup.status_code == 200
    assert rollup.json()["groups"][0]["group_key"] == "travel_expense"

    unknown = client.get("/api/reports/rollup", params={"dimension": "weekday"}, headers=headers)
    assert unknown.status_code == 400
    assert unknown.json()["code"] == "INVALID_ARGUMENT"

    events = client.get("/api/reports/event-wise", headers=headers)
    assert Decimal(events.json()["events"][0]["budget_variance"]) == Decimal("-200")

    listing = client.get("/api/expenses", headers=headers)
    assert listing.json()["total"] == 1

    xlsx = client.get("/api/reports/export/excel", headers=headers)
    assert xlsx.status_code == 200
    assert "attachment" in xlsx.headers["content-disposition"]

    bills = client.get("/api/reports/export/bills", headers=headers)
    assert bills.status_code == 404
    assert bills.json()["code"] == "NOT_FOUND"


def test_unauthenticated_requests_are_refused():
    client = TestClient(app)
    missing = client.get("/api/expenses/mine")
    assert missing.status_code == 401
    assert missing.json()["code"] == "UNAUTHENTICATED"
    garbage = client.get("/api/expenses/mine", headers={"Authorization": "Bearer nope"})
    assert garbage.status_code == 401
    assert client.get("/healthz").json() == {"status": "ok"}
