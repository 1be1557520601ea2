from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from club_finance.core.db import ping
from club_finance.core.logging import get_logger, log_exception
from club_finance.modules.archive.api import router as archive_router
from club_finance.modules.audit.api import router as audit_router
from club_finance.modules.board.api import router as board_router
from club_finance.modules.events.api import router as events_router
from club_finance.modules.expenses.api import router as expenses_router
from club_finance.modules.identity.api import router as identity_router
from club_finance.modules.reports.api import router as reports_router
from club_finance.modules.workflow.api import router as workflow_router

router = APIRouter()
logger = get_logger(__name__)

router.include_router(identity_router, prefix="/api")
router.include_router(events_router, prefix="/api")
router.include_router(expenses_router, prefix="/api")
router.include_router(workflow_router, prefix="/api")
router.include_router(reports_router, prefix="/api")
router.include_router(archive_router, prefix="/api")
router.include_router(board_router, prefix="/api")
router.include_router(audit_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz/db")
def healthz_db() -> JSONResponse:
    try:
        ping()
    except SQLAlchemyError:
        log_exception(logger, "healthz.db.failure")
        return JSONResponse(status_code=503, content={"ok": False})
    return JSONResponse(status_code=200, content={"ok": True})
