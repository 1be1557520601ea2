from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from club_finance.api.deps import require_admin, require_approver
from club_finance.core.db import db_session
from club_finance.modules.archive.schemas import ArchiveOut, CloseYearRequest
from club_finance.modules.archive.service import close_fiscal_year, get_archive, list_archives
from club_finance.modules.identity.models import Member

router = APIRouter(tags=["archive"])


@router.get("/archives", response_model=list[ArchiveOut])
def list_archives_endpoint(
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> list[ArchiveOut]:
    return [ArchiveOut.model_validate(a, from_attributes=True) for a in list_archives(session)]


@router.post("/archives/close-year", response_model=ArchiveOut)
def close_year_endpoint(
    payload: CloseYearRequest,
    session: Session = Depends(db_session),
    actor: Member = Depends(require_approver),
) -> ArchiveOut:
    archive = close_fiscal_year(session, actor=actor, **payload.model_dump())
    return ArchiveOut.model_validate(archive, from_attributes=True)


@router.get("/archives/{fiscal_year}", response_model=ArchiveOut)
def get_archive_endpoint(
    fiscal_year: str,
    session: Session = Depends(db_session),
    _: Member = Depends(require_admin),
) -> ArchiveOut:
    return ArchiveOut.model_validate(
        get_archive(session, fiscal_year=fiscal_year), from_attributes=True
    )
