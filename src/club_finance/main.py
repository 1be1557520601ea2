from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from club_finance.api.router import router as api_router
from club_finance.bootstrap import bootstrap
from club_finance.core.config import settings
from club_finance.core.errors import ClubFinanceError
from club_finance.core.logging import RequestContextMiddleware, get_logger, log_event

logger = get_logger(__name__)


async def club_finance_error_handler(request: Request, exc: ClubFinanceError) -> JSONResponse:
    log_event(
        logger,
        "http.request.rejected",
        method=request.method,
        path=request.url.path,
        code=exc.code,
        status_code=exc.http_status,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.error_payload())


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI):
        bootstrap()
        yield

    app = FastAPI(title=settings.club_name, version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(ClubFinanceError, club_finance_error_handler)
    app.include_router(api_router)
    return app


app = create_app()
