from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from worktrack.api.routers import work_items
from worktrack.infra.audit import AuditMiddleware
from worktrack.infra.db import check_db_ready
from worktrack.infra.logging_config import configure_logging
from worktrack.infra.migrate import AUTO_MIGRATE, run_upgrade_head

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if AUTO_MIGRATE:
        run_upgrade_head()
    logger.info("worktrack started")
    yield


app = FastAPI(
    title="worktrack",
    description="Role-scoped work-item tracking for internal teams and customer companies.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(AuditMiddleware)

app.include_router(work_items.router, prefix="/api/work-items", tags=["work-items"])


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> dict[str, object]:
    db_ok = check_db_ready()
    checks = {"db": "ok" if db_ok else "fail"}
    if not db_ok:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
