from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from planner.api.org import router as org_router
from planner.api.planner import router as planner_router
from planner.api.projects import router as projects_router
from planner.core.logging import configure_logging, get_logger
from planner.db.session import init_db
from planner.integrations.notify import attach_webhook
from planner.services.changes import change_bus

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    init_db()
    detach = attach_webhook(change_bus)
    logger.info("planner.startup")
    yield
    if detach is not None:
        detach()


def create_app() -> FastAPI:
    app = FastAPI(title="Resource Allocation Planner", lifespan=lifespan)
    app.include_router(org_router)
    app.include_router(projects_router)
    app.include_router(planner_router)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    return app


app = create_app()
