"""FastAPI entry point for the compensation analytics service."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from compdesk import __version__
from compdesk.database import init_db
from compdesk.errors import CompensationError
from compdesk.routers import (
    cache,
    commissions,
    diagnostic,
    distributors,
    network,
    periods,
    reports,
    rollover,
    simulator,
)

LOG_LEVEL = os.getenv("COMPDESK_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    yield


app = FastAPI(title="Compensation Desk", version=__version__, lifespan=lifespan)

app.include_router(periods.router)
app.include_router(distributors.router)
app.include_router(commissions.router)
app.include_router(rollover.router)
app.include_router(network.router)
app.include_router(diagnostic.router)
app.include_router(simulator.router)
app.include_router(reports.router)
app.include_router(cache.router)


@app.get("/health")
def health() -> dict:
    """Simple health endpoint for load balancers and platform checks."""
    return {"status": "ok", "version": __version__}


@app.exception_handler(CompensationError)
async def compensation_error_handler(request: Request, exc: CompensationError):
    """Render engine and data access errors as ``{"error", "error_type"}`` JSON."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "error_type": exc.error_type},
    )
