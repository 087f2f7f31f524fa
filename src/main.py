"""Billing Ledger: invoices, charges, payments and refunds for the hospital back office."""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.config import settings
from src.core.exceptions import AppException
from src.core.logging import log, setup_logging
from src.database import create_tables
from src.routes import analytics, invoices, payments


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(debug=settings.debug, log_format=settings.log_format, log_file=settings.log_file)
    log.info(f"Starting {settings.service_name} {settings.version}...")
    if settings.create_tables:
        await create_tables()
        log.info("Database tables ensured")

    yield

    log.info("Shutting down...")


app = FastAPI(title="Billing Ledger", version=settings.version, lifespan=lifespan)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log all requests."""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()
    request.state.request_id = request_id

    with log.contextualize(request_id=request_id):
        log.info(f"Request started: {request.method} {request.url.path}")
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        log.info(
            f"Request completed: {request.method} {request.url.path} "
            f"{response.status_code} in {duration_ms:.2f}ms"
        )

    return response


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Render ledger errors as {error, kind, details}."""
    if exc.status_code >= 500:
        log.error(f"{exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.kind, "details": exc.details},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "kind": "internal"},
    )


app.include_router(invoices.router, prefix=settings.api_prefix)
app.include_router(payments.router, prefix=settings.api_prefix)
app.include_router(analytics.router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.service_name, "version": settings.version}
