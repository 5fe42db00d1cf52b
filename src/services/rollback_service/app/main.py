# src/services/rollback_service/app/main.py
import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from delivery_common.config import SERVICE_NAME
from delivery_common.db import dispose_db, init_db
from delivery_common.health import create_health_router
from delivery_common.logging_utils import (
    UNSET,
    correlation_id_var,
    generate_correlation_id,
    request_context,
    setup_logging,
)
from delivery_common.monitoring import HTTP_REQUEST_LATENCY_SECONDS, HTTP_REQUESTS_TOTAL
from .routers import failures, preference_versions, rollback_suggestions

SERVICE_PREFIX = "RBK"
CORRELATION_HEADER = "X-Correlation-ID"

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Rollback service started.")
    try:
        yield
    finally:
        await dispose_db()
        logger.info("Rollback service stopped.")


app = FastAPI(
    title="Report Delivery Rollback API",
    description=(
        "Tracks scheduled report delivery failures, suggests preference-version "
        "rollbacks with a confidence score, and applies or dismisses them."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

Instrumentator().instrument(app).expose(app)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    HTTP_REQUEST_LATENCY_SECONDS.labels(service=SERVICE_NAME, method=request.method, path=path).observe(elapsed)
    HTTP_REQUESTS_TOTAL.labels(
        service=SERVICE_NAME, method=request.method, path=path, status=str(response.status_code)
    ).inc()
    logger.info(
        "Request handled.",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": round(elapsed * 1000, 2),
        },
    )
    return response


# Registered last so it runs outermost and the ids cover the metrics log line.
@app.middleware("http")
async def bind_request_ids(request: Request, call_next):
    correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id(SERVICE_PREFIX)
    request_id = request.headers.get("X-Request-Id") or generate_correlation_id("REQ")
    trace_id = request.headers.get("X-Trace-Id") or uuid4().hex

    with request_context(correlation_id, request_id, trace_id):
        response = await call_next(request)

    response.headers[CORRELATION_HEADER] = correlation_id
    response.headers["X-Request-Id"] = request_id
    response.headers["X-Trace-Id"] = trace_id
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort 500 carrying the correlation id so the failure can be found in the logs."""
    correlation_id = correlation_id_var.get()
    if correlation_id == UNSET:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id(SERVICE_PREFIX)
    logger.critical(
        "Unhandled exception.",
        extra={"method": request.method, "path": request.url.path, "response_correlation_id": correlation_id},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please contact support.",
            "correlation_id": correlation_id,
        },
    )


app.include_router(create_health_router("database"))
app.include_router(failures.router)
app.include_router(rollback_suggestions.router)
app.include_router(preference_versions.router)
