# Bootstraps the FastAPI app: logging, metrics, error handlers, routers and
# the background database watcher that creates tables once the database
# answers.

import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

import orderhub.models  # noqa: F401  registers every table on Base.metadata
from orderhub.core.db import Base, check_connection, engine, start_database_watcher
from orderhub.core.logging import APILoggingMiddleware, configure_logging
from orderhub.core.metrics import MetricsMiddleware
from orderhub.core.startup_checks import run_startup_checks
from orderhub.webhooks.errors import WebhookError

from orderhub.api.profits import router as profits_router
from orderhub.api.reports import router as reports_router
from orderhub.api.shipments import router as shipments_router
from orderhub.api.sites import router as sites_router
from orderhub.api.webhooks import router as webhooks_router


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Order Hub")


def _create_tables() -> None:
    Base.metadata.create_all(bind=engine)


@app.on_event("startup")
def _run_startup() -> None:
    run_startup_checks()
    # The service keeps answering while the database is down; the watcher
    # creates tables as soon as a connection succeeds.
    if os.getenv("SKIP_MIGRATIONS") != "1":
        start_database_watcher(on_connected=_create_tables)


@app.exception_handler(WebhookError)
def handle_webhook_error(_request: Request, exc: WebhookError):
    response = JSONResponse(status_code=exc.status_code, content=exc.to_payload())
    response.headers["X-Error-Code"] = exc.code
    return response


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "request.unhandled_error",
        extra={"path": request.url.path, "error": exc.__class__.__name__},
        exc_info=exc,
    )
    response = JSONResponse(
        status_code=500,
        content={"ok": False, "error": "internal_error", "message": "Internal server error"},
    )
    response.headers["X-Error-Code"] = "internal_error"
    return response


app.add_middleware(APILoggingMiddleware)
app.add_middleware(MetricsMiddleware)

for router in (
    webhooks_router,
    sites_router,
    profits_router,
    shipments_router,
    reports_router,
):
    app.include_router(router)


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health():
    database = check_connection()
    return {"status": "ok" if database else "degraded", "database": database}
