"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status

from app.core.config import get_settings
from app.core.document_store import DocumentStore
from app.core.metrics import build_metrics_response, instrument_http_request
from app.core.stores import build_document_store
from app.modules.booking.router import router as booking_router
from app.modules.profiles.router import router as profiles_router
from app.modules.scheduling.router import router as scheduling_router
from app.shared.exceptions import StoreUnavailableException, register_exception_handlers
from app.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s", settings.app_name)

    store, engine = build_document_store(settings)
    app.state.document_store = store
    logger.info("Document store backend: %s", settings.document_store_backend)

    yield

    logger.info("Shutting down %s", settings.app_name)
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)

register_exception_handlers(app)

app.include_router(profiles_router, prefix=settings.api_prefix)
app.include_router(scheduling_router, prefix=settings.api_prefix)
app.include_router(booking_router, prefix=settings.api_prefix)


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "ok"}


async def _is_store_ready(store: DocumentStore | None) -> bool:
    """Return True if document store answers a ping."""
    if store is None:
        return False
    try:
        await store.ping()
        return True
    except StoreUnavailableException:
        logger.warning("Document store readiness check failed")
        return False


@app.get("/ready")
async def readiness_check(request: Request) -> dict[str, str]:
    """Readiness probe endpoint with document store check."""
    store = getattr(request.app.state, "document_store", None)
    if not await _is_store_ready(store):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store is not ready",
        )
    return {
        "status": "ready",
        "document_store": "ok",
        "timestamp": utc_now().isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
