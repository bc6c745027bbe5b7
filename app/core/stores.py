"""Document store construction and request dependency."""

from __future__ import annotations

import logging

from fastapi import Request

from app.core.config import Settings
from app.core.database import build_engine, build_session_factory
from app.core.document_store import DocumentStore, InMemoryDocumentStore
from app.core.sql_document_store import SqlDocumentStore

logger = logging.getLogger(__name__)


def build_document_store(settings: Settings) -> tuple[DocumentStore, object | None]:
    """Create configured store; second item is the engine to dispose on shutdown."""
    if settings.document_store_backend == "memory":
        logger.warning("Using in-memory document store; data is lost on restart")
        return InMemoryDocumentStore(max_attempts=settings.store_transaction_max_attempts), None

    engine = build_engine(settings)
    store = SqlDocumentStore(
        build_session_factory(engine),
        max_attempts=settings.store_transaction_max_attempts,
    )
    return store, engine


def get_document_store(request: Request) -> DocumentStore:
    """FastAPI dependency returning the application's store."""
    return request.app.state.document_store
