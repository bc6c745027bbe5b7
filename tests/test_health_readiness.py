from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException, Request

import app.main as main_module
from app.core.document_store import InMemoryDocumentStore


def _make_request(store: InMemoryDocumentStore | None) -> Request:
    application = FastAPI()
    if store is not None:
        application.state.document_store = store
    return Request({"type": "http", "app": application, "headers": []})


@pytest.mark.asyncio
async def test_readiness_check_returns_ready_when_store_is_available(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _ready(_: object) -> bool:
        return True

    monkeypatch.setattr(main_module, "_is_store_ready", _ready)

    response = await main_module.readiness_check(_make_request(InMemoryDocumentStore()))

    assert response["status"] == "ready"
    assert response["document_store"] == "ok"
    assert "timestamp" in response


@pytest.mark.asyncio
async def test_readiness_check_returns_503_when_store_is_unavailable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _not_ready(_: object) -> bool:
        return False

    monkeypatch.setattr(main_module, "_is_store_ready", _not_ready)

    with pytest.raises(HTTPException) as exc:
        await main_module.readiness_check(_make_request(InMemoryDocumentStore()))
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_store_readiness_pings_configured_store() -> None:
    assert await main_module._is_store_ready(InMemoryDocumentStore()) is True
    assert await main_module._is_store_ready(None) is False


@pytest.mark.asyncio
async def test_readiness_check_without_configured_store_returns_503() -> None:
    with pytest.raises(HTTPException) as exc:
        await main_module.readiness_check(_make_request(None))
    assert exc.value.status_code == 503
