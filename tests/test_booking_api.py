from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

import app.main as main_module
from app.core.document_store import InMemoryDocumentStore
from app.core.stores import get_document_store
from app.modules.notifications.dispatcher import get_notification_dispatcher

API = "/api/v1"
TUTOR_ID = "tutor-1"
DATE = "20250601"


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def notify(self, target_user_id: str, title: str, body: str) -> None:
        self.sent.append((target_user_id, title))


@pytest_asyncio.fixture()
async def store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    await store.set(f"users/{TUTOR_ID}", {"name": "Ana Tutor", "isTutor": True, "sessionLengths": [30, 60]})
    await store.set("users/hourly", {"name": "Hour Tutor", "isTutor": True, "sessionLengths": [60]})
    await store.set("users/student-1", {"name": "Sam Student"})
    return store


@pytest_asyncio.fixture()
async def api_client(store: InMemoryDocumentStore) -> AsyncIterator[httpx.AsyncClient]:
    notifier = RecordingNotifier()
    main_module.app.dependency_overrides[get_document_store] = lambda: store
    main_module.app.dependency_overrides[get_notification_dispatcher] = lambda: notifier
    transport = httpx.ASGITransport(app=main_module.app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        main_module.app.dependency_overrides.clear()


async def _open(client: httpx.AsyncClient, slots: list[int | str], tutor_id: str = TUTOR_ID) -> httpx.Response:
    return await client.post(f"{API}/scheduling/tutors/{tutor_id}/days/{DATE}/slots", json={"slots": slots})


async def _reserve(client: httpx.AsyncClient, **overrides: object) -> httpx.Response:
    payload = {
        "tutor_id": TUTOR_ID,
        "student_id": "student-1",
        "student_name": "Sam Student",
        "date": DATE,
        "start_time": "9:00 AM",
        "session_length": 60,
    }
    payload.update(overrides)
    return await client.post(f"{API}/booking/reserve", json=payload)


@pytest.mark.asyncio
async def test_open_slots_and_read_day(api_client: httpx.AsyncClient) -> None:
    response = await _open(api_client, ["9:00 AM", 19, "10:00"])
    assert response.status_code == 200
    assert [slot["label"] for slot in response.json()["slots"]] == ["9:00 AM", "9:30 AM", "10:00 AM"]

    day = await api_client.get(
        f"{API}/scheduling/tutors/{TUTOR_ID}/days/{DATE}",
        params={"session_length": 60},
    )
    dates = await api_client.get(f"{API}/scheduling/tutors/{TUTOR_ID}/dates")

    assert [slot["index"] for slot in day.json()["slots"]] == [18, 19]
    assert dates.json() == {"tutor_id": TUTOR_ID, "dates": [DATE]}


@pytest.mark.asyncio
async def test_reserve_confirm_cancel_round_trip(api_client: httpx.AsyncClient) -> None:
    await _open(api_client, [18, 19, 20])

    reserved = await _reserve(api_client)
    assert reserved.status_code == 201
    booking = reserved.json()
    assert booking["status"] == "pending"
    assert booking["time_slot"] == "9:00 AM"
    assert booking["end_time"] == "10:00 AM"

    overview = await api_client.get(f"{API}/scheduling/tutors/{TUTOR_ID}/days/{DATE}/overview")
    assert [slot["index"] for slot in overview.json()["open_slots"]] == [20]
    assert [slot["index"] for slot in overview.json()["pending_slots"]] == [18, 19]

    base = f"{API}/booking/tutors/{TUTOR_ID}/bookings/{booking['id']}"
    assert (await api_client.post(f"{base}/confirm")).json()["status"] == "confirmed"
    assert (await api_client.post(f"{base}/cancel")).json()["status"] == "canceled"

    lessons = await api_client.get(f"{API}/booking/students/student-1/lessons")
    day = await api_client.get(f"{API}/scheduling/tutors/{TUTOR_ID}/days/{DATE}")

    assert [item["id"] for item in lessons.json()["canceled"]] == [booking["id"]]
    assert lessons.json()["upcoming"] == []
    assert [slot["index"] for slot in day.json()["slots"]] == [18, 19, 20]


@pytest.mark.asyncio
async def test_taken_slot_returns_conflict_error_body(api_client: httpx.AsyncClient) -> None:
    await _open(api_client, [18, 19])
    assert (await _reserve(api_client)).status_code == 201

    response = await _reserve(api_client, start_time=None, start_slot=19, session_length=30)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "slot_unavailable"
    assert response.json()["error"]["retryable"] is False


@pytest.mark.asyncio
async def test_illegal_transition_returns_conflict(api_client: httpx.AsyncClient) -> None:
    await _open(api_client, [18, 19])
    booking = (await _reserve(api_client)).json()

    response = await api_client.post(f"{API}/booking/tutors/{TUTOR_ID}/bookings/{booking['id']}/complete")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "invalid_transition"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("overrides", "status_code", "code"),
    [
        ({"start_time": "9:15 AM"}, 422, "invalid_time_format"),
        ({"start_time": None, "start_slot": 47}, 422, "out_of_range"),
        ({"date": "2025-06-01"}, 422, "invalid_time_format"),
        ({"tutor_id": "missing"}, 404, "not_found"),
        ({"tutor_id": "hourly", "session_length": 30}, 422, "business_rule_violation"),
    ],
)
async def test_reserve_validation_errors(
    api_client: httpx.AsyncClient,
    overrides: dict[str, object],
    status_code: int,
    code: str,
) -> None:
    response = await _reserve(api_client, **overrides)

    assert response.status_code == status_code
    assert response.json()["error"]["code"] == code


@pytest.mark.asyncio
async def test_reserve_requires_exactly_one_start(api_client: httpx.AsyncClient) -> None:
    response = await _reserve(api_client, start_slot=18)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_missing_booking_returns_not_found(api_client: httpx.AsyncClient) -> None:
    response = await api_client.get(f"{API}/booking/tutors/{TUTOR_ID}/bookings/nope")

    assert response.status_code == 404
    assert response.json()["error"] == {
        "code": "not_found",
        "message": "Booking not found",
        "retryable": False,
    }


@pytest.mark.asyncio
async def test_clear_date_removes_open_cells(api_client: httpx.AsyncClient) -> None:
    await _open(api_client, [18, 19])

    response = await api_client.delete(f"{API}/scheduling/tutors/{TUTOR_ID}/days/{DATE}")
    dates = await api_client.get(f"{API}/scheduling/tutors/{TUTOR_ID}/dates")

    assert response.status_code == 204
    assert dates.json()["dates"] == []


@pytest.mark.asyncio
async def test_tutor_directory_lists_tutors(api_client: httpx.AsyncClient) -> None:
    response = await api_client.get(f"{API}/profiles/tutors")

    assert response.status_code == 200
    assert {item["id"] for item in response.json()["items"]} == {TUTOR_ID, "hourly"}


@pytest.mark.asyncio
async def test_tutor_directory_pages_and_excludes_requesting_user(api_client: httpx.AsyncClient) -> None:
    first_page = await api_client.get(f"{API}/profiles/tutors", params={"limit": 1})
    excluded = await api_client.get(f"{API}/profiles/tutors", params={"exclude_user_id": TUTOR_ID})

    assert first_page.json()["total"] == 2
    assert len(first_page.json()["items"]) == 1
    assert [item["id"] for item in excluded.json()["items"]] == ["hourly"]


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["student_id", "tutor_id"])
async def test_reserve_rejects_ids_containing_slashes(api_client: httpx.AsyncClient, field: str) -> None:
    await _open(api_client, [18, 19])

    response = await _reserve(api_client, **{field: "a/b", "student_name": None})

    assert response.status_code == 422
    day = await api_client.get(f"{API}/scheduling/tutors/{TUTOR_ID}/days/{DATE}")
    assert [slot["index"] for slot in day.json()["slots"]] == [18, 19]


@pytest.mark.asyncio
async def test_editing_unknown_tutor_day_returns_not_found(api_client: httpx.AsyncClient) -> None:
    removed = await api_client.post(
        f"{API}/scheduling/tutors/missing/days/{DATE}/slots/remove",
        json={"slots": [18]},
    )
    cleared = await api_client.delete(f"{API}/scheduling/tutors/missing/days/{DATE}")

    assert removed.status_code == 404
    assert removed.json()["error"]["code"] == "not_found"
    assert cleared.status_code == 404
