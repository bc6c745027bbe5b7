from __future__ import annotations

import asyncio

import pytest

from app.core.document_store import (
    InMemoryDocumentStore,
    Transaction,
    document_id,
    split_path,
)
from app.shared.exceptions import (
    InvalidDocumentPathException,
    NotFoundException,
    SlotUnavailableException,
    TransactionConflictException,
)


@pytest.mark.asyncio
async def test_get_missing_document_returns_empty_snapshot() -> None:
    store = InMemoryDocumentStore()

    snapshot = await store.get("users/nobody")

    assert snapshot.exists is False
    assert snapshot.data is None
    assert snapshot.id == "nobody"


@pytest.mark.asyncio
async def test_set_merge_and_update() -> None:
    store = InMemoryDocumentStore()

    await store.set("users/u1", {"name": "Ana", "bio": "hi"})
    await store.set("users/u1", {"bio": "hello"}, merge=True)
    await store.update("users/u1", {"isTutor": True})

    snapshot = await store.get("users/u1")
    assert snapshot.data == {"name": "Ana", "bio": "hello", "isTutor": True}


@pytest.mark.asyncio
async def test_update_missing_document_raises_not_found() -> None:
    store = InMemoryDocumentStore()

    with pytest.raises(NotFoundException):
        await store.update("users/u1", {"name": "Ana"})


@pytest.mark.asyncio
async def test_list_collection_and_collection_group_filters() -> None:
    store = InMemoryDocumentStore()
    await store.set("tutors/t1/bookings/b2", {"studentID": "s1", "date": "20250602"})
    await store.set("tutors/t1/bookings/b1", {"studentID": "s1", "date": "20250601"})
    await store.set("tutors/t2/bookings/b3", {"studentID": "s1", "date": "20250530"})
    await store.set("tutors/t2/bookings/b4", {"studentID": "s2", "date": "20250530"})
    await store.set("tutors/t1/availability/20250601", {"timeSlots": [18]})

    tutor_bookings = await store.list_collection("tutors/t1/bookings", order_by=("date",))
    student_bookings = await store.collection_group("bookings", {"studentID": "s1"}, order_by=("date",))

    assert [snapshot.id for snapshot in tutor_bookings] == ["b1", "b2"]
    assert [snapshot.id for snapshot in student_bookings] == ["b3", "b1", "b2"]


def test_split_path_validates_segments() -> None:
    assert split_path("tutors/t1/bookings/b1") == ("tutors/t1/bookings", "b1")
    with pytest.raises(InvalidDocumentPathException):
        split_path("tutors/t1/bookings")


@pytest.mark.parametrize("value", ["", "a/b", "a/b/c", "/"])
def test_document_id_rejects_values_that_span_segments(value: str) -> None:
    with pytest.raises(InvalidDocumentPathException):
        document_id(value)


@pytest.mark.asyncio
async def test_get_with_malformed_path_raises_business_rule_error() -> None:
    store = InMemoryDocumentStore()

    with pytest.raises(InvalidDocumentPathException) as exc:
        await store.get("users/a/b")

    assert exc.value.status_code == 422
    assert exc.value.code == "invalid_path"


@pytest.mark.asyncio
async def test_transaction_reruns_callback_after_concurrent_change() -> None:
    store = InMemoryDocumentStore()
    await store.set("counters/c1", {"value": 0})

    async def _increment(txn: Transaction) -> int:
        snapshot = await txn.get("counters/c1")
        value = snapshot.data["value"] + 1
        txn.set("counters/c1", {"value": value})
        return value

    results = await asyncio.gather(*(store.run_transaction(_increment) for _ in range(3)))

    final = await store.get("counters/c1")
    assert final.data == {"value": 3}
    assert sorted(results) == [1, 2, 3]


@pytest.mark.asyncio
async def test_transaction_raises_conflict_when_attempts_exhausted() -> None:
    store = InMemoryDocumentStore(max_attempts=2)
    await store.set("counters/c1", {"value": 0})
    attempts = 0

    async def _contended(txn: Transaction) -> None:
        nonlocal attempts
        attempts += 1
        await txn.get("counters/c1")
        await store.set("counters/c1", {"value": attempts})
        txn.set("counters/c1", {"value": -1})

    with pytest.raises(TransactionConflictException) as exc:
        await store.run_transaction(_contended)

    assert exc.value.retryable is True
    assert attempts == 2
    assert (await store.get("counters/c1")).data == {"value": 2}


@pytest.mark.asyncio
async def test_domain_error_in_callback_discards_writes() -> None:
    store = InMemoryDocumentStore()

    async def _fails(txn: Transaction) -> None:
        await txn.get("tutors/t1/availability/20250601")
        txn.set("tutors/t1/availability/20250601", {"timeSlots": [1]})
        raise SlotUnavailableException("taken")

    with pytest.raises(SlotUnavailableException):
        await store.run_transaction(_fails)

    assert (await store.get("tutors/t1/availability/20250601")).exists is False


@pytest.mark.asyncio
async def test_transaction_reads_must_precede_writes() -> None:
    store = InMemoryDocumentStore()

    async def _write_then_read(txn: Transaction) -> None:
        txn.set("users/u1", {"name": "Ana"})
        await txn.get("users/u2")

    with pytest.raises(RuntimeError):
        await store.run_transaction(_write_then_read)
