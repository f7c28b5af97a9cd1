# backend/tests/test_record_store.py
from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.config import settings
from app.db import async_url, init_db, make_engine, make_session_factory
from app.models import RecordRow
from app.services.compliance_engine import ComplianceEngine
from app.services.record_store import (
    COMPLIANCE_SUBMISSIONS,
    PROPERTIES,
    InMemoryRecordStore,
    SqlRecordStore,
    known_properties,
    latest_local_submission,
)
from app.services.reservation_reconciler import ReservationReconciler

from conftest import TODAY, FakeCompliance, FakeReservations


@pytest_asyncio.fixture
async def sessions():
    engine = make_engine("sqlite://")
    await init_db(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_store(request, sessions):
    return InMemoryRecordStore() if request.param == "memory" else SqlRecordStore(sessions)


def test_plain_urls_get_async_drivers():
    assert async_url("sqlite://") == "sqlite+aiosqlite://"
    assert async_url("sqlite:///./owner_portal.db") == "sqlite+aiosqlite:///./owner_portal.db"
    assert async_url("postgresql://u:pw@db/portal") == "postgresql+asyncpg://u:pw@db/portal"
    assert async_url("postgresql+asyncpg://u@db/portal") == "postgresql+asyncpg://u@db/portal"


@pytest.mark.asyncio
async def test_put_get_overwrite_delete(any_store):
    s = any_store
    await s.put(PROPERTIES, "p1", {"id": "p1", "name": "A"})
    assert await s.get(PROPERTIES, "p1") == {"id": "p1", "name": "A"}

    await s.put(PROPERTIES, "p1", {"id": "p1", "name": "B"})
    assert (await s.get(PROPERTIES, "p1"))["name"] == "B"
    assert len(await s.list(PROPERTIES)) == 1

    assert await s.delete(PROPERTIES, "p1") is True
    assert await s.delete(PROPERTIES, "p1") is False
    assert await s.get(PROPERTIES, "p1") is None


@pytest.mark.asyncio
async def test_collections_are_separate(any_store):
    s = any_store
    await s.put(PROPERTIES, "x", {"id": "x"})
    await s.put(COMPLIANCE_SUBMISSIONS, "x", {"id": "x", "property_id": "p1"})
    assert await s.list(PROPERTIES) == [{"id": "x"}]
    assert await s.list(COMPLIANCE_SUBMISSIONS) == [{"id": "x", "property_id": "p1"}]


@pytest.mark.asyncio
async def test_list_keeps_insertion_order(any_store):
    s = any_store
    for k in ("c", "a", "b"):
        await s.put(PROPERTIES, k, {"id": k})
    assert [p["id"] for p in await s.list(PROPERTIES)] == ["c", "a", "b"]


@pytest.mark.asyncio
async def test_list_by_property(any_store):
    s = any_store
    await s.put(COMPLIANCE_SUBMISSIONS, "s1", {"property_id": "p1"})
    await s.put(COMPLIANCE_SUBMISSIONS, "s2", {"property_id": "p2"})
    await s.put(COMPLIANCE_SUBMISSIONS, "s3", {"property_id": 1})
    await s.put(COMPLIANCE_SUBMISSIONS, "s2", {"property_id": "p1", "moved": True})

    assert await s.list(COMPLIANCE_SUBMISSIONS, property_id="p1") == [
        {"property_id": "p1"},
        {"property_id": "p1", "moved": True},
    ]
    assert await s.list(COMPLIANCE_SUBMISSIONS, property_id="p2") == []
    assert len(await s.list(COMPLIANCE_SUBMISSIONS, property_id="1")) == 1


@pytest.mark.asyncio
async def test_property_id_column_is_written(sessions):
    s = SqlRecordStore(sessions)
    await s.put(COMPLIANCE_SUBMISSIONS, "s1", {"property_id": "p7"})
    await s.put(PROPERTIES, "p7", {"id": "p7"})

    async with sessions() as db:
        rows = (await db.scalars(select(RecordRow).order_by(RecordRow.id))).all()
    assert [(r.collection, r.property_id) for r in rows] == [(COMPLIANCE_SUBMISSIONS, "p7"), (PROPERTIES, None)]


@pytest.mark.asyncio
async def test_returned_payloads_are_copies():
    s = InMemoryRecordStore({PROPERTIES: {"p1": {"id": "p1"}}})
    got = await s.get(PROPERTIES, "p1")
    got["name"] = "mutated"
    assert "name" not in await s.get(PROPERTIES, "p1")


@pytest.mark.asyncio
async def test_helpers(any_store):
    s = any_store
    await s.put(PROPERTIES, "p1", {"id": "p1"})
    await s.put(PROPERTIES, "orphan", {"name": "no id"})
    assert [p["id"] for p in await known_properties(s)] == ["p1"]

    await s.put(COMPLIANCE_SUBMISSIONS, "s1", {"property_id": "p1", "submitted_at": "2025-07-01T09:00:00+00:00"})
    await s.put(COMPLIANCE_SUBMISSIONS, "s2", {"property_id": "p1", "submitted_at": "2025-07-21T09:00:00+00:00"})
    await s.put(COMPLIANCE_SUBMISSIONS, "s3", {"property_id": "p2", "submitted_at": "2025-07-30T09:00:00+00:00"})

    assert (await latest_local_submission(s, "p1"))["submitted_at"].startswith("2025-07-21")
    assert await latest_local_submission(s, "p9") is None


@pytest.mark.asyncio
async def test_dashboard_over_sql_store(sessions):
    store = SqlRecordStore(sessions)
    await store.put(PROPERTIES, "p1", {"id": "p1", "name": "Piece of Heaven"})
    await store.put(PROPERTIES, "p2", {"id": "p2", "name": "Lote 7 3-A"})
    await store.put(
        COMPLIANCE_SUBMISSIONS,
        "local-1",
        {"id": "local-1", "property_id": "p1", "submitted_at": "2025-07-29T10:00:00+00:00"},
    )

    compliance = FakeCompliance(last_dates={"p2": "2025-07-01"}, fail_last=("p1",))
    reconciler = ReservationReconciler(FakeReservations("primary"), settings=settings, today=lambda: TODAY)
    eng = ComplianceEngine(
        compliance,
        store,
        reconciler,
        settings=settings,
        today=lambda: TODAY,
        now=lambda: datetime(2025, 8, 1, 12, 0, tzinfo=timezone.utc),
    )

    dash = await eng.dashboard()
    rows = {r.property_id: r for r in dash.rows}
    assert rows["p1"].data_source == "local"
    assert rows["p1"].last_submission == "2025-07-29"
    assert rows["p2"].status == "overdue"

    sent = await eng.send("p2", {"guestName": "Ana", "checkIn": "2025-07-10", "checkOut": "2025-07-15", "adults": 2})
    assert sent.recorded_locally is True
    assert [r["id"] for r in await store.list(COMPLIANCE_SUBMISSIONS, property_id="p2")] == [sent.submission_id]
