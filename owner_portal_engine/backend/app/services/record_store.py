# backend/app/services/record_store.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import RecordRow

PROPERTIES = "properties"
COMPLIANCE_SUBMISSIONS = "compliance_submissions"


def _owner(payload: Mapping[str, Any]) -> Optional[str]:
    pid = payload.get("property_id")
    return str(pid) if pid is not None else None


class RecordStore(Protocol):
    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        ...

    async def put(self, collection: str, key: str, payload: dict[str, Any]) -> None:
        ...

    async def delete(self, collection: str, key: str) -> bool:
        ...

    async def list(self, collection: str, *, property_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Insertion order. With property_id, only payloads whose property_id matches."""
        ...


class InMemoryRecordStore:
    """Per-instance dict store. `records` seeds it as {collection: {key: payload}}."""

    def __init__(self, records: Optional[Mapping[str, Mapping[str, dict[str, Any]]]] = None) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        for collection, rows in (records or {}).items():
            for key, payload in rows.items():
                self._data.setdefault(collection, {})[str(key)] = dict(payload)

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        v = self._data.get(collection, {}).get(str(key))
        return dict(v) if v is not None else None

    async def put(self, collection: str, key: str, payload: dict[str, Any]) -> None:
        self._data.setdefault(collection, {})[str(key)] = dict(payload)

    async def delete(self, collection: str, key: str) -> bool:
        return self._data.get(collection, {}).pop(str(key), None) is not None

    async def list(self, collection: str, *, property_id: Optional[str] = None) -> list[dict[str, Any]]:
        rows = self._data.get(collection, {}).values()
        if property_id is not None:
            rows = [v for v in rows if _owner(v) == str(property_id)]
        return [dict(v) for v in rows]


class SqlRecordStore:
    """RecordStore over the generic `records` table. One short AsyncSession per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        async with self._sessions() as db:
            row = await db.scalar(
                select(RecordRow).where(RecordRow.collection == collection, RecordRow.key == str(key))
            )
            return json.loads(row.payload_json) if row is not None else None

    async def put(self, collection: str, key: str, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, default=str, sort_keys=True)
        async with self._sessions() as db:
            try:
                row = await db.scalar(
                    select(RecordRow).where(RecordRow.collection == collection, RecordRow.key == str(key))
                )
                if row is None:
                    db.add(
                        RecordRow(
                            collection=collection,
                            key=str(key),
                            property_id=_owner(payload),
                            payload_json=body,
                            updated_at=datetime.utcnow(),
                        )
                    )
                else:
                    row.property_id = _owner(payload)
                    row.payload_json = body
                    row.updated_at = datetime.utcnow()
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def delete(self, collection: str, key: str) -> bool:
        async with self._sessions() as db:
            try:
                res = await db.execute(
                    delete(RecordRow).where(RecordRow.collection == collection, RecordRow.key == str(key))
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            return bool(res.rowcount)

    async def list(self, collection: str, *, property_id: Optional[str] = None) -> list[dict[str, Any]]:
        q = select(RecordRow).where(RecordRow.collection == collection)
        if property_id is not None:
            q = q.where(RecordRow.property_id == str(property_id))
        async with self._sessions() as db:
            rows = (await db.scalars(q.order_by(RecordRow.id.asc()))).all()
            return [json.loads(r.payload_json) for r in rows]


# -------------------- Typed helpers over the collections --------------------

async def property_entry(store: RecordStore, property_id: str) -> Optional[dict[str, Any]]:
    return await store.get(PROPERTIES, str(property_id))


async def known_properties(store: RecordStore) -> list[dict[str, Any]]:
    return [p for p in await store.list(PROPERTIES) if p.get("id") is not None]


async def latest_local_submission(store: RecordStore, property_id: str) -> Optional[dict[str, Any]]:
    rows = await store.list(COMPLIANCE_SUBMISSIONS, property_id=str(property_id))
    if not rows:
        return None
    return max(rows, key=lambda r: str(r.get("submitted_at") or ""))
