# backend/app/correlation.py
from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return correlation_id_ctx.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Binds a correlation id for the duration of one core operation.

    - Reuses the caller's id when one is already bound (nested operations share it)
    - Otherwise uses the given id, or generates a UUID4
    - Stored in a ContextVar so asyncio tasks spawned inside inherit it
    """
    current = correlation_id_ctx.get()
    cid = correlation_id or current or str(uuid.uuid4())

    token = correlation_id_ctx.set(cid)
    try:
        yield cid
    finally:
        correlation_id_ctx.reset(token)
