# backend/app/domain/outcomes.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, TypeVar, Union

K = TypeVar("K")
T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: Exception

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


Outcome = Union[Ok[T], Err]


async def settle_all(keys: Iterable[K], fn: Callable[[K], Awaitable[T]]) -> list[Outcome[T]]:
    """
    Structured fan-out/fan-in.

    Runs fn(key) for every key as independent tasks and waits for all of them to settle.
    Returns one Outcome per key, in key order. A failing task never cancels its siblings.
    Cancellation (BaseException that is not an Exception) is re-raised.
    """
    keys = list(keys)
    if not keys:
        return []

    results = await asyncio.gather(*(fn(k) for k in keys), return_exceptions=True)

    out: list[Outcome[T]] = []
    for r in results:
        if isinstance(r, Exception):
            out.append(Err(r))
        elif isinstance(r, BaseException):
            raise r
        else:
            out.append(Ok(r))
    return out
