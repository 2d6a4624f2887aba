"""Fan-out executor: run independent coroutines and join on all of them.

Mapping one entity type never depends on mapping another, so startup
applies them concurrently. The caller needs every failure, not just the
first one, so nothing here fails fast: each item records its own outcome
and the aggregate result lists them all.

::

    FanOutExecutor(limit)
      ├── .add(name, fn, **kwargs)   queue fn(**kwargs) under a name
      └── .run_all()                 semaphore-bounded gather
            └── FanOutResult         succeeded / failed / failures

Example::

    fanout = FanOutExecutor(limit=10)
    fanout.add("sys_user", put_mapping, entity_type="sys_user")
    fanout.add("shop_order", put_mapping, entity_type="shop_order")
    result = await fanout.run_all()
    result.failures  # {"shop_order": "mapper_parsing_exception ..."}
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from searchspine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FanOutItem:
    """One queued call and, after the run, its outcome."""

    name: str
    fn: Callable[..., Awaitable[Any]]
    kwargs: dict[str, Any] = field(default_factory=dict)
    done: bool = False
    value: Any = None
    exception: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.done and self.exception is None

    @property
    def error(self) -> str | None:
        if self.exception is None:
            return None
        return str(self.exception) or type(self.exception).__name__


@dataclass
class FanOutResult:
    items: list[FanOutItem]
    elapsed_ms: float = 0.0

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return len([item for item in self.items if item.ok])

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> dict[str, str]:
        """Names of failed items mapped to their error messages."""
        return {item.name: item.error or "" for item in self.items if not item.ok}

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "elapsed_ms": self.elapsed_ms,
            "failures": self.failures,
        }


class FanOutExecutor:
    """Join-all executor; at most ``limit`` calls are in flight at once."""

    def __init__(self, limit: int = 10) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._limit = limit
        self._items: list[FanOutItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def add(self, name: str, fn: Callable[..., Awaitable[Any]], /, **kwargs: Any) -> FanOutExecutor:
        self._items.append(FanOutItem(name=name, fn=fn, kwargs=kwargs))
        return self

    async def _run(self, item: FanOutItem, gate: asyncio.Semaphore) -> None:
        async with gate:
            try:
                item.value = await item.fn(**item.kwargs)
            except Exception as e:
                item.exception = e
                logger.warning("fanout.item_failed", name=item.name, error=item.error)
            finally:
                item.done = True

    async def run_all(self) -> FanOutResult:
        """Run every queued call and wait for all of them, failed or not."""
        gate = asyncio.Semaphore(self._limit)
        started = time.perf_counter()
        await asyncio.gather(*(self._run(item, gate) for item in self._items))

        result = FanOutResult(
            items=list(self._items),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        logger.debug(
            "fanout.complete",
            total=result.total,
            failed=result.failed,
            elapsed_ms=result.elapsed_ms,
        )
        return result
