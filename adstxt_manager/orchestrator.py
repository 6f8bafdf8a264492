# adstxt_manager/orchestrator.py
"""
Оркестрация per-domain операций: потолок параллелизма и слияние
одновременных запросов к одному домену.

Два независимых слоя:

* :class:`InFlightCoalescer`: не более одной незавершённой операции на
  нормализованный домен; повторные вызовы ждут ту же задачу.
* :class:`ConcurrencyBoundedOrchestrator`: пачки по ``concurrency_limit``
  доменов, пачки выполняются последовательно, каждая операция идёт через
  coalescer.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from adstxt_manager.logger import get_logger
from adstxt_manager.models import normalize_domain

log = get_logger(__name__)

T = TypeVar("T")

DomainOperation = Callable[[str], Awaitable[T]]

DEFAULT_CONCURRENCY_LIMIT = 10
DEFAULT_CHUNK_PAUSE = 0.1


@dataclass(slots=True)
class OperationResult(Generic[T]):
    """Итог операции для одного домена: значение или исключение."""

    domain: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class InFlightCoalescer:
    """Реестр выполняющихся операций ``domain -> task``."""

    def __init__(self) -> None:
        self._in_flight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._in_flight)

    def is_pending(self, domain: str) -> bool:
        return normalize_domain(domain) in self._in_flight

    async def coalesce(self, domain: str, op: DomainOperation) -> Any:
        """Выполнить ``op(domain)`` или присоединиться к уже идущему вызову."""
        key = normalize_domain(domain)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, op))
            self._in_flight[key] = task
        else:
            log.debug("Joining in-flight operation for %s", key)
        # shield: отмена одного ожидающего не отменяет общую задачу
        return await asyncio.shield(task)

    async def _run(self, key: str, op: DomainOperation) -> Any:
        try:
            return await op(key)
        finally:
            self._in_flight.pop(key, None)


class ConcurrencyBoundedOrchestrator:
    """Запускает операцию по набору доменов пачками фиксированного размера."""

    def __init__(
        self,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        chunk_pause: float = DEFAULT_CHUNK_PAUSE,
        coalescer: Optional[InFlightCoalescer] = None,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        self.concurrency_limit = concurrency_limit
        self.chunk_pause = chunk_pause
        self.coalescer = coalescer if coalescer is not None else InFlightCoalescer()

    async def coalesce(self, domain: str, op: DomainOperation) -> Any:
        return await self.coalescer.coalesce(domain, op)

    async def run_bounded(
        self,
        domains: Iterable[str],
        op: DomainOperation,
        concurrency_limit: Optional[int] = None,
        pause: Optional[float] = None,
    ) -> List[OperationResult]:
        """
        Выполнить ``op`` для каждого домена, не более ``concurrency_limit``
        одновременно. Ошибка одного домена не прерывает пакет.
        """
        limit = concurrency_limit or self.concurrency_limit
        pause = self.chunk_pause if pause is None else pause
        keys = sorted({normalize_domain(d) for d in domains if d and d.strip()})
        chunks = [keys[i:i + limit] for i in range(0, len(keys), limit)]

        results: List[OperationResult] = []
        for index, chunk in enumerate(chunks):
            if index and pause > 0:
                await asyncio.sleep(pause)
            outcomes = await asyncio.gather(
                *(self.coalescer.coalesce(domain, op) for domain in chunk),
                return_exceptions=True,
            )
            for domain, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    if isinstance(outcome, asyncio.CancelledError):
                        raise outcome
                    log.warning("Operation for %s failed: %s", domain, outcome)
                    results.append(OperationResult(domain, error=outcome))
                else:
                    results.append(OperationResult(domain, value=outcome))
            log.debug("Chunk %d/%d done (%d domains)", index + 1, len(chunks), len(chunk))
        return results


__all__ = [
    "ConcurrencyBoundedOrchestrator",
    "DEFAULT_CHUNK_PAUSE",
    "DEFAULT_CONCURRENCY_LIMIT",
    "InFlightCoalescer",
    "OperationResult",
]
