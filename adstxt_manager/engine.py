# File: adstxt_manager/engine.py
"""adstxt_manager.engine: сборка зависимостей и запуск операций для CLI и тестов."""

from __future__ import annotations

import asyncio
from dataclasses import asdict
from datetime import timedelta
from typing import Any, Dict, List, Optional

from adstxt_manager.cache.domain_cache import DomainResourceCache
from adstxt_manager.cache.fetcher import FetchClient
from adstxt_manager.cache.store import ResourceCacheStore
from adstxt_manager.config import ManagerConfig, load_config
from adstxt_manager.logger import get_logger
from adstxt_manager.models import CachedResource, ResourceType
from adstxt_manager.optimizer import OptimizationResult, Optimizer
from adstxt_manager.orchestrator import ConcurrencyBoundedOrchestrator, OperationResult
from adstxt_manager.sellers.accessor import (
    BatchSellerLookup,
    MetadataView,
    SellerLookup,
    SellersJsonPartialAccessor,
)

__all__ = ["Engine", "start_optimize", "start_fetch", "start_refresh", "start_sellers_lookup"]

log = get_logger(__name__)


class Engine:
    """Фасад: хранилище, HTTP-сессия, кэш, accessor и оптимизатор в одном контексте.

    Пример::

        async with Engine(config) as engine:
            result = await engine.optimizer.optimize(text, "example.com")
    """

    @staticmethod
    def load_config(path: Optional[str]) -> ManagerConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: ManagerConfig, store: Optional[ResourceCacheStore] = None) -> None:
        self.config = config
        self.store = store or ResourceCacheStore(config.db_path)
        self.fetcher = FetchClient(config)
        self.domain_cache = DomainResourceCache(self.store, self.fetcher, config, clock=self.store.clock)
        self.accessor = SellersJsonPartialAccessor(self.store, config.cache_ttl, clock=self.store.clock)
        self.optimizer = Optimizer(
            self.domain_cache,
            self.accessor,
            concurrency_limit=config.concurrency_limit,
            chunk_pause=config.chunk_pause,
        )

    async def __aenter__(self) -> Engine:
        await self.fetcher.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.fetcher.close()

    async def optimize(
        self, content: str, publisher_domain: Optional[str] = None, level: str = "level2"
    ) -> OptimizationResult:
        return await self.optimizer.optimize(content, publisher_domain, level)  # type: ignore[arg-type]

    async def get_metadata_and_summary(self, domain: str) -> MetadataView:
        """Метаданные sellers.json; при промахе кэша загружает файл один раз."""
        view = await self.accessor.get_metadata_and_summary(domain)
        if view.is_cache_miss:
            await self.domain_cache.get_or_fetch(ResourceType.SELLERS_JSON, domain)
            view = await self.accessor.get_metadata_and_summary(domain)
        return view

    async def get_specific_sellers(self, domain: str, account_ids: List[str]) -> SellerLookup:
        await self.get_metadata_and_summary(domain)
        return await self.accessor.get_specific_sellers(domain, account_ids)

    async def batch_get_sellers(self, domain: str, account_ids: List[str]) -> BatchSellerLookup:
        await self.get_metadata_and_summary(domain)
        return await self.accessor.batch_get_sellers(domain, account_ids)

    async def refresh(
        self,
        resource_type: ResourceType,
        ttl: Optional[timedelta] = None,
        limit: int = 100,
    ) -> List[OperationResult]:
        """Перезагрузить до ``limit`` самых старых устаревших записей пачками."""
        ttl = ttl if ttl is not None else self.config.cache_ttl
        domains = await asyncio.to_thread(self.store.list_expired, resource_type, ttl, limit)
        log.info("Refreshing %d expired %s entries", len(domains), resource_type.value)
        if not domains:
            return []

        async def refetch(domain: str) -> CachedResource:
            return await self.domain_cache.get_or_fetch(resource_type, domain, ttl)

        orchestrator = ConcurrencyBoundedOrchestrator(self.config.concurrency_limit, self.config.chunk_pause)
        return await orchestrator.run_bounded(domains, refetch)


async def start_optimize(
    cfg: ManagerConfig, content: str, publisher_domain: Optional[str] = None, level: str = "level2"
) -> OptimizationResult:
    """Запускает оптимизацию в собственном контексте Engine."""
    engine = Engine(cfg)
    try:
        async with engine:
            return await engine.optimize(content, publisher_domain, level)
    finally:
        engine.store.close()


async def start_fetch(cfg: ManagerConfig, resource_type: ResourceType, domain: str) -> CachedResource:
    """Возвращает запись кэша для домена, загружая ресурс при необходимости."""
    engine = Engine(cfg)
    try:
        async with engine:
            return await engine.domain_cache.get_or_fetch(resource_type, domain)
    finally:
        engine.store.close()


async def start_refresh(
    cfg: ManagerConfig,
    resource_type: ResourceType,
    ttl: Optional[timedelta] = None,
    limit: int = 100,
) -> List[OperationResult]:
    """Обновляет устаревшие записи кэша одного типа."""
    engine = Engine(cfg)
    try:
        async with engine:
            return await engine.refresh(resource_type, ttl, limit)
    finally:
        engine.store.close()


async def start_sellers_lookup(
    cfg: ManagerConfig, domain: str, seller_ids: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Метаданные sellers.json домена и, если заданы, найденные продавцы."""
    engine = Engine(cfg)
    try:
        async with engine:
            view = await engine.get_metadata_and_summary(domain)
            result: Dict[str, Any] = {
                "domain": view.domain,
                "cache_status": view.cache_status.value if view.cache_status else None,
                "metadata": _asdict_or_none(view.metadata),
                "summary": _asdict_or_none(view.summary),
            }
            if seller_ids:
                batch = await engine.accessor.batch_get_sellers(domain, seller_ids)
                result["sellers"] = [
                    {"account_id": m.account_id, "found": m.found, "seller": m.seller}
                    for m in batch.results
                ]
            return result
    finally:
        engine.store.close()


def _asdict_or_none(obj: Any) -> Optional[Dict[str, Any]]:
    return asdict(obj) if obj is not None else None
