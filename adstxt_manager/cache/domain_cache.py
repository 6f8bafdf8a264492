# adstxt_manager/cache/domain_cache.py
"""
DomainResourceCache: cache-hit или повторная загрузка ресурса домена.

Свежая запись (``now - updated_at < ttl``) возвращается без сетевых запросов.
Иначе ресурс загружается, ответ переводится в статус кэша и сохраняется
upsert-ом. Отсутствие ресурса и неверный формат не являются исключениями:
они кодируются полем ``status``. Наружу пробрасываются только ошибки хранилища
и ``ValueError`` при пустом списке шаблонов URL ads.txt.
"""
from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from adstxt_manager.cache.fetcher import FetchClient, FetchResponse
from adstxt_manager.cache.store import ResourceCacheStore, utcnow
from adstxt_manager.config import ManagerConfig
from adstxt_manager.errors import NetworkError
from adstxt_manager.logger import get_logger
from adstxt_manager.models import CachedResource, CacheStatus, ResourceType, normalize_domain
from adstxt_manager.sellers.summary import derive_metadata, looks_like_sellers_json, summary_to_dict

log = get_logger(__name__)

# (status, content, status_code, error_message, summary)
_Outcome = Tuple[CacheStatus, Optional[str], Optional[int], Optional[str], Optional[Dict[str, Any]]]


class DomainResourceCache:
    """Решает cache-hit или refetch и пишет результат в ResourceCacheStore."""

    def __init__(
        self,
        store: ResourceCacheStore,
        fetcher: FetchClient,
        config: ManagerConfig,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.config = config
        self.clock = clock

    # --------------------------------------------------------------------- #
    # Public API                                                            #
    # --------------------------------------------------------------------- #

    async def get_or_fetch(
        self,
        resource_type: ResourceType,
        domain: str,
        ttl: Optional[timedelta] = None,
    ) -> CachedResource:
        """Вернуть свежую запись кэша или загрузить ресурс и сохранить его."""
        key = normalize_domain(domain)
        ttl = ttl if ttl is not None else self.config.cache_ttl

        cached = await asyncio.to_thread(self.store.get_by_domain, resource_type, key)
        if cached is not None and not self.store.is_expired(cached.updated_at, ttl, now=self.clock()):
            log.debug("Cache hit: %s for %s (%s)", resource_type.value, key, cached.status.value)
            return cached

        log.info("Fetching %s for %s", resource_type.value, key)
        if resource_type is ResourceType.SELLERS_JSON:
            url, outcome = await self._fetch_sellers_json(key)
        else:
            url, outcome = await self._fetch_ads_txt(key)

        status, content, status_code, error_message, summary = outcome
        record = CachedResource(
            resource_type=resource_type,
            domain=key,
            content=content,
            status=status,
            status_code=status_code,
            error_message=error_message,
            updated_at=self.clock(),
            url=url,
        )
        stored = await asyncio.to_thread(self.store.upsert, record, summary)
        if status is not CacheStatus.SUCCESS:
            log.warning("%s for %s: %s (%s)", resource_type.value, key, status.value, error_message)
        return stored

    async def get_cached(self, resource_type: ResourceType, domain: str) -> Optional[CachedResource]:
        """Запись кэша как есть, без проверки свежести и без сети."""
        return await asyncio.to_thread(self.store.get_by_domain, resource_type, normalize_domain(domain))

    # --------------------------------------------------------------------- #
    # URL helpers                                                           #
    # --------------------------------------------------------------------- #

    def sellers_json_url(self, domain: str) -> str:
        special = self.config.special_domains.get(domain)
        if special:
            log.debug("Using special URL for %s: %s", domain, special)
            return special
        return self.config.sellers_json_url_template.format(domain=domain)

    def ads_txt_urls(self, domain: str) -> List[str]:
        return [template.format(domain=domain) for template in self.config.ads_txt_url_templates]

    # --------------------------------------------------------------------- #
    # Fetch + normalization                                                 #
    # --------------------------------------------------------------------- #

    async def _fetch_sellers_json(self, domain: str) -> Tuple[str, _Outcome]:
        url = self.sellers_json_url(domain)
        try:
            resp = await self.fetcher.get(
                url, timeout=self.config.sellers_json_timeout, accept="application/json"
            )
        except NetworkError as exc:
            return url, (CacheStatus.ERROR, None, None, str(exc), None)
        return url, self._normalize_sellers_json(resp)

    async def _fetch_ads_txt(self, domain: str) -> Tuple[Optional[str], _Outcome]:
        outcome: Optional[_Outcome] = None
        url: Optional[str] = None
        for candidate in self.ads_txt_urls(domain):
            url = candidate
            try:
                resp = await self.fetcher.get(
                    candidate, timeout=self.config.ads_txt_timeout, accept="text/plain"
                )
            except NetworkError as exc:
                outcome = self._prefer(outcome, (CacheStatus.ERROR, None, None, str(exc), None))
                continue
            current = self._normalize_ads_txt(resp)
            # первый ответ 200 окончательный, даже если формат неверный
            if resp.status == 200:
                return candidate, current
            outcome = self._prefer(outcome, current)
        if outcome is None:
            raise ValueError("no ads.txt URL templates configured")
        return url, outcome

    @staticmethod
    def _prefer(previous: Optional[_Outcome], current: _Outcome) -> _Outcome:
        # 404 от любого из адресов важнее сетевой ошибки на другом.
        if previous is not None and previous[0] is CacheStatus.NOT_FOUND:
            return previous
        return current

    def _normalize_sellers_json(self, resp: FetchResponse) -> _Outcome:
        if resp.status == 404:
            return CacheStatus.NOT_FOUND, None, 404, "sellers.json file not found", None
        if resp.status != 200:
            return CacheStatus.ERROR, None, resp.status, f"HTTP error {resp.status}", None
        if "application/json" not in resp.content_type:
            return (
                CacheStatus.INVALID_FORMAT, None, 200,
                f"Invalid content type: {resp.content_type or 'missing'}", None,
            )
        if resp.truncated:
            return (
                CacheStatus.INVALID_FORMAT, None, 200,
                f"Response exceeds {self.config.max_content_bytes} bytes", None,
            )
        try:
            payload = json.loads(resp.body)
        except json.JSONDecodeError:
            return CacheStatus.INVALID_FORMAT, None, 200, "Failed to parse JSON response", None
        if not looks_like_sellers_json(payload):
            return (
                CacheStatus.INVALID_FORMAT, None, 200,
                "Response is JSON but does not contain required sellers.json fields", None,
            )
        metadata, summary = derive_metadata(payload)
        return CacheStatus.SUCCESS, resp.body, 200, None, summary_to_dict(metadata, summary)

    def _normalize_ads_txt(self, resp: FetchResponse) -> _Outcome:
        if resp.status == 404:
            return CacheStatus.NOT_FOUND, None, 404, f"Ads.txt not found at {resp.url}", None
        if resp.status != 200:
            return CacheStatus.ERROR, None, resp.status, f"HTTP error {resp.status}", None
        if not resp.content_type.startswith("text/"):
            return (
                CacheStatus.INVALID_FORMAT, None, 200,
                f"Invalid content type: {resp.content_type or 'missing'}", None,
            )
        problem = _ads_txt_format_problem(resp.body)
        if problem:
            return CacheStatus.INVALID_FORMAT, None, 200, problem, None
        return CacheStatus.SUCCESS, resp.body, 200, None, None


def _ads_txt_format_problem(body: str) -> Optional[str]:
    """Быстрая проверка: есть строки данных, и большинство из первых пяти похожи на записи."""
    lines = [
        line.strip() for line in body.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not lines:
        return "Ads.txt file is empty or contains only comments"
    sample = [line for line in lines[:5] if "=" not in line.split(",", 1)[0]]
    if not sample:
        return None
    invalid = [line for line in sample if len(line.split(",")) < 3]
    if len(invalid) > len(sample) / 2:
        return "Ads.txt file appears to be in an invalid format"
    return None


__all__ = ["DomainResourceCache"]
