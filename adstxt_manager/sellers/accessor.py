"""Partial access to cached ``sellers.json`` payloads.

Large advertising systems publish sellers.json files of many megabytes. The
accessor answers the three questions the optimizer asks (metadata/summary,
specific sellers, batched sellers) without keeping the full seller array in
memory between calls.

Two interchangeable backends implement :class:`SellersBackend`:

``SummaryBackedAccessor``
    Used when the cache row already carries a derived summary and SQLite has
    JSON1. Metadata comes from the ``summary`` column; seller lookups run as a
    ``json_each`` query and only matching objects are decoded.

``FullArrayBackedAccessor``
    Used otherwise. Loads and parses the payload once per call, derives the
    summary (and writes it back so later calls take the summary path), scans
    for the requested ids, and drops the parsed document when the call ends.

:class:`SellersJsonPartialAccessor` picks the backend per call from what the
cache holds; callers never branch on it.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from adstxt_manager.cache.store import ResourceCacheStore, SummaryRow, utcnow
from adstxt_manager.logger import get_logger
from adstxt_manager.models import (
    CacheStatus,
    ResourceType,
    SellerSummary,
    SellersJsonMetadata,
    normalize_domain,
)
from adstxt_manager.sellers.summary import derive_metadata, summary_from_dict, summary_to_dict

log = get_logger(__name__)


@dataclass(slots=True)
class MetadataView:
    """Result of :meth:`SellersJsonPartialAccessor.get_metadata_and_summary`."""

    domain: str
    metadata: Optional[SellersJsonMetadata]
    summary: Optional[SellerSummary]
    cache_status: Optional[CacheStatus]
    is_cache_miss: bool

    @property
    def has_data(self) -> bool:
        return self.metadata is not None and self.cache_status is CacheStatus.SUCCESS


@dataclass(slots=True)
class SellerLookup:
    domain: str
    matching_sellers: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def found_count(self) -> int:
        return len(self.matching_sellers)


@dataclass(slots=True)
class SellerMatch:
    account_id: str
    seller: Optional[Dict[str, Any]]
    found: bool


@dataclass(slots=True)
class BatchSellerLookup:
    domain: str
    results: List[SellerMatch]
    metadata: Optional[SellersJsonMetadata]


def seller_key(value: Any) -> str:
    """Seller ids compare as trimmed strings (``123`` matches ``"123"``)."""
    return str(value).strip()


class SellersBackend(Protocol):
    async def find(self, domain: str, account_ids: Sequence[str]) -> List[Dict[str, Any]]:
        ...


class SummaryBackedAccessor:
    """Sellers resolved inside SQLite; the array never reaches Python."""

    def __init__(self, store: ResourceCacheStore) -> None:
        self.store = store

    async def find(self, domain: str, account_ids: Sequence[str]) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.store.find_sellers, domain, account_ids)


class FullArrayBackedAccessor:
    """Parses the cached payload for each call; nothing is retained afterwards."""

    def __init__(self, store: ResourceCacheStore) -> None:
        self.store = store

    async def metadata(self, domain: str) -> Tuple[SellersJsonMetadata, SellerSummary]:
        payload = await self._load(domain)
        metadata, summary = derive_metadata(payload)
        await asyncio.to_thread(self.store.update_summary, domain, summary_to_dict(metadata, summary))
        log.debug("Back-filled sellers.json summary for %s", domain)
        return metadata, summary

    async def find(self, domain: str, account_ids: Sequence[str]) -> List[Dict[str, Any]]:
        wanted = {seller_key(a) for a in account_ids}
        payload = await self._load(domain)
        sellers = payload.get("sellers")
        if not isinstance(sellers, list):
            return []
        return [
            seller for seller in sellers
            if isinstance(seller, dict)
            and seller.get("seller_id") is not None
            and seller_key(seller["seller_id"]) in wanted
        ]

    async def _load(self, domain: str) -> Dict[str, Any]:
        record = await asyncio.to_thread(self.store.get_by_domain, ResourceType.SELLERS_JSON, domain)
        if record is None or record.content is None:
            raise LookupError(f"no sellers.json content cached for {domain}")
        payload = json.loads(record.content)
        if not isinstance(payload, dict):
            raise ValueError(f"sellers.json for {domain} is not a JSON object")
        return payload


class SellersJsonPartialAccessor:
    """Domain-scoped metadata / targeted seller queries over the cache."""

    def __init__(
        self,
        store: ResourceCacheStore,
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self._summary_backend = SummaryBackedAccessor(store)
        self._full_backend = FullArrayBackedAccessor(store)

    def _backend_for(self, row: SummaryRow) -> SellersBackend:
        if row.summary is not None and self.store.supports_json:
            return self._summary_backend
        return self._full_backend

    async def _metadata_for(
        self, key: str, row: SummaryRow
    ) -> Tuple[SellersJsonMetadata, SellerSummary]:
        if row.summary is not None:
            return summary_from_dict(row.summary)
        return await self._full_backend.metadata(key)

    async def get_metadata_and_summary(self, domain: str) -> MetadataView:
        """
        Metadata and seller summary of a fresh cached sellers.json.

        ``is_cache_miss`` is True when nothing is cached or the row is stale;
        the caller is expected to fetch and retry.
        """
        key = normalize_domain(domain)
        row = await asyncio.to_thread(self.store.get_summary, key)
        if row is None or self.store.is_expired(row.updated_at, self.ttl, now=self.clock()):
            return MetadataView(
                key, None, None, row.status if row else None, is_cache_miss=True
            )
        if row.status is not CacheStatus.SUCCESS:
            return MetadataView(key, None, None, row.status, is_cache_miss=False)
        metadata, summary = await self._metadata_for(key, row)
        return MetadataView(key, metadata, summary, row.status, is_cache_miss=False)

    async def get_specific_sellers(self, domain: str, account_ids: Sequence[str]) -> SellerLookup:
        """Seller objects whose ``seller_id`` is one of *account_ids*."""
        key = normalize_domain(domain)
        row = await asyncio.to_thread(self.store.get_summary, key)
        if row is None or row.status is not CacheStatus.SUCCESS:
            return SellerLookup(key)
        sellers = await self._backend_for(row).find(key, account_ids)
        return SellerLookup(key, sellers)

    async def batch_get_sellers(self, domain: str, account_ids: Sequence[str]) -> BatchSellerLookup:
        """One pass over the domain's sellers for several ids; order of *account_ids* is kept."""
        key = normalize_domain(domain)
        row = await asyncio.to_thread(self.store.get_summary, key)
        if row is None or row.status is not CacheStatus.SUCCESS:
            return BatchSellerLookup(
                key, [SellerMatch(a, None, False) for a in account_ids], None
            )

        backend = self._backend_for(row)
        sellers = await backend.find(key, account_ids)
        by_id: Dict[str, Dict[str, Any]] = {}
        for seller in sellers:
            if seller.get("seller_id") is None:
                continue
            by_id.setdefault(seller_key(seller["seller_id"]), seller)

        metadata, _ = await self._metadata_for(key, row)

        results = []
        for account_id in account_ids:
            seller = by_id.get(seller_key(account_id))
            results.append(SellerMatch(account_id, seller, seller is not None))
        return BatchSellerLookup(key, results, metadata)


__all__ = [
    "BatchSellerLookup",
    "FullArrayBackedAccessor",
    "MetadataView",
    "SellerLookup",
    "SellerMatch",
    "SellersBackend",
    "SellersJsonPartialAccessor",
    "SummaryBackedAccessor",
    "seller_key",
]
