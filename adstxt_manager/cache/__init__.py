"""adstxt_manager.cache: хранилище, загрузчик и доменный кэш ads.txt / sellers.json."""

from .domain_cache import DomainResourceCache
from .fetcher import FetchClient, FetchResponse
from .store import ResourceCacheStore, SummaryRow

__all__ = ["DomainResourceCache", "FetchClient", "FetchResponse", "ResourceCacheStore", "SummaryRow"]
