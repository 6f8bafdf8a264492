# File: tests/conftest.py
from __future__ import annotations

import json
from collections import Counter
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest
import pytest_asyncio
from aiohttp import web

from adstxt_manager.cache.store import ResourceCacheStore
from adstxt_manager.config import ManagerConfig
from adstxt_manager.models import CachedResource, CacheStatus, ResourceType
from adstxt_manager.sellers.summary import derive_metadata, summary_to_dict

# --------------------------------------------------------------------------- #
#                               Helper utilities                              #
# --------------------------------------------------------------------------- #

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Управляемые часы для проверок TTL."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class AdServer:
    """Локальный сервер sellers.json / ads.txt со счётчиком запросов."""

    def __init__(self, base: str, hits: Counter) -> None:
        self.base = base
        self.hits = hits

    def sellers_hits(self, domain: str) -> int:
        return self.hits[("sellers_json", domain)]

    def ads_txt_hits(self, domain: str) -> int:
        return self.hits[("ads_txt", domain)]

    @property
    def total(self) -> int:
        return sum(self.hits.values())


def put_sellers_json(
    store: ResourceCacheStore,
    domain: str,
    payload: Dict[str, Any],
    *,
    updated_at: Optional[datetime] = None,
    with_summary: bool = True,
) -> CachedResource:
    """Положить успешный sellers.json прямо в кэш, минуя сеть."""
    summary = summary_to_dict(*derive_metadata(payload)) if with_summary else None
    record = CachedResource(
        resource_type=ResourceType.SELLERS_JSON,
        domain=domain,
        content=json.dumps(payload),
        status=CacheStatus.SUCCESS,
        status_code=200,
        error_message=None,
        updated_at=updated_at or store.clock(),
    )
    return store.upsert(record, summary)


def put_failure(
    store: ResourceCacheStore,
    domain: str,
    status: CacheStatus = CacheStatus.NOT_FOUND,
    *,
    updated_at: Optional[datetime] = None,
) -> CachedResource:
    record = CachedResource(
        resource_type=ResourceType.SELLERS_JSON,
        domain=domain,
        content=None,
        status=status,
        status_code=404 if status is CacheStatus.NOT_FOUND else None,
        error_message=status.value,
        updated_at=updated_at or store.clock(),
    )
    return store.upsert(record)


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock) -> ResourceCacheStore:
    """In-memory кэш с управляемыми часами."""
    db = ResourceCacheStore(":memory:", clock=clock)
    yield db
    db.close()


@pytest.fixture()
def sellers_payloads() -> Dict[str, Dict[str, Any]]:
    """sellers.json, которые отдаёт тестовый сервер."""
    return {
        "openx.com": {
            "contact_email": "publishersupport@openx.com",
            "version": "1.0",
            "sellers": [
                {"seller_id": "123", "is_confidential": 1, "seller_type": "PUBLISHER"},
                {"seller_id": "456", "is_confidential": 0, "seller_type": "INTERMEDIARY", "name": "Acme"},
            ],
        },
        "pubmatic.com": {
            "contact_email": "sellers@pubmatic.com",
            "sellers": [
                {"seller_id": "156", "is_confidential": 0, "seller_type": "PUBLISHER", "name": "News"},
                {"seller_id": "157", "is_confidential": 0, "seller_type": "BOTH", "name": "Blogs"},
            ],
        },
        "appnexus.com": {
            "identifiers": [{"name": "TAG-ID", "value": "f5ab79cb980f11d1"}],
            "sellers": [
                {"seller_id": 1001, "is_confidential": 0, "seller_type": "INTERMEDIARY"},
            ],
        },
    }


@pytest.fixture()
def ads_txt_files() -> Dict[str, str]:
    """ads.txt по путям ``/<host>/ads.txt``."""
    return {
        "publisher.test": "google.com, pub-1, DIRECT, f08c47fec0942fa0\nopenx.com, 123, RESELLER\n",
        "www.fallback.test": "pubmatic.com, 156, DIRECT\n",
        "html.test": "<html><body>Not ads.txt</body></html>",
        "comments.test": "# only comments here\n\n# nothing else\n",
    }


@pytest_asyncio.fixture
async def ad_server(unused_tcp_port: int, sellers_payloads, ads_txt_files) -> AsyncIterator[AdServer]:
    app = web.Application()
    hits: Counter = Counter()

    async def handle_sellers(request: web.Request) -> web.Response:
        domain = request.match_info["domain"]
        hits[("sellers_json", domain)] += 1
        if domain == "html.test":
            return web.Response(text="<html></html>", content_type="text/html")
        if domain == "broken.test":
            return web.Response(text="{not json", content_type="application/json")
        if domain == "unrelated.test":
            return web.json_response({"hello": "world"})
        if domain == "down.test":
            return web.Response(status=503, text="unavailable")
        payload = sellers_payloads.get(domain)
        if payload is None:
            return web.Response(status=404, text="not found")
        return web.json_response(payload)

    async def handle_ads_txt(request: web.Request) -> web.Response:
        host = request.match_info["domain"]
        hits[("ads_txt", host)] += 1
        body = ads_txt_files.get(host)
        if body is None:
            return web.Response(status=404, text="not found")
        content_type = "text/html" if body.startswith("<html>") else "text/plain"
        return web.Response(text=body, content_type=content_type)

    app.router.add_get("/{domain}/sellers.json", handle_sellers)
    app.router.add_get("/{domain}/ads.txt", handle_ads_txt)

    async for url in _serve_app(app, unused_tcp_port):
        yield AdServer(url, hits)


@pytest.fixture()
def make_config(tmp_path: Path) -> Callable[..., ManagerConfig]:
    """Фабрика конфигов, указывающих на тестовый сервер."""

    def _make(base: str, **overrides: Any) -> ManagerConfig:
        data: Dict[str, Any] = {
            "db_path": str(tmp_path / "cache.sqlite"),
            "sellers_json_url_template": f"{base}/{{domain}}/sellers.json",
            "ads_txt_url_templates": [f"{base}/{{domain}}/ads.txt", f"{base}/www.{{domain}}/ads.txt"],
            "special_domains": {},
            "sellers_json_timeout": 5.0,
            "ads_txt_timeout": 5.0,
            "chunk_pause": 0,
        }
        data.update(overrides)
        return ManagerConfig(**data)

    return _make
