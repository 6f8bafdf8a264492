"""Persistent cache of fetched ``ads.txt`` / ``sellers.json`` resources backed by SQLite.

One row per ``(resource_type, domain)``. Writes are upserts (last writer wins),
rows are never deleted here: a refresh replaces the row in place.

For ``sellers_json`` rows the metadata and seller summary are stored in a
separate JSON column (``summary``) so that callers can read them without
loading the, potentially multi-megabyte, ``content`` column. Targeted seller
lookups run inside SQLite through the JSON1 ``json_each`` table function and
return only the matching seller objects.

Typical Usage:
    store = ResourceCacheStore(Path("adstxt_cache.sqlite"))
    record = store.get_by_domain(ResourceType.SELLERS_JSON, "openx.com")
    if record is None or store.is_expired(record.updated_at, timedelta(hours=24)):
        ...
"""

from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from adstxt_manager.errors import StoreError
from adstxt_manager.logger import get_logger
from adstxt_manager.models import CachedResource, CacheStatus, ResourceType, normalize_domain

log = get_logger(__name__)

_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA busy_timeout=4000;
CREATE TABLE IF NOT EXISTS cached_resources (
    resource_type TEXT NOT NULL,
    domain TEXT NOT NULL,
    content TEXT,
    status TEXT NOT NULL,
    status_code INTEGER,
    error_message TEXT,
    url TEXT,
    summary TEXT,               -- JSON: {"metadata": {...}, "summary": {...}}
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (resource_type, domain)
);
CREATE INDEX IF NOT EXISTS idx_cr_updated ON cached_resources(updated_at);
"""

_UPSERT = """
INSERT INTO cached_resources
    (resource_type, domain, content, status, status_code, error_message, url,
     summary, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(resource_type, domain) DO UPDATE SET
    content = excluded.content,
    status = excluded.status,
    status_code = excluded.status_code,
    error_message = excluded.error_message,
    url = excluded.url,
    summary = excluded.summary,
    updated_at = excluded.updated_at
"""

# SQLite's historical default for SQLITE_MAX_VARIABLE_NUMBER is 999.
_MAX_IDS_PER_QUERY = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_text(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _from_text(raw: str) -> datetime:
    ts = datetime.fromisoformat(raw)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(slots=True)
class SummaryRow:
    """Row projection without ``content``."""

    domain: str
    status: CacheStatus
    summary: Optional[Dict[str, Any]]
    updated_at: datetime


class ResourceCacheStore:
    """
    SQLite-backed key-value store of :class:`CachedResource` rows.

    Parameters
    ----------
    db_path : Path | str
        Database file. ``":memory:"`` gives a private in-memory database.
    clock : Callable[[], datetime]
        Wall-clock provider used by :meth:`is_expired` (default: UTC now).

    All public methods are synchronous and thread-safe; async callers run them
    in a worker thread.
    """

    def __init__(
        self,
        db_path: Union[Path, str],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db_path = str(db_path)
        self.clock = clock
        self._lock = threading.Lock()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(
                self.db_path,
                isolation_level=None,  # autocommit
                check_same_thread=False,
            )
            cursor = self._conn.cursor()
            for stmt in _DDL.strip().split(";\n"):
                if stmt.strip():
                    cursor.execute(stmt)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open cache database {self.db_path}: {exc}") from exc
        self.supports_json = self._detect_json()

    # ── persistence API ─────────────────────────────────────────────────────

    def get_by_domain(self, resource_type: ResourceType, domain: str) -> Optional[CachedResource]:
        """Return the cached row for ``(resource_type, domain)`` or None."""
        row = self._fetchone(
            "SELECT resource_type, domain, content, status, status_code, error_message,"
            " url, created_at, updated_at FROM cached_resources"
            " WHERE resource_type = ? AND domain = ?",
            (resource_type.value, normalize_domain(domain)),
        )
        if row is None:
            return None
        return CachedResource(
            resource_type=ResourceType(row[0]),
            domain=row[1],
            content=row[2],
            status=CacheStatus(row[3]),
            status_code=row[4],
            error_message=row[5],
            url=row[6],
            created_at=_from_text(row[7]),
            updated_at=_from_text(row[8]),
        )

    def upsert(
        self, record: CachedResource, summary: Optional[Dict[str, Any]] = None
    ) -> CachedResource:
        """Insert or replace the row for the record's key and return the stored record."""
        created = record.created_at or record.updated_at
        params = (
            record.resource_type.value,
            record.domain,
            record.content,
            record.status.value,
            record.status_code,
            record.error_message,
            record.url,
            json.dumps(summary) if summary is not None else None,
            _to_text(created),
            _to_text(record.updated_at),
        )
        self._execute(_UPSERT, params)
        log.debug(
            "Upserted %s for %s (status=%s)",
            record.resource_type.value, record.domain, record.status.value,
        )
        stored = self.get_by_domain(record.resource_type, record.domain)
        if stored is None:
            raise StoreError(f"upsert for {record.domain} was not persisted")
        return stored

    def is_expired(self, updated_at: datetime, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        """A row is fresh while ``now - updated_at < ttl``."""
        current = now or self.clock()
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return current - updated_at >= ttl

    def list_expired(
        self,
        resource_type: ResourceType,
        ttl: timedelta,
        limit: int = 100,
        now: Optional[datetime] = None,
    ) -> List[str]:
        """Domains whose rows are stale under *ttl*, oldest first, at most *limit*."""
        if limit < 1:
            return []
        cutoff = (now or self.clock()) - ttl
        rows = self._fetchall(
            "SELECT domain FROM cached_resources"
            " WHERE resource_type = ? AND updated_at <= ?"
            " ORDER BY updated_at ASC, domain ASC LIMIT ?",
            (resource_type.value, _to_text(cutoff), limit),
        )
        return [row[0] for row in rows]

    # ── sellers.json projections ────────────────────────────────────────────

    def get_summary(self, domain: str) -> Optional[SummaryRow]:
        """Read status, summary and timestamp of a sellers.json row, skipping ``content``."""
        row = self._fetchone(
            "SELECT domain, status, summary, updated_at FROM cached_resources"
            " WHERE resource_type = ? AND domain = ?",
            (ResourceType.SELLERS_JSON.value, normalize_domain(domain)),
        )
        if row is None:
            return None
        return SummaryRow(
            domain=row[0],
            status=CacheStatus(row[1]),
            summary=json.loads(row[2]) if row[2] else None,
            updated_at=_from_text(row[3]),
        )

    def update_summary(self, domain: str, summary: Dict[str, Any]) -> None:
        """Attach a derived summary to an existing sellers.json row without touching ``updated_at``."""
        self._execute(
            "UPDATE cached_resources SET summary = ? WHERE resource_type = ? AND domain = ?",
            (json.dumps(summary), ResourceType.SELLERS_JSON.value, normalize_domain(domain)),
        )

    def find_sellers(self, domain: str, seller_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Return seller objects whose trimmed ``seller_id`` is in *seller_ids*.

        The scan happens inside SQLite; only matching objects cross into Python.
        """
        ids = sorted({str(s).strip() for s in seller_ids})
        matches: List[Dict[str, Any]] = []
        for start in range(0, len(ids), _MAX_IDS_PER_QUERY):
            chunk = ids[start:start + _MAX_IDS_PER_QUERY]
            placeholders = ", ".join("?" for _ in chunk)
            rows = self._fetchall(
                "SELECT s.value FROM cached_resources AS r, json_each(r.content, '$.sellers') AS s"
                " WHERE r.resource_type = ? AND r.domain = ? AND r.status = ?"
                " AND trim(CAST(json_extract(s.value, '$.seller_id') AS TEXT))"
                f" IN ({placeholders})",
                (
                    ResourceType.SELLERS_JSON.value,
                    normalize_domain(domain),
                    CacheStatus.SUCCESS.value,
                    *chunk,
                ),
            )
            matches.extend(json.loads(row[0]) for row in rows)
        return matches

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ── internals ───────────────────────────────────────────────────────────

    def _detect_json(self) -> bool:
        try:
            self._fetchone("SELECT json_extract('{\"a\": 1}', '$.a')", ())
        except StoreError:
            log.warning("SQLite JSON1 functions unavailable; sellers lookups will parse payloads")
            return False
        return True

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock:
            try:
                self._conn.execute(sql, params)
            except sqlite3.Error as exc:
                raise StoreError(f"cache write failed: {exc}") from exc

    def _fetchone(self, sql: str, params: tuple) -> Optional[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as exc:
                raise StoreError(f"cache read failed: {exc}") from exc

    def _fetchall(self, sql: str, params: tuple) -> List[tuple]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StoreError(f"cache read failed: {exc}") from exc


__all__ = ["ResourceCacheStore", "SummaryRow", "utcnow"]
