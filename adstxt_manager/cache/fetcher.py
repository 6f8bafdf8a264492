# adstxt_manager/cache/fetcher.py
"""
FetchClient: thin HTTP GET wrapper with timeout, retry/backoff and
status/content-type inspection.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from adstxt_manager.config import ManagerConfig
from adstxt_manager.errors import NetworkError
from adstxt_manager.logger import get_logger

log = get_logger(__name__)


@dataclass(slots=True)
class FetchResponse:
    """Status, bare content type and decoded body of a completed GET."""

    url: str
    status: int
    content_type: str
    body: str
    truncated: bool = False


class FetchClient:
    """Performs GET requests; transport failures surface as :class:`NetworkError`."""

    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(self, config: ManagerConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> FetchClient:
        if self.session is None:
            self.session = ClientSession(
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def get(self, url: str, timeout: float, accept: str = "*/*") -> FetchResponse:
        """
        GET *url* and return the response, whatever its status.

        Retries 429/5xx up to ``retry_times`` with exponential backoff.
        Raises NetworkError on timeout or any aiohttp transport error.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")

        attempts = 0
        while True:
            try:
                async with self.session.get(
                    url,
                    timeout=ClientTimeout(total=timeout),
                    headers={"Accept": accept},
                ) as resp:
                    if resp.status in self._RETRY_STATUS and attempts < self.config.retry_times:
                        raise ClientError(f"retryable status {resp.status}")
                    mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    raw, truncated = await self._read_limited(resp)
                    return FetchResponse(url, resp.status, mime, self._decode(raw, resp.charset), truncated)
            except asyncio.TimeoutError as exc:
                # no retry on timeout
                raise NetworkError(f"timeout after {timeout}s", url) from exc
            except ClientError as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    log.warning("Failed %s: %s", url, exc)
                    raise NetworkError(str(exc) or exc.__class__.__name__, url) from exc
                backoff = min(60, 2**attempts)
                log.debug("Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, url, backoff)
                await asyncio.sleep(backoff)

    async def _read_limited(self, resp) -> tuple[bytes, bool]:
        limit = self.config.max_content_bytes
        buf = bytearray()
        async for chunk in resp.content.iter_chunked(64 * 1024):
            buf.extend(chunk)
            if len(buf) > limit:
                return bytes(buf[:limit]), True
        return bytes(buf), False

    @staticmethod
    def _decode(raw: bytes, charset: Optional[str]) -> str:
        try:
            return raw.decode(charset or "utf-8", errors="replace")
        except LookupError:
            return raw.decode("utf-8", errors="replace")


__all__ = ["FetchClient", "FetchResponse"]
