# adstxt_manager/optimizer.py
"""
Optimizer: parse → normalize → fetch/cache sellers.json per domain →
classify → assemble.

Level 1 stops after normalization; level 2 adds the sellers.json
cross-reference and the category sections.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional

from adstxt_manager.assembler import assemble
from adstxt_manager.cache.domain_cache import DomainResourceCache
from adstxt_manager.classifier import RecordClassifier, count_categories
from adstxt_manager.errors import InvalidContentError
from adstxt_manager.logger import get_logger
from adstxt_manager.models import Category, ClassifiedRecord, ResourceType
from adstxt_manager.normalize import normalize_entries
from adstxt_manager.orchestrator import (
    DEFAULT_CHUNK_PAUSE,
    DEFAULT_CONCURRENCY_LIMIT,
    ConcurrencyBoundedOrchestrator,
    OperationResult,
)
from adstxt_manager.parser.ads_txt_parser import parse_ads_txt
from adstxt_manager.sellers.accessor import MetadataView, SellersJsonPartialAccessor

log = get_logger(__name__)

OptimizationLevel = Literal["level1", "level2"]
LEVELS = ("level1", "level2")


@dataclass(slots=True)
class OptimizationResult:
    optimized_content: str
    original_length: int
    optimized_length: int
    optimization_level: str
    categories: Optional[Dict[str, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["categories"] is None:
            del data["categories"]
        return data


class Optimizer:
    """Composition root of the optimization pipeline.

    Collaborators are injected; a new orchestrator (and with it a new
    in-flight registry) is created for every :meth:`optimize` call.
    """

    def __init__(
        self,
        domain_cache: DomainResourceCache,
        accessor: SellersJsonPartialAccessor,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        chunk_pause: float = DEFAULT_CHUNK_PAUSE,
    ) -> None:
        self.domain_cache = domain_cache
        self.accessor = accessor
        self.classifier = RecordClassifier(accessor)
        self.concurrency_limit = concurrency_limit
        self.chunk_pause = chunk_pause

    async def optimize(
        self,
        content: str,
        publisher_domain: Optional[str] = None,
        level: OptimizationLevel = "level2",
    ) -> OptimizationResult:
        if level not in LEVELS:
            raise ValueError(f"unknown optimization level: {level!r}")
        if not content or not content.strip():
            raise InvalidContentError("ads.txt content is empty")

        records, variables = normalize_entries(parse_ads_txt(content, publisher_domain))
        log.info("Optimizing %d records (%s)", len(records), level)

        categories: Optional[Dict[str, int]] = None
        if level == "level1":
            classified = [ClassifiedRecord(r, Category.OTHER, r.certification_authority_id) for r in records]
        else:
            await self.prefetch_sellers_json({r.domain for r in records})
            classified = await self.classifier.classify(records)
            categories = count_categories(classified)

        optimized = assemble(classified, variables)
        return OptimizationResult(
            optimized_content=optimized,
            original_length=len(content),
            optimized_length=len(optimized),
            optimization_level=level,
            categories=categories,
        )

    async def prefetch_sellers_json(self, domains) -> List[OperationResult]:
        """Make sure every domain has a fresh sellers.json row (or a fresh failure row)."""
        orchestrator = ConcurrencyBoundedOrchestrator(self.concurrency_limit, self.chunk_pause)
        results = await orchestrator.run_bounded(domains, self._ensure_sellers_json)
        failed = [r.domain for r in results if not r.ok]
        if failed:
            log.warning("sellers.json unavailable for %d domain(s): %s", len(failed), ", ".join(failed))
        return results

    async def _ensure_sellers_json(self, domain: str) -> MetadataView:
        view = await self.accessor.get_metadata_and_summary(domain)
        if not view.is_cache_miss:
            return view
        await self.domain_cache.get_or_fetch(ResourceType.SELLERS_JSON, domain, self.accessor.ttl)
        return await self.accessor.get_metadata_and_summary(domain)


__all__ = ["LEVELS", "OptimizationLevel", "OptimizationResult", "Optimizer"]
