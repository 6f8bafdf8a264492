# adstxt_manager/classifier.py
"""
Сверка записей ads.txt с sellers.json.

Каждая валидная запись попадает ровно в одну категорию:
``other``, ``confidential``, ``missingSellerId`` или ``noSellerJson``.
"""
from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from adstxt_manager.logger import get_logger
from adstxt_manager.models import Category, ClassifiedRecord, ParsedAdsTxtEntry, normalize_domain
from adstxt_manager.sellers.accessor import SellersJsonPartialAccessor
from adstxt_manager.sellers.summary import is_confidential

log = get_logger(__name__)


class RecordClassifier:
    """Определяет категорию и certification id для записей ads.txt."""

    def __init__(self, accessor: SellersJsonPartialAccessor) -> None:
        self.accessor = accessor

    async def classify(self, entries: Iterable[ParsedAdsTxtEntry]) -> List[ClassifiedRecord]:
        """Классифицирует валидные записи; порядок входа сохраняется."""
        valid = [e for e in entries if e.is_valid]
        by_domain: "OrderedDict[str, List[int]]" = OrderedDict()
        for index, entry in enumerate(valid):
            by_domain.setdefault(normalize_domain(entry.domain), []).append(index)

        classified: List[Optional[ClassifiedRecord]] = [None] * len(valid)
        for domain, indexes in by_domain.items():
            group = [valid[i] for i in indexes]
            for i, record in zip(indexes, await self._classify_domain(domain, group)):
                classified[i] = record
        return [record for record in classified if record is not None]

    async def _classify_domain(
        self, domain: str, group: List[ParsedAdsTxtEntry]
    ) -> List[ClassifiedRecord]:
        sibling_cert = _sibling_certification_id(group)
        try:
            view = await self.accessor.get_metadata_and_summary(domain)
            if not view.has_data:
                return [self._record(e, Category.NO_SELLER_JSON, sibling_cert) for e in group]
            batch = await self.accessor.batch_get_sellers(domain, [e.account_id for e in group])
        except Exception as exc:
            # fail-open: записи домена остаются в выдаче как noSellerJson
            log.warning("Seller lookup failed for %s: %s; treating as no sellers.json", domain, exc)
            return [self._record(e, Category.NO_SELLER_JSON, sibling_cert) for e in group]

        tag_id = view.metadata.tag_id() if view.metadata else None
        records = []
        for entry, match in zip(group, batch.results):
            if not match.found:
                records.append(self._record(entry, Category.MISSING_SELLER_ID, sibling_cert))
            elif is_confidential(match.seller or {}):
                records.append(self._record(entry, Category.CONFIDENTIAL, sibling_cert))
            else:
                record = self._record(entry, Category.OTHER, sibling_cert)
                if not record.certification_authority_id and tag_id:
                    record.certification_authority_id = tag_id
                records.append(record)
        return records

    @staticmethod
    def _record(
        entry: ParsedAdsTxtEntry, category: Category, sibling_cert: Optional[str]
    ) -> ClassifiedRecord:
        return ClassifiedRecord(
            entry=entry,
            category=category,
            certification_authority_id=entry.certification_authority_id or sibling_cert,
        )


def _sibling_certification_id(group: List[ParsedAdsTxtEntry]) -> Optional[str]:
    """Первый certification id, уже объявленный другой записью того же домена."""
    for entry in group:
        if entry.certification_authority_id:
            return entry.certification_authority_id
    return None


def count_categories(records: Iterable[ClassifiedRecord]) -> Dict[str, int]:
    """Счётчики категорий в формате ответа optimize()."""
    counts = {"other": 0, "confidential": 0, "missing_seller_id": 0, "no_seller_json": 0}
    names = {
        Category.OTHER: "other",
        Category.CONFIDENTIAL: "confidential",
        Category.MISSING_SELLER_ID: "missing_seller_id",
        Category.NO_SELLER_JSON: "no_seller_json",
    }
    for record in records:
        counts[names[record.category]] += 1
    return counts


__all__ = ["RecordClassifier", "count_categories"]
