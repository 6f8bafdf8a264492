# adstxt_manager/sellers/summary.py
"""Вычисление метаданных и сводки по документу sellers.json."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional, Tuple

from adstxt_manager.models import SellerSummary, SellersJsonMetadata


def is_confidential(seller: Mapping[str, Any]) -> bool:
    """``is_confidential`` считается истинным для ``true`` и ``1``."""
    flag = seller.get("is_confidential")
    if isinstance(flag, bool):
        return flag
    return flag == 1


def looks_like_sellers_json(payload: Any) -> bool:
    """Документ похож на sellers.json, если есть sellers, contact_email или identifiers."""
    if not isinstance(payload, dict):
        return False
    return (
        isinstance(payload.get("sellers"), list)
        or bool(payload.get("contact_email"))
        or bool(payload.get("identifiers"))
    )


def derive_metadata(payload: Mapping[str, Any]) -> Tuple[SellersJsonMetadata, SellerSummary]:
    """Один проход по массиву sellers: метаданные и счётчики."""
    sellers = payload.get("sellers")
    if not isinstance(sellers, list):
        sellers = []

    summary = SellerSummary(total_count=len(sellers))
    for seller in sellers:
        if not isinstance(seller, dict):
            continue
        if is_confidential(seller):
            summary.confidential_count += 1
        seller_type = str(seller.get("seller_type", "")).upper()
        if seller_type == "PUBLISHER":
            summary.publisher_count += 1
        elif seller_type == "INTERMEDIARY":
            summary.intermediary_count += 1
        elif seller_type == "BOTH":
            summary.both_count += 1

    identifiers = payload.get("identifiers")
    metadata = SellersJsonMetadata(
        seller_count=len(sellers),
        identifiers=[i for i in identifiers if isinstance(i, dict)] if isinstance(identifiers, list) else [],
        contact_email=_optional_str(payload.get("contact_email")),
        contact_address=_optional_str(payload.get("contact_address")),
        version=_optional_str(payload.get("version")),
    )
    return metadata, summary


def summary_to_dict(metadata: SellersJsonMetadata, summary: SellerSummary) -> Dict[str, Any]:
    return {"metadata": asdict(metadata), "summary": asdict(summary)}


def summary_from_dict(data: Mapping[str, Any]) -> Tuple[SellersJsonMetadata, SellerSummary]:
    return (
        SellersJsonMetadata(**data.get("metadata", {})),
        SellerSummary(**data.get("summary", {})),
    )


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


__all__ = [
    "derive_metadata",
    "is_confidential",
    "looks_like_sellers_json",
    "summary_from_dict",
    "summary_to_dict",
]
