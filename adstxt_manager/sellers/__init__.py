"""adstxt_manager.sellers: частичный доступ к закэшированным sellers.json."""

from .accessor import (
    BatchSellerLookup,
    FullArrayBackedAccessor,
    MetadataView,
    SellerLookup,
    SellerMatch,
    SellersJsonPartialAccessor,
    SummaryBackedAccessor,
)

__all__ = [
    "BatchSellerLookup",
    "FullArrayBackedAccessor",
    "MetadataView",
    "SellerLookup",
    "SellerMatch",
    "SellersJsonPartialAccessor",
    "SummaryBackedAccessor",
]
