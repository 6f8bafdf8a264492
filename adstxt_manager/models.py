# adstxt_manager/models.py
"""
Модели данных AdsTxtManager: кэшируемые ресурсы, метаданные sellers.json,
разобранные записи ads.txt и результаты классификации.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ResourceType(str, Enum):
    """Тип ресурса, хранимого в кэше."""

    ADS_TXT = "ads_txt"
    SELLERS_JSON = "sellers_json"


class CacheStatus(str, Enum):
    """Результат последней попытки загрузки ресурса."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID_FORMAT = "invalid_format"
    ERROR = "error"


class Relationship(str, Enum):
    DIRECT = "DIRECT"
    RESELLER = "RESELLER"


class Category(str, Enum):
    """Категория записи ads.txt после сверки с sellers.json."""

    OTHER = "other"
    CONFIDENTIAL = "confidential"
    MISSING_SELLER_ID = "missingSellerId"
    NO_SELLER_JSON = "noSellerJson"


def normalize_domain(domain: str) -> str:
    """Приводит домен к ключу кэша: без пробелов и в нижнем регистре."""
    return domain.strip().lower()


@dataclass(slots=True)
class CachedResource:
    """Одна запись кэша на пару (resource_type, domain)."""

    resource_type: ResourceType
    domain: str
    content: Optional[str]
    status: CacheStatus
    status_code: Optional[int]
    error_message: Optional[str]
    updated_at: datetime
    url: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.domain = normalize_domain(self.domain)
        if (self.content is not None) != (self.status is CacheStatus.SUCCESS):
            raise ValueError(
                f"content must be set iff status is success (status={self.status.value})"
            )

    @property
    def is_success(self) -> bool:
        return self.status is CacheStatus.SUCCESS


@dataclass(slots=True)
class SellersJsonMetadata:
    """Метаданные sellers.json без массива sellers."""

    seller_count: int = 0
    identifiers: List[Dict[str, Any]] = field(default_factory=list)
    contact_email: Optional[str] = None
    contact_address: Optional[str] = None
    version: Optional[str] = None

    def tag_id(self) -> Optional[str]:
        """Значение идентификатора, имя которого содержит ``tag-id``."""
        for identifier in self.identifiers:
            name = str(identifier.get("name", ""))
            if "tag-id" in name.lower() and identifier.get("value"):
                return str(identifier["value"])
        return None


@dataclass(slots=True)
class SellerSummary:
    """Агрегированные счётчики по массиву sellers."""

    total_count: int = 0
    confidential_count: int = 0
    publisher_count: int = 0
    intermediary_count: int = 0
    both_count: int = 0


@dataclass(frozen=True, slots=True)
class ParsedAdsTxtEntry:
    """Запись ads.txt, полученная от парсера. Неизменяема."""

    domain: str
    account_id: str
    account_type: str
    relationship: Relationship
    certification_authority_id: Optional[str] = None
    is_valid: bool = True
    line_number: int = 0
    raw_line: str = ""
    validation_key: Optional[str] = None
    severity: Optional[str] = None


@dataclass(frozen=True, slots=True)
class VariableEntry:
    """Строка-переменная ads.txt вида ``TYPE=value``."""

    variable_type: str
    value: str
    line_number: int = 0
    raw_line: str = ""


AdsTxtLine = Union[ParsedAdsTxtEntry, VariableEntry]


@dataclass(slots=True)
class ClassifiedRecord:
    """Запись ads.txt с категорией и итоговым certification id."""

    entry: ParsedAdsTxtEntry
    category: Category
    certification_authority_id: Optional[str] = None

    @property
    def domain(self) -> str:
        return self.entry.domain

    @property
    def account_id(self) -> str:
        return self.entry.account_id

    @property
    def relationship(self) -> Relationship:
        return self.entry.relationship


__all__ = [
    "AdsTxtLine",
    "CacheStatus",
    "CachedResource",
    "Category",
    "ClassifiedRecord",
    "ParsedAdsTxtEntry",
    "Relationship",
    "ResourceType",
    "SellerSummary",
    "SellersJsonMetadata",
    "VariableEntry",
    "normalize_domain",
]
