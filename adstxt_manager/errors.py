# adstxt_manager/errors.py
"""Иерархия исключений AdsTxtManager."""
from __future__ import annotations

from typing import Optional


class AdsTxtManagerError(Exception):
    """Базовое исключение проекта."""


class FetchError(AdsTxtManagerError):
    """Ошибка получения удалённого ресурса."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    """Таймаут или ошибка транспорта."""


class StoreError(AdsTxtManagerError):
    """Хранилище кэша недоступно или вернуло ошибку."""


class InvalidContentError(AdsTxtManagerError, ValueError):
    """Пустое или некорректное содержимое ads.txt на входе."""


__all__ = [
    "AdsTxtManagerError",
    "FetchError",
    "InvalidContentError",
    "NetworkError",
    "StoreError",
]
