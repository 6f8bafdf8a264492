# === FILE: adstxt_manager/config.py ===
"""
Модуль для загрузки и валидации конфигурации AdsTxtManager.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SPECIAL_DOMAINS: Dict[str, str] = {
    "google.com": "https://storage.googleapis.com/adx-rtb-dictionaries/sellers.json",
    "doubleclick.net": "https://storage.googleapis.com/adx-rtb-dictionaries/sellers.json",
    "googlesyndication.com": "https://storage.googleapis.com/adx-rtb-dictionaries/sellers.json",
    "advertising.com": "https://dragon-advertising.com/sellers.json",
}


class ManagerConfig(BaseModel):
    """Конфигурация кэша, загрузчика и оптимизатора."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    db_path: str = Field("adstxt_cache.sqlite", min_length=1, description="Файл SQLite-кэша.")
    cache_ttl_hours: float = Field(24.0, gt=0, description="Срок свежести записи кэша (часов).")
    sellers_json_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки sellers.json.")
    ads_txt_timeout: float = Field(5.0, gt=0, description="Таймаут загрузки ads.txt.")
    user_agent: str = Field("AdsTxtManager/1.0", min_length=1, description="Заголовок User-Agent.")
    concurrency_limit: int = Field(10, ge=1, description="Размер пачки одновременных загрузок.")
    chunk_pause: float = Field(0.1, ge=0, description="Пауза между пачками (секунд).")
    retry_times: int = Field(0, ge=0, description="Повторы при 429/5xx.")
    max_content_bytes: int = Field(200 * 1024 * 1024, ge=1, description="Лимит размера ответа.")
    sellers_json_url_template: str = Field("https://{domain}/sellers.json")
    ads_txt_url_templates: List[str] = Field(
        default_factory=lambda: ["https://{domain}/ads.txt", "https://www.{domain}/ads.txt"],
        min_length=1,
    )
    special_domains: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_SPECIAL_DOMAINS),
        description="Домены, публикующие sellers.json по нестандартному URL.",
    )

    @field_validator("sellers_json_url_template", "ads_txt_url_templates")
    def _check_placeholder(cls, v: Any) -> Any:
        templates = [v] if isinstance(v, str) else v
        for template in templates:
            if "{domain}" not in template:
                raise ValueError(f"URL template must contain '{{domain}}': {template}")
        return v

    @field_validator("special_domains", mode="before")
    def _lower_special_domains(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k).strip().lower(): url for k, url in v.items()}
        return v

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.cache_ttl_hours)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ManagerConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ManagerConfig.
    Без пути использует configs/default.yaml, а при его отсутствии значения по умолчанию.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ManagerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ManagerConfig(**data)
