# adstxt_manager/normalize.py
"""Нормализация и удаление дубликатов записей ads.txt (оптимизация level 1)."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from adstxt_manager.logger import get_logger
from adstxt_manager.models import AdsTxtLine, ParsedAdsTxtEntry, VariableEntry

log = get_logger(__name__)

RecordKey = Tuple[str, str, str]


def record_key(entry: ParsedAdsTxtEntry) -> RecordKey:
    """Ключ дубликата: домен без учёта регистра, account id, отношение."""
    return entry.domain.lower(), entry.account_id, entry.relationship.value


def normalize_entries(
    entries: Iterable[AdsTxtLine],
) -> Tuple[List[ParsedAdsTxtEntry], List[VariableEntry]]:
    """Отбрасывает невалидные записи и дубликаты, сохраняя порядок первых вхождений.

    Домены приводятся к нижнему регистру. Если у первого вхождения нет
    certification id, а у дубликата есть, он переносится в сохранённую запись.
    """
    records: Dict[RecordKey, ParsedAdsTxtEntry] = {}
    variables: Dict[Tuple[str, str], VariableEntry] = {}
    dropped = 0

    for entry in entries:
        if isinstance(entry, VariableEntry):
            vkey = (entry.variable_type.upper(), entry.value)
            if vkey in variables:
                dropped += 1
            else:
                variables[vkey] = entry
            continue
        if not entry.is_valid:
            dropped += 1
            continue
        key = record_key(entry)
        kept = records.get(key)
        if kept is None:
            records[key] = replace(entry, domain=entry.domain.lower())
            continue
        dropped += 1
        if not kept.certification_authority_id and entry.certification_authority_id:
            records[key] = replace(kept, certification_authority_id=entry.certification_authority_id)

    if dropped:
        log.debug("Normalization dropped %d invalid or duplicate lines", dropped)
    return list(records.values()), list(variables.values())


__all__ = ["normalize_entries", "record_key"]
