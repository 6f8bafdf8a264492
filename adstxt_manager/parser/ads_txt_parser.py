# File: adstxt_manager/parser/ads_txt_parser.py
"""adstxt_manager.parser.ads_txt_parser: однопроходный парсер ads.txt с флагами валидности."""

from __future__ import annotations

import difflib
import re
from typing import List, Optional, Tuple

from adstxt_manager.models import AdsTxtLine, ParsedAdsTxtEntry, Relationship, VariableEntry

VARIABLE_TYPES: Tuple[str, ...] = (
    "CONTACT",
    "SUBDOMAIN",
    "INVENTORYPARTNERDOMAIN",
    "OWNERDOMAIN",
    "MANAGERDOMAIN",
)

MISSING_FIELDS = "missingFields"
INVALID_FORMAT = "invalidFormat"
INVALID_RELATIONSHIP = "invalidRelationship"
MISSPELLED_RELATIONSHIP = "misspelledRelationship"
INVALID_DOMAIN = "invalidRootDomain"
EMPTY_ACCOUNT_ID = "emptyAccountId"

_DOMAIN_RE = re.compile(
    r"^(?=.{1,253}$)(?!-)[a-z0-9-]{1,63}(?<!-)(?:\.(?!-)[a-z0-9-]{1,63}(?<!-))+$",
    re.IGNORECASE,
)
_RELATIONSHIPS = ("DIRECT", "RESELLER")


def parse_ads_txt(raw_text: str, owner_domain_hint: Optional[str] = None) -> List[AdsTxtLine]:
    """Разбирает ads.txt в список записей и переменных.

    Args:
        raw_text: содержимое файла.
        owner_domain_hint: домен издателя; если в файле нет ``OWNERDOMAIN``,
            добавляется переменная с этим значением.

    Returns:
        Записи (валидные и невалидные) и переменные в порядке строк.
    """
    entries: List[AdsTxtLine] = []
    for line_number, raw in enumerate(raw_text.splitlines(), start=1):
        parsed = parse_line(raw, line_number)
        if parsed is not None:
            entries.append(parsed)

    if owner_domain_hint and not any(
        isinstance(e, VariableEntry) and e.variable_type == "OWNERDOMAIN" for e in entries
    ):
        hint = owner_domain_hint.strip().lower()
        entries.append(VariableEntry("OWNERDOMAIN", hint, 0, f"OWNERDOMAIN={hint}"))
    return entries


def parse_line(raw: str, line_number: int) -> Optional[AdsTxtLine]:
    """Разбирает одну строку; пустые строки и комментарии дают None."""
    line = raw.split("#", 1)[0].strip()
    if not line:
        return None

    variable = _parse_variable(line, raw, line_number)
    if variable is not None:
        return variable

    parts = [part.strip() for part in line.split(",")]
    if len(parts) < 3:
        return _invalid(parts, raw, line_number, INVALID_FORMAT if len(parts) == 1 else MISSING_FIELDS)

    domain, account_id, account_type, *rest = parts
    relationship, cert_id, error = _process_relationship(account_type, rest)
    if error:
        return _invalid(parts, raw, line_number, error, relationship, cert_id)
    if not _DOMAIN_RE.match(domain):
        return _invalid(parts, raw, line_number, INVALID_DOMAIN, relationship, cert_id)
    if not account_id:
        return _invalid(parts, raw, line_number, EMPTY_ACCOUNT_ID, relationship, cert_id)

    return ParsedAdsTxtEntry(
        domain=domain,
        account_id=account_id,
        account_type=account_type,
        relationship=relationship,
        certification_authority_id=cert_id,
        is_valid=True,
        line_number=line_number,
        raw_line=raw,
    )


def _parse_variable(line: str, raw: str, line_number: int) -> Optional[VariableEntry]:
    """Строка ``KEY=value`` с известным KEY."""
    key, sep, value = line.partition("=")
    if not sep or "," in key:
        return None
    variable_type = key.strip().upper()
    if variable_type not in VARIABLE_TYPES:
        return None
    return VariableEntry(variable_type, value.strip(), line_number, raw)


def _process_relationship(
    account_type: str, rest: List[str]
) -> Tuple[Relationship, Optional[str], Optional[str]]:
    """Возвращает (relationship, certification id, ключ ошибки)."""
    upper = account_type.upper()
    if upper in _RELATIONSHIPS:
        cert_id = rest[0] if rest and rest[0] else None
        return Relationship(upper), cert_id, None
    if rest and rest[0].upper() in _RELATIONSHIPS:
        # домен, id, тип аккаунта, отношение[, cert]
        cert_id = rest[1] if len(rest) > 1 and rest[1] else None
        return Relationship(rest[0].upper()), cert_id, None
    if _is_similar_to_relationship(upper):
        return Relationship.DIRECT, rest[0] if rest else None, MISSPELLED_RELATIONSHIP
    return Relationship.DIRECT, None, INVALID_RELATIONSHIP


def _is_similar_to_relationship(value: str) -> bool:
    return bool(value) and bool(difflib.get_close_matches(value, _RELATIONSHIPS, n=1, cutoff=0.7))


def _invalid(
    parts: List[str],
    raw: str,
    line_number: int,
    key: str,
    relationship: Relationship = Relationship.DIRECT,
    cert_id: Optional[str] = None,
) -> ParsedAdsTxtEntry:
    return ParsedAdsTxtEntry(
        domain=parts[0] if parts else "",
        account_id=parts[1] if len(parts) > 1 else "",
        account_type=parts[2] if len(parts) > 2 else "",
        relationship=relationship,
        certification_authority_id=cert_id,
        is_valid=False,
        line_number=line_number,
        raw_line=raw,
        validation_key=key,
        severity="error",
    )


__all__ = ["VARIABLE_TYPES", "parse_ads_txt", "parse_line"]
