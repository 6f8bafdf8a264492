# File: adstxt_manager/assembler.py
"""adstxt_manager.assembler: сборка итогового текста ads.txt из классифицированных записей."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from adstxt_manager.models import Category, ClassifiedRecord, Relationship, VariableEntry

RECORDS_HEADER = "# Advertising System Records"

# Порядок и заголовки необязательных секций.
OPTIONAL_SECTIONS: Tuple[Tuple[Category, str], ...] = (
    (Category.CONFIDENTIAL, "# Confidential Sellers"),
    (Category.MISSING_SELLER_ID, "# Records Not Found in Sellers.json"),
    (Category.NO_SELLER_JSON, "# Systems Without Sellers.json"),
)

_RELATIONSHIP_RANK = {Relationship.DIRECT: 0, Relationship.RESELLER: 1}


def sort_key(record: ClassifiedRecord) -> Tuple[str, int, str]:
    return record.domain, _RELATIONSHIP_RANK[record.relationship], record.account_id


def format_record(record: ClassifiedRecord) -> str:
    """``domain, account_id, relationship[, certification_authority_id]``."""
    parts = [record.domain, record.account_id, record.relationship.value]
    if record.certification_authority_id:
        parts.append(record.certification_authority_id)
    return ", ".join(parts)


def _variable_sections(variables: Iterable[VariableEntry]) -> List[List[str]]:
    grouped: Dict[str, List[VariableEntry]] = {}
    for variable in variables:
        grouped.setdefault(variable.variable_type.upper(), []).append(variable)
    sections = []
    for variable_type in sorted(grouped):
        lines = [f"# {variable_type} Variables"]
        lines.extend(f"{variable_type}={v.value}" for v in grouped[variable_type])
        sections.append(lines)
    return sections


def assemble(
    classified: Sequence[ClassifiedRecord],
    variables: Optional[Iterable[VariableEntry]] = None,
) -> str:
    """Собирает текст: переменные, затем записи по категориям.

    Секция ``# Advertising System Records`` выводится всегда, остальные только
    если в категории есть записи. Внутри категории записи отсортированы по
    домену, DIRECT раньше RESELLER, затем по account id.
    """
    by_category: Dict[Category, List[ClassifiedRecord]] = {category: [] for category in Category}
    for record in classified:
        by_category[record.category].append(record)

    sections = _variable_sections(variables or [])
    sections.append([RECORDS_HEADER] + [
        format_record(r) for r in sorted(by_category[Category.OTHER], key=sort_key)
    ])
    for category, header in OPTIONAL_SECTIONS:
        records = by_category[category]
        if records:
            sections.append([header] + [format_record(r) for r in sorted(records, key=sort_key)])

    return "\n\n".join("\n".join(lines) for lines in sections) + "\n"


__all__ = ["OPTIONAL_SECTIONS", "RECORDS_HEADER", "assemble", "format_record", "sort_key"]
