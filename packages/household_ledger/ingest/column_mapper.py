"""Map statement header text to semantic transaction fields.

Two tiers:

1. Semantic match. Each field owns a priority-ordered list of patterns. Fields
   are resolved in declared order (date, type, description, debit, credit,
   amount); within a field, earlier patterns win over later ones, and a
   pattern claims the first header column it matches that no earlier field
   has claimed.
2. Positional guess. When the date is still unmapped it becomes column 0;
   when no amount-bearing field matched, the trailing columns are assumed to
   be debit/credit (4+ columns) or a single signed amount (3 columns).

Headers are compared trimmed and lower-cased, as exported (accents kept), so
the pattern lists spell out accented variants explicitly.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import replace

from ..logging_setup import get_logger
from ..models import MAPPED_FIELDS, ColumnMapping, MappedField

_logger = get_logger("household_ledger.ingest.column_mapper")


def _rx(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


FIELD_PATTERNS: dict[MappedField, tuple[re.Pattern[str], ...]] = {
    "date": _rx(
        r"^date$",
        r"date\s*(op|oper|operation|opération|valeur|comptable)",
        r"^dt$",
        r"^jour$",
        r"date\s*d",
    ),
    "type": _rx(
        r"^type$",
        r"type\s*(op|oper)",
        r"^nature$",
        r"^operation$",
        r"^categorie$",
    ),
    "description": _rx(
        # Longer description columns first
        r"libell[ée]\s*(complet|d[ée]taill[ée])",
        r"^libell[ée]$",
        r"libell[ée]\s*(simplifi[ée]|operation|op)",
        r"^d[ée]tail$",
        r"^description$",
        r"^motif$",
        r"^lib$",
        r"^intitul[ée]$",
        r"^d[ée]signation$",
        r"^communication$",
        r"^op[ée]ration$",
    ),
    "debit": _rx(
        r"^d[ée]bit$",
        r"montant\s*d[ée]bit",
        r"^sortie",
        r"^retrait",
        r"d[ée]bit\s*euro",
    ),
    "credit": _rx(
        r"^cr[ée]dit$",
        r"montant\s*cr[ée]dit",
        r"^entr[ée]e",
        r"^encaissement",
        r"^d[ée]p[ôo]t",
        r"^versement",
        r"cr[ée]dit\s*euro",
    ),
    "amount": _rx(
        r"^montant$",
        r"montant\s*(en\s*)?(eur|euro|€)",
        r"^somme$",
        r"^valeur$",
        r"montant\s*(op|operation)",
    ),
}


def _normalize_header(header: str) -> str:
    return header.strip().lower()


def _match_fields(headers: Sequence[str]) -> dict[MappedField, int]:
    normalized = [_normalize_header(h) for h in headers]
    claimed: set[int] = set()
    found: dict[MappedField, int] = {}

    for field_name in MAPPED_FIELDS:
        for pattern in FIELD_PATTERNS[field_name]:
            hit = next(
                (
                    i
                    for i, h in enumerate(normalized)
                    if h and i not in claimed and pattern.search(h)
                ),
                None,
            )
            if hit is not None:
                found[field_name] = hit
                claimed.add(hit)
                break
    return found


def detect_column_mapping(headers: Sequence[str]) -> ColumnMapping:
    """Return the best-effort :class:`ColumnMapping` for ``headers``. Never raises."""

    mapping = ColumnMapping(**_match_fields(headers))

    if mapping.date is None:
        mapping = replace(mapping, date=0)

    if mapping.debit is None and mapping.credit is None and mapping.amount is None:
        num_cols = len(headers)
        if num_cols >= 4:
            mapping = replace(mapping, debit=num_cols - 2, credit=num_cols - 1)
        elif num_cols == 3:
            mapping = replace(mapping, amount=num_cols - 1)

    _logger.debug("detected column mapping %s from headers %s", mapping.as_dict(), list(headers))
    return mapping


__all__ = ["FIELD_PATTERNS", "detect_column_mapping"]
