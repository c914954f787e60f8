"""Locate the real header row of a bank statement sheet.

Bank exports often carry one to several title/metadata rows (account name,
period, balance) before the column headers. The scan is greedy: the first
row that looks like a header wins, there is no search for a better one.
"""

from __future__ import annotations

import re

from ..cells import RawSheet, non_empty_count
from ..logging_setup import get_logger
from ..text import fold_text

_logger = get_logger("household_ledger.ingest.header_locator")

MAX_ROWS_TO_CHECK = 10
MIN_HEADER_CELLS = 3
MIN_KEYWORD_MATCHES = 2

# One entry per keyword category; French and English variants share a
# category so "Débit"/"Debit" count once. Matched against folded text
# (lower-case, no accents).
HEADER_KEYWORDS: dict[str, re.Pattern[str]] = {
    "date": re.compile(r"date"),
    "label": re.compile(r"libelle|label|intitule"),
    "amount": re.compile(r"montant|amount|somme"),
    "debit": re.compile(r"debit"),
    "credit": re.compile(r"credit"),
    "operation": re.compile(r"operation|transaction"),
    "value_date": re.compile(r"valeur|value"),
    "description": re.compile(r"description|detail"),
    "type": re.compile(r"type|nature"),
    "balance": re.compile(r"solde|balance"),
    "reference": re.compile(r"reference"),
}


def keyword_matches(row_text: str) -> set[str]:
    """Return the keyword categories found in already-folded ``row_text``."""

    return {name for name, rx in HEADER_KEYWORDS.items() if rx.search(row_text)}


def find_header_row(sheet: RawSheet, *, max_rows: int = MAX_ROWS_TO_CHECK) -> int:
    """Return the zero-based index of the header row in ``sheet``.

    Rules, in order:
    - the first of the leading ``max_rows`` rows with at least 3 non-empty
      cells and at least 2 distinct header keyword categories;
    - else the first such row with at least 3 non-empty cells;
    - else ``0``.
    """

    limit = min(max_rows, len(sheet))

    for i in range(limit):
        row = sheet[i]
        if non_empty_count(row) < MIN_HEADER_CELLS:
            continue
        row_text = " ".join(fold_text(c.text) for c in row)
        matched = keyword_matches(row_text)
        if len(matched) >= MIN_KEYWORD_MATCHES:
            _logger.debug("header row %d matched keywords %s", i, sorted(matched))
            return i

    for i in range(limit):
        if non_empty_count(sheet[i]) >= MIN_HEADER_CELLS:
            _logger.debug("header row %d chosen as first row with %d+ cells", i, MIN_HEADER_CELLS)
            return i

    _logger.debug("no header-like row in the first %d rows; defaulting to 0", limit)
    return 0


__all__ = ["HEADER_KEYWORDS", "MAX_ROWS_TO_CHECK", "find_header_row", "keyword_matches"]
