"""Text folding shared by header detection, categorization and learning."""

from __future__ import annotations

import unicodedata


def strip_accents(value: str) -> str:
    """Return ``value`` without combining diacritics (``"Débit"`` -> ``"Debit"``)."""

    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_text(value: str | None) -> str:
    """Case-fold, strip accents and collapse internal whitespace.

    This is the single normalized form every rule pattern is matched against,
    so stored patterns can be written without accents or case concerns.
    """

    if not value:
        return ""
    s = strip_accents(unicodedata.normalize("NFKC", str(value)))
    return " ".join(s.split()).casefold()


__all__ = ["fold_text", "strip_accents"]
