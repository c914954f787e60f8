"""Category taxonomy helpers.

Categories are identified by a short code (``"food-grocery"``, ``"salary"``).
Expense and income categories are disjoint; the categorizer uses
:func:`polarity_allows` to keep an expense from landing in an income-only
category and vice versa. ``"other"`` and codes unknown to the taxonomy are
polarity-neutral.

Exports
-------
- ``DEFAULT_CATEGORIES``: the built-in taxonomy seeded into new databases.
- ``normalize_code(...)`` / ``validate_code(...)``: shared by the CLI and the
  persistence layer before a user-entered code is accepted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

FALLBACK_CATEGORY = "other"


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    is_income: bool = False
    order: int = 0


DEFAULT_CATEGORIES: tuple[Category, ...] = tuple(
    Category(id=cid, name=name, is_income=is_income, order=i)
    for i, (cid, name, is_income) in enumerate(
        (
            ("food-grocery", "Courses", False),
            ("food-restaurant", "Restaurants", False),
            ("transport", "Transport", False),
            ("abonnements", "Abonnements", False),
            ("entertainment", "Loisirs", False),
            ("amazon", "Amazon", False),
            ("shopping", "Shopping", False),
            ("housing", "Logement", False),
            ("telecom", "Télécom", False),
            ("health", "Santé", False),
            ("bank-fees", "Frais bancaires", False),
            ("transfer-out", "Virements émis", False),
            ("internal", "Prélèvements divers", False),
            ("salary", "Salaire", True),
            ("caf", "CAF", True),
            ("compte-a-compte", "Compte à compte", True),
            ("transfer-in", "Virements reçus", True),
            ("refund", "Remboursements", True),
            (FALLBACK_CATEGORY, "Autre", False),
        )
    )
)


def index_categories(categories: Iterable[Category]) -> dict[str, Category]:
    return {c.id: c for c in categories}


DEFAULT_CATEGORY_INDEX: Mapping[str, Category] = index_categories(DEFAULT_CATEGORIES)


def polarity_allows(
    category_id: str, is_expense: bool | None, categories: Mapping[str, Category]
) -> bool:
    """Return whether ``category_id`` may be assigned to a row of this polarity.

    ``is_expense=None`` means the polarity is unknown and nothing is filtered.
    """

    if is_expense is None or category_id == FALLBACK_CATEGORY:
        return True
    category = categories.get(category_id)
    if category is None:
        return True
    return category.is_income != is_expense


# ---------------------------
# Code normalization/validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[a-z0-9][a-z0-9\-_]*$")


def normalize_code(code: str) -> str:
    """Return a trimmed, lower-cased code with inner whitespace turned into ``-``."""

    return "-".join(code.strip().lower().split())


@dataclass(frozen=True, slots=True)
class CodeValidation:
    ok: bool
    reason: str | None = None


def validate_code(code: str, *, max_len: int = 48) -> CodeValidation:
    """Lightweight validation for category codes.

    Rules
    -----
    - Non-empty after normalization, at most ``max_len`` characters.
    - Lower-case letters, digits, ``-`` and ``_``; must start with a letter or digit.
    """

    c = normalize_code(code)
    if not c:
        return CodeValidation(False, "Category code cannot be empty")
    if len(c) > max_len:
        return CodeValidation(False, f"Category code must be at most {max_len} characters")
    if not _ALLOWED_RE.match(c):
        return CodeValidation(False, "Only lower-case letters, digits, '-' and '_' are allowed")
    return CodeValidation(True, None)


__all__ = [
    "DEFAULT_CATEGORIES",
    "DEFAULT_CATEGORY_INDEX",
    "FALLBACK_CATEGORY",
    "Category",
    "CodeValidation",
    "index_categories",
    "normalize_code",
    "polarity_allows",
    "validate_code",
]
