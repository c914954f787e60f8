"""Public interface for the ``household_ledger`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    ImportOutcome,
    correct_categories,
    correct_category,
    import_statement,
    parse_statement,
)
from .categorizer import TransactionCategorizer, detect_type
from .categories import DEFAULT_CATEGORIES, Category
from .config import Settings, load_settings
from .context import CategorizationContext
from .learning import learn_from_all_corrections, learn_from_correction
from .models import ColumnMapping, ParsedRow, ParseError, ParseResult
from .rules import CategorizationRule, InMemoryRuleStore, InvalidRuleError, SqlRuleStore
from .transactions import ImportBatch, Transaction, convert_to_transactions

__all__ = [
    # API
    "correct_categories",
    "correct_category",
    "import_statement",
    "parse_statement",
    "convert_to_transactions",
    "learn_from_correction",
    "learn_from_all_corrections",
    "detect_type",
    # Models / types
    "CategorizationContext",
    "CategorizationRule",
    "Category",
    "ColumnMapping",
    "DEFAULT_CATEGORIES",
    "ImportBatch",
    "ImportOutcome",
    "InMemoryRuleStore",
    "InvalidRuleError",
    "ParseError",
    "ParseResult",
    "ParsedRow",
    "Settings",
    "SqlRuleStore",
    "Transaction",
    "TransactionCategorizer",
    "load_settings",
]
