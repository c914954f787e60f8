"""Explicit categorization context.

Bundles what a categorization pass needs: the rule store, the category
taxonomy, runtime settings and the current compiled rule snapshot. Callers
build one per session (CLI command, import, test) and pass it down; nothing
in the package keeps module-level rule state.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .categories import DEFAULT_CATEGORIES, Category, index_categories
from .categorizer import TransactionCategorizer, default_rules
from .config import Settings
from .logging_setup import get_logger
from .rules import InMemoryRuleStore, RuleSet, RuleStore, build_rule_set

_logger = get_logger("household_ledger.context")


class CategorizationContext:
    def __init__(
        self,
        store: RuleStore | None = None,
        *,
        categories: Iterable[Category] = DEFAULT_CATEGORIES,
        settings: Settings | None = None,
    ) -> None:
        self.store: RuleStore = store if store is not None else InMemoryRuleStore()
        self.categories: Mapping[str, Category] = index_categories(categories)
        self.settings = settings or Settings()
        self._snapshot: RuleSet | None = None
        self._categorizer: TransactionCategorizer | None = None

    @property
    def snapshot(self) -> RuleSet:
        """Current compiled rule set; loaded lazily on first access."""

        if self._snapshot is None:
            self.refresh()
        assert self._snapshot is not None
        return self._snapshot

    @property
    def categorizer(self) -> TransactionCategorizer:
        if self._categorizer is None or self._snapshot is None:
            self._categorizer = TransactionCategorizer(self.snapshot, self.categories)
        return self._categorizer

    def refresh(self) -> RuleSet:
        """Reload active learned rules from the store and rebuild the snapshot."""

        learned = self.store.list_rules(active_only=True)
        builtin = default_rules(below=self.settings.learned_rule_priority)
        self._snapshot = build_rule_set([*learned, *builtin])
        self._categorizer = None
        _logger.debug(
            "rule snapshot: %d learned, %d total active", len(learned), len(self._snapshot)
        )
        return self._snapshot


__all__ = ["CategorizationContext"]
