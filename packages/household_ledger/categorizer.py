"""Rule-based transaction categorization.

The built-in rule table targets French retail banking statements. Each entry
is tested against both the description and the type column, in table order,
and always sits below the learned-rule priority band so a user's correction
wins over a built-in guess.

Example
-------
>>> from household_ledger.rules import build_rule_set
>>> cat = TransactionCategorizer(build_rule_set(default_rules()))
>>> cat.categorize("CB CARREFOUR MARKET 12/03", is_expense=True)
'food-grocery'
>>> cat.detect_type("VIR INST DE M DUPONT")
'VIREMENT_RECU'
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from .categories import DEFAULT_CATEGORY_INDEX, FALLBACK_CATEGORY, Category, polarity_allows
from .logging_setup import get_logger
from .rules import EPOCH, CategorizationRule, RuleSet
from .text import fold_text

_logger = get_logger("household_ledger.categorizer")

DEFAULT_LEARNED_PRIORITY = 100

# Ordered: earlier categories win over later ones.
DEFAULT_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "food-grocery",
        (
            r"carrefour|leclerc|auchan|lidl|aldi|intermarche|super\s*u",
            r"monoprix|franprix|casino|picard|bio\s*c\s*bon|naturalia",
            r"match|cora|geant|hyper|magasin",
        ),
    ),
    (
        "food-restaurant",
        (
            r"mcdonald|burger\s*king|kfc|pizza|sushi|restaurant|brasserie",
            r"uber\s*eats|deliveroo|just\s*eat|frichti",
            r"cafe|bistro|bar|snack|kebab|thai|chinois|japonais",
        ),
    ),
    (
        "transport",
        (
            r"sncf|ratp|uber|bolt|taxi|vtc|blablacar",
            r"essence|total|shell|bp|esso|station|carburant",
            r"parking|autoroute|peage|vinci|sanef",
            r"velib|lime|bird|tier|trottinette",
        ),
    ),
    (
        "abonnements",
        (
            r"netflix",
            r"nintendo",
            r"apple\.com|itunes|apple\s*(tv|music|one)",
            r"spotify|deezer",
            r"disney\s*\+|disney\s*plus",
            r"euro\s*disney",
            r"bouygues",
            r"orange|sfr|free|sosh|red\s*by",
        ),
    ),
    (
        "entertainment",
        (
            r"youtube\s*premium",
            r"cinema|pathe|gaumont|ugc|mk2|theatre|concert|spectacle",
            r"playstation|xbox|steam|gaming|jeux",
            r"fnac\s*spectacle|ticketmaster|billeterie",
        ),
    ),
    (
        "amazon",
        (
            r"amazon",
            r"amzn",
            r"\bamz\b",
            r"amz\s*digital",
            r"amz\s*mktp",
        ),
    ),
    (
        "shopping",
        (
            r"fnac|darty|boulanger|cdiscount",
            r"zalando|asos|vinted|leboncoin|vestiaire",
            r"zara|h&m|uniqlo|decathlon|go\s*sport",
            r"ikea|leroy\s*merlin|castorama|bricorama",
        ),
    ),
    (
        "housing",
        (
            r"edf|engie|electricite|gaz|energie",
            r"loyer|bailleur|immobilier|syndic|copropriete",
            r"assurance\s*hab|maif|macif|matmut|axa",
            r"eau|veolia|suez",
        ),
    ),
    ("telecom", (r"mobile|forfait|internet|fibre|box",)),
    (
        "health",
        (
            r"pharmacie|medecin|docteur|hopital|clinique",
            r"mutuelle|sante|cpam|ameli|secu",
            r"dentiste|ophtalmo|kine|osteo",
        ),
    ),
    (
        "bank-fees",
        (
            r"frais\s*bancaire|commission|agios|interets",
            r"cotisation\s*carte|assurance\s*carte",
        ),
    ),
    (
        "salary",
        (
            r"salaire|paie|remuneration",
            r"vir\s*(inst\s*)?.*employeur",
            r"bulletin|fiche\s*de\s*paie",
        ),
    ),
    ("caf", (r"\bcaf\b", r"allocations?\s*familiales?")),
    (
        "transfer-in",
        (
            r"virement\s*(en\s*)?(votre\s*)?faveur",
            r"vir(ement)?\s*(inst\s*)?(de|recu)",
            r"vir\s*inst.*\bde\b",
            r"mangopay|vinted|leboncoin|ebay",
            r"wero",
        ),
    ),
    (
        "refund",
        (
            r"remboursement|avoir|credit|retrocession",
            r"c\.?p\.?a\.?m|cpam|ameli|secu",
        ),
    ),
    ("transfer-out", (r"vir(ement)?\s*(inst\s*)?(vers|emis|pour)",)),
    ("internal", (r"prelevement|prlv", r"cotisation|adhesion")),
)


def default_rules(*, below: int = DEFAULT_LEARNED_PRIORITY) -> list[CategorizationRule]:
    """Return the built-in rules, all with a priority strictly under ``below``.

    Every pattern yields two rules (description, then type) sharing the
    category's priority, so table order is preserved by the stable sort.
    """

    rules: list[CategorizationRule] = []
    for index, (category_id, patterns) in enumerate(DEFAULT_PATTERNS):
        priority = below - 1 - index
        for n, pattern in enumerate(patterns):
            for field in ("description", "type"):
                rules.append(
                    CategorizationRule(
                        id=f"builtin:{category_id}:{n}:{field}",
                        category_id=category_id,
                        pattern=pattern,
                        field=field,
                        priority=priority,
                        created_at=EPOCH,
                        builtin=True,
                    )
                )
    return rules


# ---------------------------
# Transaction type detection
# ---------------------------

TYPE_CARD_PAYMENT = "PAIEMENT_CARTE"
TYPE_TRANSFER_IN = "VIREMENT_RECU"
TYPE_TRANSFER_OUT = "VIREMENT_EMIS"
TYPE_DIRECT_DEBIT = "PRELEVEMENT"
TYPE_CREDIT_NOTE = "AVOIR"
TYPE_FEE = "COTISATION"
TYPE_OTHER = "AUTRE"

_TYPE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"cb\s*\*|carte\s*\*|paiement\s*carte"), TYPE_CARD_PAYMENT),
    (re.compile(r"vir(ement)?\s*(inst\s*)?(de|recu|faveur)"), TYPE_TRANSFER_IN),
    (re.compile(r"vir(ement)?\s*(inst\s*)?(vers|emis|pour)"), TYPE_TRANSFER_OUT),
    (re.compile(r"prlv|prelevement"), TYPE_DIRECT_DEBIT),
    (re.compile(r"avoir|credit|remboursement"), TYPE_CREDIT_NOTE),
    (re.compile(r"cotisation|adhesion"), TYPE_FEE),
)


def detect_type(description: str) -> str:
    """Return a coarse transaction-type label for ``description``."""

    folded = fold_text(description)
    for rx, label in _TYPE_PATTERNS:
        if rx.search(folded):
            return label
    return TYPE_OTHER


class TransactionCategorizer:
    """First-match categorizer over an immutable :class:`RuleSet` snapshot."""

    def __init__(
        self,
        rule_set: RuleSet,
        categories: Mapping[str, Category] | Sequence[Category] | None = None,
    ) -> None:
        self._rules = rule_set
        if categories is None:
            self._categories: Mapping[str, Category] = DEFAULT_CATEGORY_INDEX
        elif isinstance(categories, Mapping):
            self._categories = categories
        else:
            self._categories = {c.id: c for c in categories}

    @property
    def rule_set(self) -> RuleSet:
        return self._rules

    def categorize(self, description: str, type: str = "", is_expense: bool | None = None) -> str:
        """Return the category id of the first matching rule, or ``"other"``.

        When ``is_expense`` is given, built-in rules whose category has the
        opposite polarity are skipped. Learned rules always apply.
        """

        desc = fold_text(description)
        typ = fold_text(type)
        for compiled in self._rules:
            rule = compiled.rule
            if rule.builtin and not polarity_allows(rule.category_id, is_expense, self._categories):
                continue
            if compiled.matches(desc, typ):
                _logger.debug("rule %s matched %r -> %s", rule.id, description, rule.category_id)
                return rule.category_id
        return FALLBACK_CATEGORY

    def detect_type(self, description: str) -> str:
        return detect_type(description)


__all__ = [
    "DEFAULT_PATTERNS",
    "TYPE_CARD_PAYMENT",
    "TYPE_CREDIT_NOTE",
    "TYPE_DIRECT_DEBIT",
    "TYPE_FEE",
    "TYPE_OTHER",
    "TYPE_TRANSFER_IN",
    "TYPE_TRANSFER_OUT",
    "TransactionCategorizer",
    "default_rules",
    "detect_type",
]
