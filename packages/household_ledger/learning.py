"""Learning from manual category corrections.

A correction turns the transaction description into a keyword pattern and
stores it as a learned rule, so the next categorization snapshot assigns the
corrected category to the same merchant.

Pattern policy
--------------
- Upper-case the description and drop leading banking prefixes
  (``CB``, ``PRLV``, ``VIR SEPA`` ...), dates, long reference numbers and
  asterisk runs.
- Keep words of three or more characters that are neither stop words nor
  mostly digits; the first ``max_pattern_keywords`` of them, escaped and
  folded, joined with ``.*``, form the pattern.

Merge policy
------------
Rules sharing the same leading keyword belong to one family.

- Same pattern: the rule is updated in place (category, ``hits + 1``,
  re-activated).
- Same family and same category: the rule is reinforced and its pattern is
  narrowed to the keywords both descriptions share, so it keeps matching
  every description it was learned from. When the narrowed pattern would
  also cover an active rule of another category, a new rule is created
  instead.
- Otherwise a new rule is created.

In every case the resulting rule is lifted above any other learned rule that
matches the description. Corrections never delete rules.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from .context import CategorizationContext
from .logging_setup import get_logger
from .rules import (
    CategorizationRule,
    InvalidRuleError,
    build_rule_set,
    compile_rule,
    new_rule,
)
from .text import fold_text
from .transactions import Transaction

_logger = get_logger("household_ledger.learning")

PATTERN_JOINER = ".*"

_PREFIX_RE = re.compile(
    r"^(PAIEMENT|PRLV|PRELEVEMENT|VIREMENT|VIR|CB|CARTE)\b\s*", re.IGNORECASE
)
_SECONDARY_PREFIX_RE = re.compile(r"^(SEPA|INST|EURO)\b\s*", re.IGNORECASE)
_DATE_RE = re.compile(r"\d{2}/\d{2}/\d{2,4}")
_LONG_NUMBER_RE = re.compile(r"\d{10,}")
_ASTERISKS_RE = re.compile(r"[*]{2,}")

STOP_WORDS = frozenset(
    {"DE", "DU", "LA", "LE", "LES", "EN", "AU", "AUX", "PAR", "POUR", "SUR", "AVEC"}
)
MIN_KEYWORD_LEN = 3


def _is_noise(word: str) -> bool:
    if len(word) < MIN_KEYWORD_LEN or word in STOP_WORDS:
        return True
    digits = sum(ch.isdigit() for ch in word)
    # Card suffixes, dates without year, store numbers: "12/03", "X4521".
    return digits * 2 > len(word)


def extract_keywords(description: str, *, max_keywords: int = 3) -> list[str]:
    """Return up to ``max_keywords`` stable words from ``description``.

    >>> extract_keywords("CB CARREFOUR MARKET 12/03 4521")
    ['CARREFOUR', 'MARKET']
    """

    s = description.upper().strip()
    s = _PREFIX_RE.sub("", s, count=1)
    s = _SECONDARY_PREFIX_RE.sub("", s, count=1)
    s = _DATE_RE.sub("", s)
    s = _LONG_NUMBER_RE.sub("", s)
    s = _ASTERISKS_RE.sub("", s).strip()
    keywords = [w for w in s.split() if not _is_noise(w)]
    return keywords[:max_keywords]


def create_pattern(keywords: Sequence[str]) -> str:
    """Join escaped, folded keywords into an in-order regex (``""`` when empty)."""

    return PATTERN_JOINER.join(re.escape(fold_text(kw)) for kw in keywords if kw)


def _pattern_parts(pattern: str) -> list[str]:
    return pattern.casefold().split(PATTERN_JOINER)


def _family(pattern: str) -> str:
    return _pattern_parts(pattern)[0]


def _common_prefix(a: Sequence[str], b: Sequence[str]) -> list[str]:
    out: list[str] = []
    for x, y in zip(a, b, strict=False):
        if x != y:
            break
        out.append(x)
    return out


def _keyword_text(pattern: str) -> str:
    return " ".join(re.sub(r"\\(.)", r"\1", part) for part in _pattern_parts(pattern))


def _covers_other_category(
    rules: Iterable[CategorizationRule], pattern: str, category_id: str
) -> bool:
    """Whether ``pattern`` would also match an active learned rule of another category."""

    rx = re.compile(pattern, re.IGNORECASE)
    return any(
        rule.is_active
        and rule.field == "description"
        and rule.category_id != category_id
        and rx.search(_keyword_text(rule.pattern))
        for rule in rules
    )


def _top_matching_priority(
    rules: Iterable[CategorizationRule], description: str, *, exclude: str | None = None
) -> int | None:
    folded = fold_text(description)
    top: int | None = None
    for rule in rules:
        if rule.id == exclude or not rule.is_active:
            continue
        try:
            compiled = compile_rule(rule)
        except InvalidRuleError:
            continue
        if compiled.matches(folded, "") and (top is None or rule.priority > top):
            top = rule.priority
    return top


def _find_merge_target(
    rules: Sequence[CategorizationRule], pattern: str, category_id: str
) -> CategorizationRule | None:
    wanted = pattern.casefold()
    for rule in rules:
        if rule.pattern.casefold() == wanted:
            return rule
    family = _family(pattern)
    for rule in rules:
        if rule.field == "description" and rule.category_id == category_id:
            if _family(rule.pattern) == family:
                return rule
    return None


def learn_from_correction(
    context: CategorizationContext,
    transaction: Transaction,
    new_category_id: str,
    *,
    now: datetime | None = None,
) -> CategorizationRule | None:
    """Create or reinforce a learned rule for ``transaction``'s description.

    Never raises: failures are logged and ``None`` is returned so the user's
    edit can still be saved.
    """

    try:
        settings = context.settings
        keywords = extract_keywords(
            transaction.description, max_keywords=settings.max_pattern_keywords
        )
        pattern = create_pattern(keywords)
        if not pattern:
            _logger.info("no keywords in %r; nothing learned", transaction.description)
            return None

        ts = now or datetime.now(UTC)
        existing_rules = context.store.list_rules()
        target = _find_merge_target(existing_rules, pattern, new_category_id)
        merged_pattern = pattern
        if target is not None and target.pattern.casefold() != pattern.casefold():
            shared = _common_prefix(_pattern_parts(target.pattern), _pattern_parts(pattern))
            merged_pattern = PATTERN_JOINER.join(shared)
            if _covers_other_category(existing_rules, merged_pattern, new_category_id):
                # Narrowing would shadow another correction; keep both rules.
                target = None
                merged_pattern = pattern
        top = _top_matching_priority(
            existing_rules, transaction.description, exclude=target.id if target else None
        )
        priority = settings.learned_rule_priority
        if top is not None:
            priority = max(priority, top + 1)

        if target is None:
            rule = new_rule(
                category_id=new_category_id,
                pattern=pattern,
                field="description",
                priority=priority,
                is_active=True,
                hits=1,
                now=ts,
            )
            context.store.add_rule(rule)
            _logger.info("learned rule %r -> %s", pattern, new_category_id)
        else:
            rule = target.model_copy(
                update={
                    "category_id": new_category_id,
                    "pattern": merged_pattern,
                    "field": "description",
                    "priority": max(target.priority, priority),
                    "is_active": True,
                    "hits": target.hits + 1,
                    "updated_at": ts,
                }
            )
            context.store.update_rule(rule)
            _logger.info(
                "reinforced rule %s %r -> %s (hits=%d)",
                rule.id,
                merged_pattern,
                new_category_id,
                rule.hits,
            )
        context.refresh()
        return rule
    except Exception:
        _logger.exception("failed to learn from correction of %s", transaction.id)
        return None


# ---------------------------
# Bulk application
# ---------------------------


def apply_learned_rules(
    context: CategorizationContext,
    transactions: Iterable[Transaction],
    *,
    now: datetime | None = None,
) -> tuple[list[Transaction], int]:
    """Apply only learned rules to transactions the user has not edited.

    The first active learned rule that matches decides, whatever the
    transaction's polarity; transactions no learned rule matches keep their
    category.
    """

    learned = build_rule_set(context.store.list_rules(active_only=True))
    ts = now or datetime.now(UTC)
    out: list[Transaction] = []
    updated = 0
    for tx in transactions:
        if tx.is_manually_edited or not len(learned):
            out.append(tx)
            continue
        desc = fold_text(tx.description)
        typ = fold_text(tx.type)
        for compiled in learned:
            if compiled.matches(desc, typ):
                if compiled.rule.category_id != tx.category:
                    tx = replace(tx, category=compiled.rule.category_id, updated_at=ts)
                    updated += 1
                break
        out.append(tx)
    return out, updated


@dataclass(frozen=True, slots=True)
class LearnAllResult:
    rules_created: int
    transactions_updated: int
    transactions: tuple[Transaction, ...] = ()


def _already_learned(context: CategorizationContext, tx: Transaction) -> bool:
    match = build_rule_set(context.store.list_rules(active_only=True)).first_match(
        tx.description, tx.type
    )
    return match is not None and match.rule.category_id == tx.category


def learn_from_all_corrections(
    context: CategorizationContext,
    transactions: Sequence[Transaction],
    *,
    now: datetime | None = None,
) -> LearnAllResult:
    """Learn from every manually edited transaction, then apply learned rules.

    Corrections the active learned rules already reproduce are skipped, so
    repeated runs do not inflate ``hits``.
    """

    before = {r.id for r in context.store.list_rules()}
    for tx in transactions:
        if tx.is_manually_edited and not _already_learned(context, tx):
            learn_from_correction(context, tx, tx.category, now=now)
    created = len({r.id for r in context.store.list_rules()} - before)
    updated_list, updated = apply_learned_rules(context, transactions, now=now)
    _logger.info("learn-all: %d rule(s) created, %d transaction(s) updated", created, updated)
    return LearnAllResult(
        rules_created=created,
        transactions_updated=updated,
        transactions=tuple(updated_list),
    )


# ---------------------------
# Rule management (explicit user actions)
# ---------------------------


def list_learned_rules(context: CategorizationContext) -> list[CategorizationRule]:
    """Learned rules, highest priority first."""

    rules = context.store.list_rules()
    return sorted(rules, key=lambda r: (-r.priority, r.created_at))


def set_rule_active(
    context: CategorizationContext, rule_id: str, active: bool
) -> CategorizationRule | None:
    rule = context.store.get_rule(rule_id)
    if rule is None:
        return None
    rule = rule.model_copy(update={"is_active": active, "updated_at": datetime.now(UTC)})
    context.store.update_rule(rule)
    context.refresh()
    return rule


def delete_rule(context: CategorizationContext, rule_id: str) -> bool:
    deleted = context.store.delete_rule(rule_id)
    if deleted:
        context.refresh()
    return deleted


def clear_all_rules(context: CategorizationContext) -> int:
    n = context.store.clear()
    context.refresh()
    _logger.info("cleared %d learned rule(s)", n)
    return n


__all__ = [
    "LearnAllResult",
    "STOP_WORDS",
    "apply_learned_rules",
    "clear_all_rules",
    "create_pattern",
    "delete_rule",
    "extract_keywords",
    "learn_from_all_corrections",
    "learn_from_correction",
    "list_learned_rules",
    "set_rule_active",
]
