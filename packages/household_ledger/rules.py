# ruff: noqa: I001
"""Categorization rules: model, compiled snapshot and stores.

A rule associates a regex ``pattern`` with a ``category_id`` and targets one
text field of a transaction (``description`` or ``type``). Rules are stored as
portable pattern text and compiled once when a :class:`RuleSet` snapshot is
built; the categorizer never compiles per row.

Snapshot order is priority descending, then most recent ``created_at`` first,
then declaration order. Patterns are matched case-insensitively against
folded text (see :func:`household_ledger.text.fold_text`); accents in the
pattern itself are stripped at compile time so ``"café"`` matches ``"CAFE"``.

Stores
------
- :class:`InMemoryRuleStore`: dict-backed, used by tests and library callers.
- :class:`SqlRuleStore`: ``hl_rules`` table through ``db.client.session_scope``.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete, select

from db.client import session_scope
from db.models.finance import HlRule

from .logging_setup import get_logger
from .text import fold_text, strip_accents

_logger = get_logger("household_ledger.rules")

type RuleField = Literal["description", "type"]

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class InvalidRuleError(ValueError):
    """Raised when a rule pattern is empty or does not compile."""


class CategorizationRule(BaseModel):
    """A pattern-to-category association.

    ``pattern`` is kept as text here; it is validated by :func:`new_rule` and
    compiled by :func:`compile_rule`. Rules loaded from storage are not
    re-validated on construction so a bad stored row can be skipped with a
    warning instead of failing the whole snapshot.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    category_id: str
    pattern: str
    field: RuleField = "description"
    priority: int = 0
    is_active: bool = True
    created_at: datetime = Field(default=EPOCH)
    updated_at: datetime | None = None
    # Corrections that created or reinforced this rule.
    hits: int = Field(default=0, ge=0)
    # Built-in rules ship with the code and are never persisted.
    builtin: bool = False


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    if not pattern or not pattern.strip():
        raise InvalidRuleError("rule pattern cannot be empty")
    try:
        return re.compile(strip_accents(pattern), re.IGNORECASE)
    except re.error as exc:
        raise InvalidRuleError(f"invalid rule pattern {pattern!r}: {exc}") from exc


def new_rule(
    *,
    category_id: str,
    pattern: str,
    field: RuleField = "description",
    priority: int = 0,
    is_active: bool = True,
    hits: int = 0,
    now: datetime | None = None,
) -> CategorizationRule:
    """Create a fresh rule with a generated id, validating ``pattern``.

    Raises :class:`InvalidRuleError` when the pattern does not compile.
    """

    _compile_pattern(pattern)
    ts = now or datetime.now(UTC)
    return CategorizationRule(
        id=str(uuid.uuid4()),
        category_id=category_id,
        pattern=pattern,
        field=field,
        priority=priority,
        is_active=is_active,
        created_at=ts,
        updated_at=ts,
        hits=hits,
    )


# ---------------------------
# Compiled snapshot
# ---------------------------


@dataclass(frozen=True, slots=True)
class CompiledRule:
    rule: CategorizationRule
    regex: re.Pattern[str]

    def matches(self, description: str, type_: str) -> bool:
        """Test the rule's target field. Inputs must already be folded."""

        value = description if self.rule.field == "description" else type_
        return self.regex.search(value) is not None


def compile_rule(rule: CategorizationRule) -> CompiledRule:
    return CompiledRule(rule=rule, regex=_compile_pattern(rule.pattern))


def _timestamp(value: datetime) -> float:
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


@dataclass(frozen=True, slots=True)
class RuleSet:
    """Immutable, ordered snapshot of active compiled rules."""

    rules: tuple[CompiledRule, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def learned(self) -> tuple[CompiledRule, ...]:
        return tuple(r for r in self.rules if not r.rule.builtin)

    def first_match(self, description: str, type_: str = "") -> CompiledRule | None:
        desc = fold_text(description)
        typ = fold_text(type_)
        for compiled in self.rules:
            if compiled.matches(desc, typ):
                return compiled
        return None


def build_rule_set(rules: Iterable[CategorizationRule]) -> RuleSet:
    """Compile active ``rules`` and order them for first-match evaluation.

    Inactive rules are dropped. Rules whose pattern fails to compile are
    skipped with a warning.
    """

    compiled: list[CompiledRule] = []
    for rule in rules:
        if not rule.is_active:
            continue
        try:
            compiled.append(compile_rule(rule))
        except InvalidRuleError as exc:
            _logger.warning("skipping rule %s: %s", rule.id, exc)
    # sorted() is stable: equal keys keep declaration order.
    compiled.sort(key=lambda c: (-c.rule.priority, -_timestamp(c.rule.created_at)))
    return RuleSet(rules=tuple(compiled))


# ---------------------------
# Stores
# ---------------------------


class RuleStore(Protocol):
    """Persistence boundary for learned rules."""

    def list_rules(self, *, active_only: bool = False) -> list[CategorizationRule]: ...

    def get_rule(self, rule_id: str) -> CategorizationRule | None: ...

    def add_rule(self, rule: CategorizationRule) -> CategorizationRule: ...

    def update_rule(self, rule: CategorizationRule) -> CategorizationRule: ...

    def delete_rule(self, rule_id: str) -> bool: ...

    def clear(self) -> int: ...


class InMemoryRuleStore:
    def __init__(self, rules: Sequence[CategorizationRule] = ()) -> None:
        self._rules: dict[str, CategorizationRule] = {r.id: r for r in rules}

    def list_rules(self, *, active_only: bool = False) -> list[CategorizationRule]:
        return [r for r in self._rules.values() if r.is_active or not active_only]

    def get_rule(self, rule_id: str) -> CategorizationRule | None:
        return self._rules.get(rule_id)

    def add_rule(self, rule: CategorizationRule) -> CategorizationRule:
        if rule.id in self._rules:
            raise ValueError(f"rule {rule.id} already exists")
        self._rules[rule.id] = rule
        return rule

    def update_rule(self, rule: CategorizationRule) -> CategorizationRule:
        if rule.id not in self._rules:
            raise KeyError(rule.id)
        self._rules[rule.id] = rule
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def clear(self) -> int:
        n = len(self._rules)
        self._rules.clear()
        return n


def _rule_from_row(row: HlRule) -> CategorizationRule:
    return CategorizationRule(
        id=row.id,
        category_id=row.category_id,
        pattern=row.pattern,
        field=row.field,  # type: ignore[arg-type]
        priority=row.priority,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
        hits=row.hits,
    )


def _apply_to_row(row: HlRule, rule: CategorizationRule) -> None:
    row.category_id = rule.category_id
    row.pattern = rule.pattern
    row.field = rule.field
    row.priority = rule.priority
    row.is_active = rule.is_active
    row.hits = rule.hits
    row.created_at = rule.created_at
    row.updated_at = rule.updated_at or datetime.now(UTC)


class SqlRuleStore:
    """Rule store backed by the ``hl_rules`` table.

    Each call runs in its own ``session_scope`` and commits before returning,
    so a write is visible to the next snapshot load.
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self._database_url = database_url

    def list_rules(self, *, active_only: bool = False) -> list[CategorizationRule]:
        stmt = select(HlRule).order_by(HlRule.created_at, HlRule.id)
        if active_only:
            stmt = stmt.where(HlRule.is_active.is_(True))
        with session_scope(database_url=self._database_url) as session:
            return [_rule_from_row(r) for r in session.scalars(stmt)]

    def get_rule(self, rule_id: str) -> CategorizationRule | None:
        with session_scope(database_url=self._database_url) as session:
            row = session.get(HlRule, rule_id)
            return _rule_from_row(row) if row is not None else None

    def add_rule(self, rule: CategorizationRule) -> CategorizationRule:
        with session_scope(database_url=self._database_url) as session:
            row = HlRule(id=rule.id)
            _apply_to_row(row, rule)
            session.add(row)
        return rule

    def update_rule(self, rule: CategorizationRule) -> CategorizationRule:
        with session_scope(database_url=self._database_url) as session:
            row = session.get(HlRule, rule.id)
            if row is None:
                raise KeyError(rule.id)
            _apply_to_row(row, rule)
        return rule

    def delete_rule(self, rule_id: str) -> bool:
        with session_scope(database_url=self._database_url) as session:
            result = session.execute(delete(HlRule).where(HlRule.id == rule_id))
            return bool(result.rowcount)

    def clear(self) -> int:
        with session_scope(database_url=self._database_url) as session:
            result = session.execute(delete(HlRule))
            return int(result.rowcount or 0)


__all__ = [
    "EPOCH",
    "CategorizationRule",
    "CompiledRule",
    "InMemoryRuleStore",
    "InvalidRuleError",
    "RuleField",
    "RuleSet",
    "RuleStore",
    "SqlRuleStore",
    "build_rule_set",
    "compile_rule",
    "new_rule",
]
