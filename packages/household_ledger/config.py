"""Runtime settings for ``household_ledger``.

Settings are read from environment variables. The CLI loads a local ``.env``
(``python-dotenv``) before calling :func:`load_settings`, so both sources work
the same way. Library callers may also build :class:`Settings` directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

_ENV_DATABASE_URL = "DATABASE_URL"
_ENV_LOG_LEVEL = "HOUSEHOLD_LEDGER_LOG_LEVEL"
_ENV_HEADER_SCAN_ROWS = "HL_HEADER_SCAN_ROWS"
_ENV_LEARNED_PRIORITY = "HL_LEARNED_RULE_PRIORITY"
_ENV_MAX_KEYWORDS = "HL_MAX_PATTERN_KEYWORDS"


class Settings(BaseModel):
    """Immutable configuration shared by ingestion, categorization and learning."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    database_url: str | None = None
    log_level: str = "INFO"
    # Number of leading rows the header locator inspects.
    header_scan_rows: int = Field(default=10, ge=1)
    # Learned rules start here; built-in defaults always sit below it.
    learned_rule_priority: int = Field(default=100, ge=1)
    max_pattern_keywords: int = Field(default=3, ge=1, le=10)


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``)."""

    source: Mapping[str, str] = os.environ if env is None else env
    return Settings(
        database_url=(source.get(_ENV_DATABASE_URL) or None),
        log_level=(source.get(_ENV_LOG_LEVEL) or "INFO").strip().upper(),
        header_scan_rows=_int_from_env(source, _ENV_HEADER_SCAN_ROWS, 10),
        learned_rule_priority=_int_from_env(source, _ENV_LEARNED_PRIORITY, 100),
        max_pattern_keywords=_int_from_env(source, _ENV_MAX_KEYWORDS, 3),
    )


__all__ = ["Settings", "load_settings"]
