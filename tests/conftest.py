"""Pytest configuration for test isolation.

The CLI configures the ``household_ledger`` logger once per process and the
database client caches one engine per URL. Both are process-wide, so each
test starts from a clean slate: no ``DATABASE_URL`` inherited from the
environment, no handlers left behind by a CLI invocation, no engine bound to
a previous test's SQLite file.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from db.client import dispose_engines
from household_ledger.logging_setup import reset_logging


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("HOUSEHOLD_LEDGER_LOG_LEVEL", raising=False)
    monkeypatch.delenv("HL_LEARNED_RULE_PRIORITY", raising=False)
    monkeypatch.delenv("HL_HEADER_SCAN_ROWS", raising=False)
    monkeypatch.delenv("HL_MAX_PATTERN_KEYWORDS", raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _dispose_engines() -> Iterator[None]:
    yield
    dispose_engines()
