import contextlib
from datetime import UTC, datetime
from decimal import Decimal

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from household_ledger.categories import DEFAULT_CATEGORIES
from household_ledger.term_ui import best_prefix_match, format_transaction_line, select_category
from household_ledger.transactions import Transaction

CODES = [c.id for c in DEFAULT_CATEGORIES]


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_enter_accepts_prefilled_category():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert select_category(CODES, default="food-grocery", session=sess) == "food-grocery"


def test_clear_and_type_exact_category():
    with pipe_session() as (pipe, sess):
        # Ctrl-A (home), Ctrl-K (kill to end), type, Enter
        pipe.send_text("\x01\x0bhealth\r")
        assert select_category(CODES, default="other", session=sess) == "health"


def test_tab_completes_prefix():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0btele\t\r")
        assert select_category(CODES, default="other", session=sess) == "telecom"


def test_enter_commits_prefix_completion():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bsal\r")
        assert select_category(CODES, default="other", session=sess) == "salary"


def test_input_is_matched_case_insensitively():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bAMAZON\r")
        assert select_category(CODES, default="other", session=sess) == "amazon"


def test_best_prefix_match():
    assert best_prefix_match(CODES, "food") == "food-grocery"
    assert best_prefix_match(CODES, "food-r") == "food-restaurant"
    assert best_prefix_match(CODES, "caf") is None
    assert best_prefix_match(CODES, "") is None
    assert best_prefix_match(CODES, "zzz") is None


def test_format_transaction_line():
    tx = Transaction(
        id="t1",
        date="2024-03-05",
        type="AUTRE",
        description="CB CARREFOUR MARKET",
        amount=Decimal("-42.5"),
        category="food-grocery",
        created_at=datetime(2024, 3, 5, tzinfo=UTC),
        updated_at=datetime(2024, 3, 5, tzinfo=UTC),
    )
    line = format_transaction_line(tx)
    assert line.startswith("2024-03-05      -42.50  CB CARREFOUR MARKET")
    assert line.endswith("[food-grocery]")
