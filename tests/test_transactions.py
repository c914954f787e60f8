from dataclasses import replace
from datetime import UTC, date, datetime
from decimal import Decimal

from household_ledger.categorizer import TYPE_CARD_PAYMENT, TYPE_OTHER
from household_ledger.context import CategorizationContext
from household_ledger.models import ParsedRow
from household_ledger.rules import InMemoryRuleStore, new_rule
from household_ledger.transactions import (
    convert_to_transactions,
    recategorize_transactions,
    signed_amount,
    transaction_period,
)

NOW = datetime(2024, 3, 10, tzinfo=UTC)


def row(description, debit="0", credit="0", *, date="2024-03-05", type=""):
    return ParsedRow(
        date=date,
        type=type,
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        raw={"Libellé": description},
    )


def test_signed_amount_prefers_credit():
    assert signed_amount(row("x", debit="10")) == Decimal("-10")
    assert signed_amount(row("x", credit="10")) == Decimal("10")
    assert signed_amount(row("x", debit="4", credit="10")) == Decimal("10")
    assert signed_amount(row("x")) == Decimal("0")


def test_convert_to_transactions():
    context = CategorizationContext()
    rows = [
        row("CB * CARREFOUR MARKET", debit="42.50", date="2024-03-07"),
        row("VIR SEPA SALAIRE ACME", credit="2100", date="2024-03-01"),
    ]
    txs = convert_to_transactions(rows, "imp-1", context.categorizer, now=NOW)

    grocery, salary = txs
    assert grocery.amount == Decimal("-42.50")
    assert grocery.is_expense
    assert grocery.category == "food-grocery"
    assert grocery.type == TYPE_CARD_PAYMENT
    assert grocery.import_id == "imp-1"
    assert grocery.source == "import"
    assert not grocery.is_manually_edited
    assert grocery.original_row == {"Libellé": "CB * CARREFOUR MARKET"}
    assert grocery.created_at == grocery.updated_at == NOW
    assert salary.category == "salary"
    assert salary.type == TYPE_OTHER
    assert len({t.id for t in txs}) == 2

    assert transaction_period(txs) == ("2024-03-01", "2024-03-07")


def test_empty_period_defaults_to_today():
    assert transaction_period([], today=date(2024, 5, 1)) == ("2024-05-01", "2024-05-01")


def test_recategorize_leaves_manual_edits_alone():
    store = InMemoryRuleStore()
    context = CategorizationContext(store)
    txs = convert_to_transactions(
        [row("CB FNAC PARIS", debit="10"), row("CB FNAC LYON", debit="20")],
        "imp-1",
        context.categorizer,
        now=NOW,
    )
    assert [t.category for t in txs] == ["shopping", "shopping"]
    txs[1] = replace(txs[1], category="health", is_manually_edited=True)

    store.add_rule(new_rule(category_id="entertainment", pattern="fnac", priority=100, now=NOW))
    context.refresh()
    updated, changed = recategorize_transactions(context, txs, now=NOW)

    assert changed == 1
    assert [t.category for t in updated] == ["entertainment", "health"]
