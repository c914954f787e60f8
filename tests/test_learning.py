from datetime import UTC, datetime
from decimal import Decimal

import pytest

from household_ledger.context import CategorizationContext
from household_ledger.learning import (
    apply_learned_rules,
    clear_all_rules,
    create_pattern,
    delete_rule,
    extract_keywords,
    learn_from_all_corrections,
    learn_from_correction,
    list_learned_rules,
    set_rule_active,
)
from household_ledger.rules import InMemoryRuleStore
from household_ledger.transactions import Transaction

NOW = datetime(2024, 3, 10, tzinfo=UTC)


def tx(description, amount, category="other", *, id="t1", edited=False, type=""):
    return Transaction(
        id=id,
        date="2024-03-05",
        type=type,
        description=description,
        amount=Decimal(str(amount)),
        category=category,
        is_manually_edited=edited,
        created_at=NOW,
        updated_at=NOW,
    )


def categorize(context, t):
    return context.categorizer.categorize(t.description, t.type, t.is_expense)


@pytest.fixture
def context():
    return CategorizationContext(InMemoryRuleStore())


# ---------------------------------------------------------------------------
# Keywords and patterns
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("CB CARREFOUR MARKET 12/03 4521", ["CARREFOUR", "MARKET"]),
        ("PRLV SEPA FREE MOBILE", ["FREE", "MOBILE"]),
        ("VIR SEPA DE M DUPONT JEAN", ["DUPONT", "JEAN"]),
        ("CB AMAZON 1234567890123", ["AMAZON"]),
        ("PAIEMENT CB 05/03/2024 LIDL", ["LIDL"]),
        ("CB ****1234 FNAC", ["FNAC"]),
        ("cb boulangerie paul", ["BOULANGERIE", "PAUL"]),
        ("CB 12/03", []),
        ("VIRGIN MEGASTORE", ["VIRGIN", "MEGASTORE"]),
        ("CBD SHOP PARIS", ["CBD", "SHOP", "PARIS"]),
        ("CARTEL BAR", ["CARTEL", "BAR"]),
    ],
)
def test_extract_keywords(description, expected):
    assert extract_keywords(description) == expected


def test_extract_keywords_caps_the_count():
    assert extract_keywords("CB LE PETIT BISTRO DU COIN", max_keywords=2) == ["PETIT", "BISTRO"]


def test_create_pattern_folds_and_orders_keywords():
    assert create_pattern(["CARREFOUR", "MARKET"]) == "carrefour.*market"
    assert create_pattern(["CAFÉ"]) == "cafe"
    assert create_pattern([]) == ""


# ---------------------------------------------------------------------------
# learn_from_correction
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("description", "amount", "target"),
    [
        ("CB CARREFOUR MARKET 12/03 4521", -42.5, "shopping"),
        ("PRLV SEPA FREE MOBILE", -19.99, "telecom"),
        ("CB BOULANGERIE PAUL 0304", -3.2, "food-restaurant"),
        ("VIR SEPA DE M DUPONT JEAN", 50, "refund"),
        ("CB H&M PARIS", -29.99, "entertainment"),
    ],
)
def test_correction_is_applied_to_the_same_description(context, description, amount, target):
    t = tx(description, amount)
    rule = learn_from_correction(context, t, target, now=NOW)

    assert rule is not None
    assert rule.category_id == target
    assert rule.priority >= context.settings.learned_rule_priority
    assert categorize(context, t) == target


def test_similar_descriptions_follow_the_learned_rule(context):
    learn_from_correction(context, tx("CB CARREFOUR MARKET 12/03 4521", -10), "shopping", now=NOW)
    assert categorize(context, tx("CB CARREFOUR MARKET 14/03 9876", -55)) == "shopping"


def test_repeated_correction_reinforces_instead_of_duplicating(context):
    t = tx("CB FNAC PARIS", -10)
    first = learn_from_correction(context, t, "entertainment", now=NOW)
    second = learn_from_correction(context, t, "entertainment", now=NOW)

    assert second.id == first.id
    assert second.hits == 2
    assert len(context.store.list_rules()) == 1


def test_recorrection_moves_rule_to_new_category(context):
    t = tx("CB FNAC PARIS", -10)
    learn_from_correction(context, t, "entertainment", now=NOW)
    rule = learn_from_correction(context, t, "shopping", now=NOW)

    assert len(context.store.list_rules()) == 1
    assert rule.category_id == "shopping"
    assert categorize(context, t) == "shopping"


def test_same_merchant_family_is_narrowed_to_shared_keywords(context):
    market = tx("CB CARREFOUR MARKET 1203", -10)
    city = tx("CB CARREFOUR CITY 0412", -20)
    learn_from_correction(context, market, "shopping", now=NOW)
    rule = learn_from_correction(context, city, "shopping", now=NOW)

    assert [r.pattern for r in context.store.list_rules()] == ["carrefour"]
    assert rule.hits == 2
    assert categorize(context, market) == "shopping"
    assert categorize(context, city) == "shopping"


def test_more_specific_conflicting_correction_wins(context):
    broad = tx("CB CARREFOUR", -10)
    narrow = tx("CB CARREFOUR CITY", -20)
    broad_rule = learn_from_correction(context, broad, "shopping", now=NOW)
    narrow_rule = learn_from_correction(context, narrow, "food-restaurant", now=NOW)

    assert narrow_rule.id != broad_rule.id
    assert narrow_rule.priority > broad_rule.priority
    assert categorize(context, broad) == "shopping"
    assert categorize(context, narrow) == "food-restaurant"


@pytest.mark.parametrize(
    ("description", "amount", "target"),
    [
        # Rent share received from a flatmate, filed as housing.
        ("VIR SEPA DE M DUPONT LOYER PART", 400, "housing"),
        # Marketplace debit the user files as a refund.
        ("CB AMAZON MARKETPLACE", -20, "refund"),
    ],
)
def test_correction_across_polarity_is_still_applied(context, description, amount, target):
    t = tx(description, amount)
    learn_from_correction(context, t, target, now=NOW)

    assert categorize(context, t) == target
    updated, n = apply_learned_rules(context, [t], now=NOW)
    assert n == 1
    assert updated[0].category == target


def test_narrowing_never_shadows_another_category(context):
    essence = tx("CB CARREFOUR ESSENCE", -60, id="e")
    market = tx("CB CARREFOUR MARKET", -30, id="m")
    city = tx("CB CARREFOUR CITY", -15, id="c")
    learn_from_correction(context, essence, "transport", now=datetime(2024, 3, 1, tzinfo=UTC))
    learn_from_correction(context, market, "food-grocery", now=datetime(2024, 3, 2, tzinfo=UTC))
    learn_from_correction(context, city, "food-grocery", now=datetime(2024, 3, 3, tzinfo=UTC))

    patterns = sorted(r.pattern for r in context.store.list_rules())
    assert patterns == ["carrefour.*city", "carrefour.*essence", "carrefour.*market"]
    assert categorize(context, essence) == "transport"
    assert categorize(context, market) == "food-grocery"
    assert categorize(context, city) == "food-grocery"


def test_no_keywords_learns_nothing(context):
    assert learn_from_correction(context, tx("CB 12/03", -5), "shopping") is None
    assert context.store.list_rules() == []


def test_learning_failures_are_logged_not_raised(caplog):
    class BrokenStore(InMemoryRuleStore):
        def list_rules(self, *, active_only=False):
            raise RuntimeError("store offline")

    context = CategorizationContext(BrokenStore())
    assert learn_from_correction(context, tx("CB FNAC", -1), "shopping") is None
    assert "failed to learn from correction of t1" in caplog.text


# ---------------------------------------------------------------------------
# Bulk learning and rule management
# ---------------------------------------------------------------------------


def test_apply_learned_rules_skips_manual_edits(context):
    learn_from_correction(context, tx("CB FNAC PARIS", -1), "entertainment", now=NOW)
    txs = [
        tx("CB FNAC PARIS 2", -12, "shopping", id="a"),
        tx("CB FNAC PARIS 3", -12, "shopping", id="b", edited=True),
        tx("CB FNAC PARIS", 12, "refund", id="c"),
        tx("CB LIDL", -3, "food-grocery", id="d"),
    ]
    updated, n = apply_learned_rules(context, txs, now=NOW)

    assert n == 2
    # Learned rules ignore polarity: the credit row follows the correction too.
    assert [t.category for t in updated] == [
        "entertainment",
        "shopping",
        "entertainment",
        "food-grocery",
    ]


def test_learn_from_all_corrections(context):
    txs = [
        tx("CB FNAC PARIS", -12, "entertainment", id="a", edited=True),
        tx("PRLV SEPA FREE MOBILE", -20, "telecom", id="b", edited=True),
        tx("CB FNAC PARIS", -30, "shopping", id="c"),
        tx("PRLV SEPA FREE MOBILE", -20, "abonnements", id="d"),
        tx("CB LIDL", -3, "food-grocery", id="e"),
    ]
    result = learn_from_all_corrections(context, txs, now=NOW)

    assert result.rules_created == 2
    assert result.transactions_updated == 2
    assert {t.id: t.category for t in result.transactions} == {
        "a": "entertainment",
        "b": "telecom",
        "c": "entertainment",
        "d": "telecom",
        "e": "food-grocery",
    }


def test_rule_management(context):
    t = tx("CB FNAC PARIS", -10)
    fnac = learn_from_correction(context, t, "entertainment", now=NOW)
    learn_from_correction(context, tx("CB LIDL STRASBOURG", -3), "shopping", now=NOW)
    assert len(list_learned_rules(context)) == 2

    set_rule_active(context, fnac.id, False)
    # Back to the built-in table.
    assert categorize(context, t) == "shopping"
    set_rule_active(context, fnac.id, True)
    assert categorize(context, t) == "entertainment"
    assert set_rule_active(context, "nope", True) is None

    assert delete_rule(context, fnac.id) is True
    assert delete_rule(context, fnac.id) is False
    assert categorize(context, t) == "shopping"

    assert clear_all_rules(context) == 1
    assert list_learned_rules(context) == []


def test_learn_from_all_corrections_is_idempotent(context):
    txs = [
        tx("CB FNAC PARIS", -12, "entertainment", id="a", edited=True),
        tx("CB CARREFOUR MARKET", -40, "shopping", id="b", edited=True),
    ]
    first = learn_from_all_corrections(context, txs, now=NOW)
    second = learn_from_all_corrections(context, txs, now=NOW)

    assert (first.rules_created, second.rules_created) == (2, 0)
    assert [r.hits for r in context.store.list_rules()] == [1, 1]
