from household_ledger.ingest.column_mapper import detect_column_mapping
from household_ledger.models import ColumnMapping


def test_french_debit_credit_headers():
    mapping = detect_column_mapping(["Date opération", "Libellé", "Débit", "Crédit"])
    assert mapping.as_dict() == {"date": 0, "description": 1, "debit": 2, "credit": 3}


def test_signed_amount_with_type_column():
    mapping = detect_column_mapping(["Date", "Type", "Libellé", "Montant"])
    assert mapping == ColumnMapping(date=0, type=1, description=2, amount=3)


def test_prefers_detailed_label_over_simplified():
    mapping = detect_column_mapping(
        ["Date", "Libellé simplifié", "Libellé complet", "Montant EUR"]
    )
    assert mapping.description == 2
    assert mapping.amount == 3


def test_headers_are_compared_trimmed_and_case_insensitive():
    mapping = detect_column_mapping(["  DATE ", "DESCRIPTION", "DEBIT", "CREDIT"])
    assert mapping.as_dict() == {"date": 0, "description": 1, "debit": 2, "credit": 3}


def test_column_claimed_by_earlier_field_is_not_reused():
    # "Operation" could be type or description; type is resolved first.
    mapping = detect_column_mapping(["Date", "Operation", "Montant"])
    assert mapping.type == 1
    assert mapping.description is None


def test_positional_fallback_four_columns():
    mapping = detect_column_mapping(["a", "b", "c", "d"])
    assert mapping.as_dict() == {"date": 0, "debit": 2, "credit": 3}


def test_positional_fallback_three_columns():
    mapping = detect_column_mapping(["a", "b", "c"])
    assert mapping.as_dict() == {"date": 0, "amount": 2}


def test_two_columns_only_guess_date():
    assert detect_column_mapping(["x", "y"]).as_dict() == {"date": 0}


def test_empty_headers_never_raise():
    assert detect_column_mapping([]).as_dict() == {"date": 0}


def test_full_label_with_debit_credit_columns():
    mapping = detect_column_mapping(["Date opération", "Libellé complet", "Débit", "Crédit"])
    assert mapping.as_dict() == {"date": 0, "description": 1, "debit": 2, "credit": 3}
