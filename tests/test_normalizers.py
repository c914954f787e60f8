from datetime import date, datetime
from decimal import Decimal

import pytest

from household_ledger.cells import to_row
from household_ledger.ingest.normalizers import normalize_rows, parse_amount, parse_date
from household_ledger.models import ColumnMapping

# ---------------------------------------------------------------------------
# parse_date
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("05/03/2024", "2024-03-05"),
        ("5/3/2024", "2024-03-05"),
        ("05-03-2024", "2024-03-05"),
        ("05.03.2024", "2024-03-05"),
        ("2024-03-05", "2024-03-05"),
        ("2024-03-05T10:30:00", "2024-03-05"),
        ("2024/03/05", "2024-03-05"),
        ("05/03/24", "2024-03-05"),
        ("15 nov 2025", "2025-11-15"),
        ("3 juin 2024", "2024-06-03"),
        ("3 juillet 2024", "2024-07-03"),
        ("1 févr. 2024", "2024-02-01"),
        ("12 août 2023", "2023-08-12"),
    ],
)
def test_parse_date_text_formats(value, expected):
    assert parse_date(value) == expected


def test_two_digit_year_pivot():
    assert parse_date("01/01/51") == "1951-01-01"
    assert parse_date("01/01/49") == "2049-01-01"


def test_native_dates_and_serial_numbers():
    assert parse_date(date(2024, 3, 5)) == "2024-03-05"
    assert parse_date(datetime(2024, 3, 5, 12, 0)) == "2024-03-05"
    assert parse_date(45000) == "2023-03-15"
    assert parse_date(45000.75) == "2023-03-15"


@pytest.mark.parametrize("value", ["31/02/2024", "2024", "hello world", "", None])
def test_invalid_dates_raise(value):
    with pytest.raises(ValueError):
        parse_date(value)


# ---------------------------------------------------------------------------
# parse_amount
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1 234,56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("-42,50", Decimal("-42.50")),
        ("42,5 €", Decimal("42.5")),
        ("(12,50)", Decimal("-12.50")),
        ("1 000,00", Decimal("1000.00")),
        ("abc", Decimal(0)),
        ("", Decimal(0)),
        (None, Decimal(0)),
        (-17.3, Decimal("-17.3")),
        (12, Decimal(12)),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


# ---------------------------------------------------------------------------
# normalize_rows
# ---------------------------------------------------------------------------

HEADERS = ("Date", "Libellé", "Débit", "Crédit")
DEBIT_CREDIT = ColumnMapping(date=0, description=1, debit=2, credit=3)


def test_debit_and_credit_columns():
    rows = [
        to_row(["05/03/2024", "CB CARREFOUR", "42,50", None]),
        to_row(["06/03/2024", "VIR SALAIRE", None, "2 100,00"]),
    ]
    parsed, errors = normalize_rows(rows, DEBIT_CREDIT, HEADERS)

    assert errors == []
    assert [(r.date, r.debit, r.credit) for r in parsed] == [
        ("2024-03-05", Decimal("42.50"), Decimal(0)),
        ("2024-03-06", Decimal(0), Decimal("2100.00")),
    ]
    assert parsed[0].amount == Decimal("-42.50")
    assert parsed[1].amount == Decimal("2100.00")
    assert parsed[0].raw == {
        "Date": "05/03/2024",
        "Libellé": "CB CARREFOUR",
        "Débit": "42,50",
        "Crédit": None,
    }


def test_signed_amount_column_splits_into_debit_or_credit():
    mapping = ColumnMapping(date=0, description=1, amount=2)
    rows = [to_row(["05/03/2024", "CB FNAC", "-42,50"]), to_row(["06/03/2024", "AVOIR", "10"])]
    parsed, _ = normalize_rows(rows, mapping, ("Date", "Libellé", "Montant"))
    assert (parsed[0].debit, parsed[0].credit) == (Decimal("42.50"), Decimal(0))
    assert (parsed[1].debit, parsed[1].credit) == (Decimal(0), Decimal(10))


def test_negative_debit_cell_is_made_positive():
    rows = [to_row(["05/03/2024", "CB SNCF", "-30,00", None])]
    parsed, _ = normalize_rows(rows, DEBIT_CREDIT, HEADERS)
    assert parsed[0].debit == Decimal("30.00")
    assert parsed[0].amount == Decimal("-30.00")


def test_blank_rows_are_skipped_and_bad_dates_reported_with_row_numbers():
    rows = [
        to_row(["05/03/2024", "CB CARREFOUR", "1,00", None]),
        to_row([None, "", None, None]),
        to_row(["31/02/2024", "CB BOULANGERIE", "2,00", None]),
        to_row(["Total", "", "3,00", None]),
    ]
    parsed, errors = normalize_rows(rows, DEBIT_CREDIT, HEADERS, first_row_number=4)

    assert [r.row_number for r in parsed] == [4]
    assert [(e.row, e.field) for e in errors] == [(6, "date"), (7, "date")]
    assert errors[0].value == "31/02/2024"
    assert errors[0].message.startswith("Invalid date")


def test_description_falls_back_to_type_then_text_cells_then_date():
    mapping = ColumnMapping(date=0, type=1, description=2, debit=4, credit=5)
    headers = ("Date", "Type", "Libellé", "Note", "Débit", "Crédit")
    rows = [
        to_row(["05/03/2024", "CARTE", "", "", "1,00", None]),
        to_row(["05/03/2024", "", "", "Boulangerie Paul", "1,00", None]),
        to_row(["05/03/2024", "", "", "12345", "1,00", None]),
    ]
    parsed, errors = normalize_rows(rows, mapping, headers)

    assert errors == []
    assert [r.description for r in parsed] == [
        "CARTE",
        "Boulangerie Paul",
        "Transaction du 2024-03-05",
    ]


def test_short_rows_read_missing_cells_as_empty():
    rows = [to_row(["05/03/2024", "CB LIDL"])]
    parsed, errors = normalize_rows(rows, DEBIT_CREDIT, HEADERS)
    assert errors == []
    assert parsed[0].amount == Decimal(0)
    assert parsed[0].raw["Crédit"] is None


def test_unparseable_amount_degrades_to_zero_without_error():
    rows = [to_row(["05/03/2024", "CB LIDL", "n/a", None])]
    parsed, errors = normalize_rows(rows, DEBIT_CREDIT, HEADERS)
    assert errors == []
    assert parsed[0].debit == Decimal(0)


def test_raw_record_is_json_friendly_for_native_cells():
    rows = [to_row([datetime(2024, 3, 5), "CB LIDL", 12.5, None])]
    parsed, _ = normalize_rows(rows, DEBIT_CREDIT, HEADERS)
    assert parsed[0].raw["Date"] == "2024-03-05T00:00:00"
    assert parsed[0].raw["Débit"] == 12.5
