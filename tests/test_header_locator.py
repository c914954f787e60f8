from household_ledger.cells import to_row
from household_ledger.ingest.header_locator import find_header_row, keyword_matches


def sheet(*rows):
    return [to_row(r) for r in rows]


def test_skips_title_rows_to_keyword_header():
    s = sheet(
        ["Relevé de compte"],
        ["Période du 01/03 au 31/03", "", ""],
        ["Date", "Libellé", "Débit", "Crédit"],
        ["05/03/2024", "CB CARREFOUR", "42,50", ""],
    )
    assert find_header_row(s) == 2


def test_falls_back_to_first_row_with_three_cells():
    s = sheet(
        ["Export"],
        ["a", "b", "c"],
        ["x", "y", "z"],
    )
    assert find_header_row(s) == 1


def test_defaults_to_zero_when_nothing_qualifies():
    s = sheet(["only"], ["two", "cells"])
    assert find_header_row(s) == 0


def test_keywords_count_once_per_category():
    # "débit" and "debit" are the same keyword category.
    s = sheet(
        ["Débit", "debit", "xyz"],
        ["Date", "Montant", "Notes"],
    )
    assert find_header_row(s) == 1


def test_scan_limited_to_max_rows():
    title = [["t"]] * 3
    s = sheet(*title, ["Date", "Libellé", "Montant"])
    assert find_header_row(s, max_rows=3) == 0
    assert find_header_row(s, max_rows=4) == 3


def test_keyword_matches_on_folded_text():
    found = keyword_matches("date operation libelle montant")
    assert found >= {"date", "operation", "label", "amount"}


def test_blank_first_row_is_skipped():
    s = sheet(
        [None, "", "  "],
        ["Date", "Libellé", "Montant"],
        ["05/03/2024", "CB CARREFOUR", "-42,50"],
    )
    assert find_header_row(s) == 1
