"""Build small bank statement files on disk for ingestion tests."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook

# A typical French export: two title rows, then headers, then data.
STATEMENT_ROWS: list[list[Any]] = [
    ["Relevé de compte", None, None, None],
    ["Compte courant n° 12345", None, None, None],
    ["Date opération", "Libellé", "Débit", "Crédit"],
    ["05/03/2024", "CB CARREFOUR MARKET 04/03", "42,50", None],
    ["06/03/2024", "VIR SEPA SALAIRE ACME", None, "2 100,00"],
    ["07/03/2024", "CB CINEMA PATHE BEAUGRENELLE", "11,90", None],
    ["08/03/2024", "PRLV SEPA NETFLIX", "13,49", None],
]


def write_xlsx(path: Path, rows: Sequence[Sequence[Any]]) -> Path:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    wb.save(path)
    return path


def write_csv(path: Path, rows: Sequence[Sequence[Any]], *, delimiter: str = ";") -> Path:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        for row in rows:
            writer.writerow(["" if v is None else v for v in row])
    return path
