"""Parse master product files (CSV / TSV / semicolon separated).

The first line is a header row. The barcode and product name columns are
found by keyword, so exports from most stock systems load without editing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

BARCODE_HEADER_KEYWORDS = ("barcode", "gtin", "ean", "upc", "code", "sku", "item")
NAME_HEADER_KEYWORDS = ("name", "product", "description", "item", "title", "desc")

MIN_BARCODE_DIGITS = 8

_NON_DIGIT_RE = re.compile(r"\D")


class MasterFileError(ValueError):
    """Raised when a master file cannot be turned into catalog entries."""


@dataclass(frozen=True)
class CatalogEntry:
    gtin: str
    name: str


def detect_delimiter(header: str) -> str:
    if "\t" in header:
        return "\t"
    if ";" in header:
        return ";"
    return ","


def split_line(line: str, delimiter: str) -> list[str]:
    """Split one row, honouring double quotes around cells."""
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    cells.append("".join(current).strip())
    return cells


def _find_column(headers: list[str], keywords: tuple[str, ...]) -> int:
    for i, header in enumerate(headers):
        if any(k in header for k in keywords):
            return i
    return -1


def parse_master_file(content: str) -> list[CatalogEntry]:
    lines = [line for line in re.split(r"\r?\n", content or "") if line.strip()]
    if not lines:
        raise MasterFileError("File is empty")

    delimiter = detect_delimiter(lines[0])
    headers = [h.strip().lower().replace('"', "").replace("'", "") for h in lines[0].split(delimiter)]

    barcode_col = _find_column(headers, BARCODE_HEADER_KEYWORDS)
    name_col = _find_column(headers, NAME_HEADER_KEYWORDS)

    if barcode_col == -1:
        raise MasterFileError("No barcode column found. Expected: Barcode, GTIN, EAN, UPC, or Code")
    if name_col == -1:
        raise MasterFileError("No product name column found. Expected: Name, Product, or Description")

    products: list[CatalogEntry] = []
    for line in lines[1:]:
        cols = split_line(line, delimiter)
        if len(cols) <= max(barcode_col, name_col):
            continue

        barcode = _NON_DIGIT_RE.sub("", cols[barcode_col])
        name = cols[name_col].strip()
        if len(barcode) >= MIN_BARCODE_DIGITS and name:
            products.append(CatalogEntry(gtin=barcode, name=name))

    if not products:
        raise MasterFileError("No valid products found in file")

    return products
