# Overview: Human-readable identifiers for products (PRD-) and invoices (INV-).

"""
Identifier formatting

Display ids are the numeric id zero-padded to 8 digits behind a prefix,
e.g. INV-00000042. Purely presentational: storage keeps the numeric id.
"""

from __future__ import annotations

import re
from typing import Iterable

INVOICE_PREFIX = "INV"
PRODUCT_PREFIX = "PRD"
ID_WIDTH = 8

_ID_PATTERN = re.compile(r"^\s*([A-Za-z]+)-(\d+)\s*$")


def format_id(numeric_id: int | str, prefix: str) -> str:
    """format_id(42, "INV") -> "INV-00000042"."""
    return f"{prefix}-{str(numeric_id).zfill(ID_WIDTH)}"


def parse_id(value: str, prefix: str | None = None) -> int:
    """
    Recover the numeric id from a formatted identifier.

    Raises ValueError on malformed input or, when `prefix` is given, on a
    prefix mismatch (case-insensitive).
    """
    match = _ID_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Malformed identifier: {value!r}")
    found_prefix, digits = match.groups()
    if prefix is not None and found_prefix.upper() != prefix.upper():
        raise ValueError(f"Expected {prefix}- identifier, got {value!r}")
    return int(digits)


def invoice_number(sale_id: int) -> str:
    return format_id(sale_id, INVOICE_PREFIX)


def next_product_code(codes: Iterable[str | None]) -> str:
    """Next PRD- code: highest numeric suffix among existing PRD- codes + 1."""
    highest = 0
    for code in codes:
        if not code or not code.startswith(f"{PRODUCT_PREFIX}-"):
            continue
        try:
            number = parse_id(code, PRODUCT_PREFIX)
        except ValueError:
            continue
        highest = max(highest, number)
    return format_id(highest + 1, PRODUCT_PREFIX)
