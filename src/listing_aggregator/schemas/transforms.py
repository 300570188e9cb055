"""Reusable field transforms for provider schemas.

A transform receives the mapped raw value and returns the new value. Returning
``None`` vetoes the whole record; raising only drops the field.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from listing_aggregator.schemas.base import Transform

# "$ 2.500.000", "2,500,000", "COP 1800000"
_MONEY = re.compile(r"\d{1,3}(?:[.,]\d{3})+|\d+")
_ROOM_ONLY = re.compile(r"habitaci[oó]n|cuarto|pieza|\broom\b|bedroom", re.I)
_APARTMENT = re.compile(r"apartamento|apartaestudio", re.I)


def digits_to_int(value: Any) -> int:
    """Keep the digits of a value; non-numeric text becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        return int(round(value))
    digits = re.sub(r"\D", "", str(value or ""))
    return int(digits) if digits else 0


def parse_price(value: Any) -> int:
    """First plausible amount in a price label.

    Cards often concatenate rent and admin fee ("$ 2.500.000 $ 320.000"), so
    only the first money-looking run counts.
    """
    if isinstance(value, int | float) and not isinstance(value, bool):
        return int(round(value))
    text = re.sub(r"\$|COP|pesos?", " ", str(value or ""), flags=re.I)
    for match in _MONEY.finditer(text):
        digits = re.sub(r"\D", "", match.group(0))
        if 0 < len(digits) <= 10:
            return int(digits)
    return 0


def rounded_area(value: Any) -> int:
    """Square meters, accepting decimals with either separator ("72,5 m²")."""
    if isinstance(value, int | float) and not isinstance(value, bool):
        return int(round(value))
    match = re.search(r"\d+(?:[.,]\d+)?", str(value or ""))
    if not match:
        return 0
    return int(round(float(match.group(0).replace(",", "."))))


def bounded_count(upper: int, max_text: int = 20) -> Transform:
    """Counts above ``upper`` or parsed from long text are treated as unknown."""

    def transform(value: Any) -> int:
        if isinstance(value, str) and len(value) > max_text:
            return 0
        count = digits_to_int(value)
        return count if 0 < count <= upper else 0

    return transform


def as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(v) for v in value if v]
    return [str(value)]


def web_images(value: Any) -> list[str]:
    """Drop data URIs and placeholders, keeping http(s) and protocol-relative URLs."""
    return [img for img in as_list(value) if img.startswith(("http", "//", "/"))]


def strip_prefix(pattern: str) -> Transform:
    compiled = re.compile(pattern, re.I)

    def transform(value: Any) -> str:
        return compiled.sub("", str(value or "")).strip()

    return transform


def reject_room_rentals(value: Any) -> str | None:
    """Veto single-room offers on providers that should only list whole units."""
    original = str(value or "")
    title = re.sub(r"^Apartamento en (?:arriendo|venta)\s*", "", original, flags=re.I)
    title = re.sub(r"Por\s+[A-Z\s]+\$.*$", "", title).strip()
    if _ROOM_ONLY.search(title) and not _APARTMENT.search(original):
        return None
    return title
