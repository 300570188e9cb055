"""First-match-wins extractor chains.

A field is described by two ordered lists of extractors: selector extractors
(CSS text or attribute) and fallback extractors (regular expressions over the
card text). The chain returns the first non-empty selector value; the
fallbacks run when the selectors found nothing or, for numeric fields, when
the selector text is implausibly long (the wrong element was matched).
Numeric fallbacks only accept values inside the field's sanity range.
"""
from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from bs4 import Tag

from listing_aggregator.errors import ExtractionMismatch
from listing_aggregator.schemas.base import CARD_FIELDS, ExtractionConfig

# Inclusive bounds for numbers read out of free text
NUMERIC_RANGES: dict[str, tuple[int, int]] = {
    "area": (20, 1000),
    "rooms": (1, 19),
    "bathrooms": (1, 19),
    "parking": (1, 19),
    "stratum": (1, 6),
}

# Selector hits longer than this on a numeric field are re-checked with regexes
NUMERIC_OVERRIDE_LENGTH = 10

IMAGE_ATTRIBUTES = ("src", "data-src", "srcset")
LINK_ATTRIBUTES = ("href", "data-url")


class Extractor(Protocol):
    def extract(self, card: Tag, text: str) -> str | None:
        ...


@dataclass(frozen=True)
class CssText:
    selector: str

    def extract(self, card: Tag, text: str) -> str | None:
        node = card.select_one(self.selector)
        if node is None:
            return None
        return node.get_text(" ", strip=True) or None


@dataclass(frozen=True)
class CssAttribute:
    """First non-empty attribute of the first matching node (``srcset`` yields its first URL)."""

    selector: str
    attributes: tuple[str, ...]

    def extract(self, card: Tag, text: str) -> str | None:
        node = card.select_one(self.selector)
        if node is None:
            return None
        for name in self.attributes:
            value = node.get(name)
            if isinstance(value, list):
                value = " ".join(value)
            if not value:
                continue
            if name == "srcset":
                value = value.split(",")[0].strip().split(" ")[0]
            value = value.strip()
            if value:
                return value
        return None


@dataclass(frozen=True)
class RegexMatch:
    """First match of a pattern in the card text; group 1 when the pattern has one."""

    pattern: re.Pattern[str]
    bounds: tuple[int, int] | None = None

    def extract(self, card: Tag, text: str) -> str | None:
        match = self.pattern.search(text)
        if match is None:
            return None
        value = match.group(1) if match.re.groups else match.group(0)
        if value is None:
            return None
        if self.bounds is None:
            return value.strip() or None
        number = _parse_number(value)
        if number is None or not self.bounds[0] <= number <= self.bounds[1]:
            return None
        return str(number)


def _parse_number(value: str) -> int | None:
    cleaned = re.sub(r"[^\d.,]", "", value).replace(",", ".")
    if not cleaned:
        return None
    # "1.200" is a thousands separator, "72.5" a decimal
    if re.fullmatch(r"\d{1,3}(?:\.\d{3})+", cleaned):
        cleaned = cleaned.replace(".", "")
    try:
        return int(round(float(cleaned)))
    except ValueError:
        return None


def _first(extractors: Sequence[Extractor], card: Tag, text: str) -> str | None:
    for extractor in extractors:
        value = extractor.extract(card, text)
        if value:
            return value
    return None


@dataclass(frozen=True)
class FieldChain:
    field_name: str
    selectors: tuple[Extractor, ...] = ()
    fallbacks: tuple[Extractor, ...] = ()
    override_length: int | None = None

    def extract(self, card: Tag, text: str) -> str | None:
        value = _first(self.selectors, card, text)
        if value is None or (self.override_length is not None and len(value) > self.override_length):
            corrected = _first(self.fallbacks, card, text)
            if corrected is not None:
                value = corrected
        return value

    def require(self, card: Tag, text: str) -> str:
        value = self.extract(card, text)
        if value is None:
            raise ExtractionMismatch(self.field_name, len(self.selectors) + len(self.fallbacks))
        return value


def selector_extractor(field_name: str, selector: str) -> Extractor:
    if field_name == "images":
        return CssAttribute(selector, IMAGE_ATTRIBUTES)
    if field_name == "link":
        return CssAttribute(selector, LINK_ATTRIBUTES)
    return CssText(selector)


def build_chain(
    field_name: str,
    selectors: Sequence[str] = (),
    patterns: Sequence[re.Pattern[str]] = (),
) -> FieldChain:
    bounds = NUMERIC_RANGES.get(field_name)
    return FieldChain(
        field_name=field_name,
        selectors=tuple(selector_extractor(field_name, s) for s in selectors),
        fallbacks=tuple(RegexMatch(p, bounds) for p in patterns),
        override_length=NUMERIC_OVERRIDE_LENGTH if bounds else None,
    )


def build_chains(extraction: ExtractionConfig) -> Mapping[str, FieldChain]:
    """One chain per card field the schema knows anything about, in CARD_FIELDS order."""
    return {
        name: build_chain(
            name,
            extraction.selectors.get(name, ()),
            extraction.regex_patterns.get(name, ()),
        )
        for name in CARD_FIELDS
        if name in extraction.selectors or name in extraction.regex_patterns
    }
