"""Provider-specific corrections applied to each raw record after extraction.

Hooks patch structural quirks the declarative selectors cannot express. Each
hook receives the raw record, the card node and the card text, and fills in
fields that are still empty. They never overwrite a value the chains found.
"""
from __future__ import annotations

import re
from collections.abc import Callable

from bs4 import Tag

from listing_aggregator.models.listing import RawListingRecord

Hook = Callable[[RawListingRecord, Tag, str], None]


def _attr(node: Tag | None, name: str) -> str:
    if node is None:
        return ""
    value = node.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def ciencuadras_link_from_image(record: RawListingRecord, card: Tag, text: str) -> None:
    """Cards are not links; the listing id is embedded in the image path."""
    if record.get("link") or not record.get("images"):
        return
    match = re.search(r"inmuebles/images/(\d+)/", str(record["images"]))
    if match:
        record["link"] = f"https://www.ciencuadras.com/propiedad/{match.group(1)}"


def properati_link(record: RawListingRecord, card: Tag, text: str) -> None:
    if record.get("link"):
        return
    candidates = (
        _attr(card, "data-url"),
        _attr(card.select_one("[data-url]"), "data-url"),
        _attr(card.select_one('a[href*="/detalle/"]'), "href"),
        _attr(card.select_one('a[href*="properati.com"]'), "href"),
    )
    link = next((c for c in candidates if c), "")
    if link:
        record["link"] = link


_TROVIT_PRICE = re.compile(r"(\d{1,3}(?:\.\d{3})+)")
_TROVIT_AREA = re.compile(r"(\d+)\s*m[²2]", re.I)
_TROVIT_ROOMS = re.compile(r"(\d+)\s*(?:alcoba|habitaci[oó]n|dormitorio)", re.I)
_TROVIT_ID = re.compile(r'id="(14032-[a-f0-9-]+)"', re.I)


def trovit_from_text(record: RawListingRecord, card: Tag, text: str) -> None:
    """Trovit snippets expose most values only as loose text."""
    if not record.get("price") and (match := _TROVIT_PRICE.search(text)):
        record["price"] = match.group(1)
    if not record.get("area") and (match := _TROVIT_AREA.search(text)):
        record["area"] = match.group(1)
    if not record.get("rooms") and (match := _TROVIT_ROOMS.search(text)):
        record["rooms"] = match.group(1)
    if not record.get("title"):
        lines = [line.strip() for line in text.split("\n") if len(line.strip()) > 10]
        if lines:
            record["title"] = lines[0][:100]
    if not record.get("images"):
        img = card.select_one("img")
        image = _attr(img, "src") or _attr(img, "data-src")
        if image:
            record["images"] = image
    if not record.get("link") and (match := _TROVIT_ID.search(str(card))):
        record["link"] = f"https://casas.trovit.com.co/detail/{match.group(1)}"


_SLUG_COUNTS = {
    "rooms": re.compile(r"(\d+)-habitaciones", re.I),
    "bathrooms": re.compile(r"(\d+)-banos", re.I),
    "parking": re.compile(r"(\d+)-garajes", re.I),
}


def metrocuadrado_counts_from_url(record: RawListingRecord, card: Tag, text: str) -> None:
    """Listing URLs look like /inmueble/arriendo-apartamento-bogota-chapinero-3-habitaciones-2-banos-1-garajes/..."""
    link = str(record.get("link") or "")
    if not link:
        return
    for name, pattern in _SLUG_COUNTS.items():
        if not record.get(name) and (match := pattern.search(link)):
            record[name] = match.group(1)


HOOKS: dict[str, tuple[Hook, ...]] = {
    "ciencuadras": (ciencuadras_link_from_image,),
    "properati": (properati_link,),
    "trovit": (trovit_from_text,),
    "metrocuadrado": (metrocuadrado_counts_from_url,),
}


def apply_hooks(provider_id: str, record: RawListingRecord, card: Tag, text: str) -> RawListingRecord:
    for hook in HOOKS.get(provider_id, ()):
        hook(record, card, text)
    return record
