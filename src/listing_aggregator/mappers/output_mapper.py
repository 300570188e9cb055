"""Raw extracted records -> canonical StandardListing.

Pipeline per record: field mapping, transformations, defaults, validation,
derivation, identity. Only a transform veto or a failed validation drops a
record; any other per-field problem degrades that field to empty or zero.
Rejections are counted, never raised to the caller.
"""
from __future__ import annotations

import copy
import hashlib
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urljoin

from pydantic import ValidationError

from listing_aggregator.errors import RecordRejected
from listing_aggregator.logging import get_logger
from listing_aggregator.mappers.location import extract_city, extract_neighborhood
from listing_aggregator.models.listing import (
    NUMERIC_FIELDS,
    Coordinates,
    ListingLocation,
    RawListingRecord,
    StandardListing,
)
from listing_aggregator.schemas.base import SourceSchema
from listing_aggregator.schemas.transforms import as_list, digits_to_int

MAX_TEXT_LENGTH = 500

_MISSING = object()


@dataclass
class NormalizationResult:
    listings: list[StandardListing] = field(default_factory=list)
    rejected: int = 0
    reasons: Counter[str] = field(default_factory=Counter)


def get_path(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return default
        node = node[part]
    return node


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Dot-path assignment; a scalar sitting on an intermediate key is replaced by a dict."""
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list | dict | tuple) and not value)


def absolutize(url: Any, base_url: str) -> str:
    """Protocol-relative -> https, root-relative and relative -> provider base."""
    text = str(url or "").strip()
    if not text or text.startswith(("data:", "javascript:", "#")):
        return ""
    if text.startswith("//"):
        return f"https:{text}"
    if text.startswith(("http://", "https://")):
        return text
    return urljoin(base_url.rstrip("/") + "/", text)


def _text(value: Any) -> str:
    if is_empty(value):
        return ""
    return " ".join(str(value).split())[:MAX_TEXT_LENGTH]


def _number(value: Any) -> int:
    return max(digits_to_int(value), 0)


class OutputNormalizer:
    """Converts raw records of one provider into StandardListing objects."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None, logger=None) -> None:
        self.clock = clock or (lambda: datetime.now(UTC))
        self.log = logger or get_logger(__name__)
        self.stats: Counter[str] = Counter()

    def normalize(self, raw: RawListingRecord, schema: SourceSchema) -> StandardListing | None:
        try:
            listing = self._normalize(raw, schema)
        except RecordRejected as e:
            self.stats[f"rejected:{e.reason}"] += 1
            self.log.debug("record_rejected", provider=schema.id, reason=str(e))
            return None
        self.stats["normalized"] += 1
        return listing

    def normalize_many(self, raws: Iterable[RawListingRecord], schema: SourceSchema) -> NormalizationResult:
        result = NormalizationResult()
        for raw in raws:
            try:
                result.listings.append(self._normalize(raw, schema))
            except RecordRejected as e:
                result.rejected += 1
                result.reasons[e.reason] += 1
        self.stats["normalized"] += len(result.listings)
        for reason, count in result.reasons.items():
            self.stats[f"rejected:{reason}"] += count
        if result.rejected:
            self.log.info(
                "records_rejected",
                provider=schema.id,
                rejected=result.rejected,
                reasons=dict(result.reasons),
            )
        return result

    # Pipeline steps

    def _normalize(self, raw: RawListingRecord, schema: SourceSchema) -> StandardListing:
        record = self._map_fields(raw, schema.output_mapping.field_mappings)
        self._transform(record, schema)
        defaulted = self._apply_defaults(record, schema.output_mapping.defaults)
        self._validate(record)
        return self._derive(record, defaulted, schema)

    @staticmethod
    def _map_fields(raw: RawListingRecord, mappings: Mapping[str, str]) -> dict[str, Any]:
        record = copy.deepcopy(dict(raw))
        for source_key, target_path in mappings.items():
            if source_key not in raw or source_key == target_path:
                continue
            value = raw[source_key]
            # Already structured ("location" given as a dict)
            if target_path.startswith(f"{source_key}.") and isinstance(value, Mapping):
                continue
            set_path(record, target_path, copy.deepcopy(value))
        return record

    def _transform(self, record: dict[str, Any], schema: SourceSchema) -> None:
        for path, transform in schema.output_mapping.transformations.items():
            value = get_path(record, path, _MISSING)
            if value is _MISSING:
                continue
            try:
                new_value = transform(value)
            except (TypeError, ValueError, AttributeError) as e:
                self.log.warning("transform_failed", provider=schema.id, field=path, error=str(e))
                set_path(record, path, None)
                continue
            if new_value is None:
                raise RecordRejected("transform_veto", field_name=path)
            set_path(record, path, new_value)

    def _apply_defaults(self, record: dict[str, Any], defaults: Mapping[str, Any], prefix: str = "") -> set[str]:
        """Fill empty fields in place; return the dotted paths that came from defaults."""
        filled: set[str] = set()
        for key, default in defaults.items():
            path = f"{prefix}{key}"
            current = record.get(key)
            if isinstance(default, Mapping) and isinstance(current, dict):
                filled |= self._apply_defaults(current, default, prefix=f"{path}.")
            elif is_empty(current):
                record[key] = copy.deepcopy(dict(default) if isinstance(default, Mapping) else default)
                filled.add(path)
                if isinstance(default, Mapping):
                    filled |= {f"{path}.{k}" for k in default}
        return filled

    @staticmethod
    def _validate(record: Mapping[str, Any]) -> None:
        if not _text(record.get("title")):
            raise RecordRejected("missing_title", field_name="title")
        if _number(record.get("price")) <= 0:
            raise RecordRejected("invalid_price", field_name="price")

    def _derive(self, record: dict[str, Any], defaulted: set[str], schema: SourceSchema) -> StandardListing:
        numbers = {name: _number(record.get(name)) for name in ("price", "admin_fee", *NUMERIC_FIELDS)}
        missing = [name for name in NUMERIC_FIELDS if numbers[name] == 0]
        total_price = numbers["price"] + numbers["admin_fee"]
        area = numbers["area"]

        url = absolutize(record.get("url"), schema.base_url)
        images = [img for img in (absolutize(i, schema.base_url) for i in as_list(record.get("images"))) if img]
        title = _text(record.get("title"))
        scraped_at = self.clock()

        try:
            return StandardListing(
                id=self._listing_id(schema.id, scraped_at, title, url, numbers["price"]),
                title=title,
                price=numbers["price"],
                admin_fee=numbers["admin_fee"],
                total_price=total_price,
                area=area,
                rooms=numbers["rooms"],
                bathrooms=numbers["bathrooms"],
                parking=numbers["parking"],
                stratum=numbers["stratum"],
                property_type=_text(record.get("property_type")) or "Apartamento",
                location=self._location(record.get("location"), defaulted),
                amenities=[_text(a) for a in as_list(record.get("amenities")) if _text(a)],
                images=images,
                url=url,
                source=_text(record.get("source")) or schema.name,
                provider_id=schema.id,
                scraped_at=scraped_at,
                price_per_m2=round(total_price / area) if area > 0 else 0,
                description=_text(record.get("description")),
                is_active=bool(record.get("is_active", True)),
                missing_fields=missing,
            )
        except ValidationError as e:
            raise RecordRejected("invalid_listing", details={"errors": e.errors()}) from e

    @staticmethod
    def _location(value: Any, defaulted: set[str]) -> ListingLocation:
        loc: dict[str, Any] = value if isinstance(value, dict) else {"address": value}
        address = _text(loc.get("address"))

        def pick(name: str, heuristic: Callable[[str], str]) -> str:
            current = _text(loc.get(name))
            if current and f"location.{name}" not in defaulted:
                return current
            return _text(heuristic(address)) or current

        coords = loc.get("coordinates") if isinstance(loc.get("coordinates"), Mapping) else {}
        try:
            coordinates = Coordinates(lat=float(coords.get("lat") or 0), lng=float(coords.get("lng") or 0))
        except (TypeError, ValueError):
            coordinates = Coordinates()
        return ListingLocation(
            address=address,
            neighborhood=pick("neighborhood", extract_neighborhood),
            city=pick("city", extract_city),
            coordinates=coordinates,
        )

    @staticmethod
    def _listing_id(provider_id: str, scraped_at: datetime, title: str, url: str, price: int) -> str:
        digest = hashlib.sha1(f"{title}|{url}|{price}".encode()).hexdigest()[:12]
        return f"{provider_id}_{int(scraped_at.timestamp() * 1000)}_{digest}"
