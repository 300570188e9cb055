"""Tests for search criteria and canonical listing models."""

import pytest
from pydantic import ValidationError

from listing_aggregator.errors import InvalidCriteriaError
from listing_aggregator.models.criteria import Criteria, Operation, parse_criteria
from listing_aggregator.models.listing import StandardListing, canonical_url


class TestCriteria:
    """Test criteria validation and filter key access."""

    def test_defaults(self):
        criteria = Criteria()
        assert criteria.operation is Operation.RENT
        assert criteria.property_types == ["Apartamento"]
        assert criteria.sources is None

    def test_operation_slug(self):
        assert Operation.RENT.slug == "arriendo"
        assert Operation.SALE.slug == "venta"

    def test_inverted_range_rejected(self):
        with pytest.raises(InvalidCriteriaError) as exc:
            parse_criteria({"min_rooms": 4, "max_rooms": 2})
        assert exc.value.errors

    def test_negative_value_rejected(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria({"min_area": -1})

    def test_stratum_bounds(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria({"max_stratum": 7})

    def test_unknown_field_rejected(self):
        with pytest.raises(InvalidCriteriaError):
            parse_criteria({"minRooms": 2})

    def test_invalid_criteria_is_value_error(self):
        with pytest.raises(ValueError):
            parse_criteria({"operation": "lease"})

    def test_parse_passes_through_instances(self):
        criteria = Criteria(min_rooms=1)
        assert parse_criteria(criteria) is criteria

    def test_value_at_dotted_and_alias(self):
        criteria = Criteria(location={"city": "Bogotá", "neighborhoods": ["Chicó"]})
        assert criteria.value_at("location.city") == "Bogotá"
        assert criteria.value_at("neighborhoods") == ["Chicó"]
        assert criteria.value_at("min_rooms") is None

    def test_requested_filters(self):
        criteria = Criteria(min_rooms=3, location={"neighborhoods": ["Chapinero"]})
        assert criteria.requested_filters() == [
            "operation",
            "property_types",
            "min_rooms",
            "location.neighborhoods",
        ]

    def test_frozen(self):
        with pytest.raises(ValidationError):
            Criteria().min_rooms = 2


class TestStandardListing:
    """Test listing invariants and dedup keys."""

    def make(self, **overrides):
        data = dict(id="p_1", title="Apto", price=2_000_000, total_price=2_000_000, source="P", provider_id="p")
        data.update(overrides)
        return StandardListing(**data)

    def test_total_price_invariant(self):
        with pytest.raises(ValidationError):
            self.make(admin_fee=100, total_price=2_000_000)

    def test_price_per_m2_invariant(self):
        with pytest.raises(ValidationError):
            self.make(area=50, price_per_m2=1)
        assert self.make(area=50, price_per_m2=40_000).price_per_m2 == 40_000

    def test_relative_url_rejected(self):
        with pytest.raises(ValidationError):
            self.make(url="/inmueble/1")

    def test_relative_image_rejected(self):
        with pytest.raises(ValidationError):
            self.make(images=["foto.jpg"])

    def test_dedup_key_url(self):
        a = self.make(url="https://www.site.com/inmueble/1/?utm_source=portal&position=3")
        b = self.make(url="http://site.com/inmueble/1#fotos", title="Otro")
        assert a.dedup_key == b.dedup_key

    def test_dedup_key_title_price(self):
        a = self.make(title="Apto Chicó ")
        b = self.make(title="apto chicó")
        assert a.dedup_key == b.dedup_key
        assert a.dedup_key != self.make(title="apto chicó", price=1, total_price=1).dedup_key

    def test_canonical_url(self):
        assert canonical_url("HTTPS://WWW.Site.com/a/b/#mapa") == "site.com/a/b"

    def test_canonical_url_keeps_identifying_query(self):
        assert canonical_url("https://site.com/detalle?id=2&utm_medium=email&a=1") == "site.com/detalle?a=1&id=2"
        assert canonical_url("https://site.com/detalle?id=1") != canonical_url("https://site.com/detalle?id=2")
