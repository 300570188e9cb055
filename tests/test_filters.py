"""Tests for post-filters applied after normalization."""

import pytest

from listing_aggregator.models.criteria import Criteria
from listing_aggregator.models.listing import ListingLocation, StandardListing
from listing_aggregator.service.filters import (
    apply_post_filters,
    is_wildcard_term,
    matches_neighborhoods,
)


def listing(
    title: str = "Apartamento",
    price: int = 2_000_000,
    admin_fee: int = 0,
    *,
    rooms: int = 2,
    area: int = 60,
    stratum: int = 0,
    neighborhood: str = "",
    address: str = "",
    city: str = "Bogotá",
    url: str = "",
) -> StandardListing:
    total = price + admin_fee
    return StandardListing(
        id=f"t_{title}",
        title=title,
        price=price,
        admin_fee=admin_fee,
        total_price=total,
        area=area,
        rooms=rooms,
        stratum=stratum,
        location=ListingLocation(address=address, neighborhood=neighborhood, city=city),
        url=url,
        source="Test",
        provider_id="testsite",
        price_per_m2=round(total / area) if area else 0,
    )


class TestRangeFilters:
    """Test numeric range predicates."""

    def test_min_rooms(self):
        items = [listing("a", rooms=2), listing("b", rooms=3), listing("c", rooms=4)]
        kept = apply_post_filters(items, {"min_rooms": 3}, Criteria(min_rooms=3))
        assert [item.title for item in kept] == ["b", "c"]

    def test_unknown_value_fails_minimum(self):
        kept = apply_post_filters([listing(area=0)], {"min_area": 50}, Criteria(min_area=50))
        assert kept == []

    def test_unknown_value_passes_maximum(self):
        kept = apply_post_filters([listing(rooms=0)], {"max_rooms": 3}, Criteria(max_rooms=3))
        assert len(kept) == 1

    def test_max_price_uses_total(self):
        item = listing(price=2_400_000, admin_fee=300_000)
        criteria = Criteria(max_price=2_500_000)
        assert apply_post_filters([item], {"max_price": 2_500_000}, criteria) == []

    def test_max_price_with_admin_overage(self):
        item = listing(price=2_400_000, admin_fee=300_000)
        criteria = Criteria(max_price=2_500_000, allow_admin_overage=True)
        assert apply_post_filters([item], {"max_price": 2_500_000}, criteria) == [item]

    def test_min_price_uses_total(self):
        item = listing(price=1_900_000, admin_fee=200_000)
        assert apply_post_filters([item], {"min_price": 2_000_000}, Criteria(min_price=2_000_000)) == [item]

    def test_stratum_range(self):
        low, mid, high = listing("Bajo", stratum=2), listing("Medio", stratum=4), listing("Alto", stratum=6)
        criteria = Criteria(min_stratum=3, max_stratum=5)
        filters = {"min_stratum": 3, "max_stratum": 5}
        assert apply_post_filters([low, mid, high], filters, criteria) == [mid]

    def test_unknown_stratum_fails_minimum_like_other_ranges(self):
        unknown = listing(stratum=0)
        assert apply_post_filters([unknown], {"min_stratum": 3}, Criteria(min_stratum=3)) == []
        assert apply_post_filters([unknown], {"max_stratum": 3}, Criteria(max_stratum=3)) == [unknown]

    def test_unsupported_key_is_ignored(self):
        items = [listing()]
        assert apply_post_filters(items, {"min_amenities": 4}, Criteria()) == items


class TestNeighborhoods:
    """Test neighborhood matching and wildcards."""

    @pytest.mark.parametrize("term", ["*", ".", "?", "$", "x", "  ", "**", "...", "^&"])
    def test_wildcards(self, term):
        assert is_wildcard_term(term)

    def test_real_term_is_not_wildcard(self):
        assert not is_wildcard_term("Chicó")

    def test_accent_insensitive_match(self):
        assert matches_neighborhoods(listing(neighborhood="Chicó Norte"), ["chico"])

    def test_matches_title(self):
        assert matches_neighborhoods(listing("Apartamento en Cedritos"), ["Cedritos"])

    def test_listing_neighborhood_inside_term(self):
        assert matches_neighborhoods(listing(neighborhood="Chapinero"), ["Chapinero Alto"])

    def test_no_match(self):
        assert not matches_neighborhoods(listing(neighborhood="Suba"), ["Usaquén"])

    def test_wildcard_disables_filter(self):
        items = [listing("a", neighborhood="Suba"), listing("b", neighborhood="Bosa")]
        criteria = Criteria(location={"neighborhoods": ["Chapinero", "*"]})
        kept = apply_post_filters(items, {"location.neighborhoods": ["Chapinero", "*"]}, criteria)
        assert kept == items

    def test_filter_keeps_matching(self):
        items = [listing("a", neighborhood="Chapinero"), listing("b", neighborhood="Bosa")]
        criteria = Criteria(location={"neighborhoods": ["chapinero"]})
        kept = apply_post_filters(items, {"location.neighborhoods": ["chapinero"]}, criteria)
        assert [item.title for item in kept] == ["a"]


class TestCityAndType:
    """Test city and property type predicates."""

    def test_city_match_is_accent_insensitive(self):
        criteria = Criteria(location={"city": "bogota"})
        assert apply_post_filters([listing(city="Bogotá")], {"location.city": "bogota"}, criteria)

    def test_city_mismatch(self):
        criteria = Criteria(location={"city": "Cali"})
        assert apply_post_filters([listing(city="Bogotá")], {"location.city": "Cali"}, criteria) == []

    def test_listing_without_location_kept(self):
        criteria = Criteria(location={"city": "Cali"})
        item = listing(city="")
        assert apply_post_filters([item], {"location.city": "Cali"}, criteria) == [item]

    def test_property_types(self):
        criteria = Criteria(property_types=["Casa"])
        assert apply_post_filters([listing()], {"property_types": ["Casa"]}, criteria) == []
