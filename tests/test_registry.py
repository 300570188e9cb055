"""Tests for the provider registry, bundled schemas and the criteria mapper."""

import pytest

from conftest import make_registry, make_schema
from listing_aggregator.errors import UnknownProviderError
from listing_aggregator.mappers.input_mapper import CriteriaMapper, canonical_filter_key
from listing_aggregator.models.criteria import Criteria
from listing_aggregator.schemas.base import FetchMode, PerformanceBudget, page_query_param
from listing_aggregator.schemas.registry import BUNDLED_PROVIDERS, SchemaRegistry, default_registry

BUNDLED = ["fincaraiz", "metrocuadrado", "mercadolibre", "ciencuadras", "properati", "trovit", "pads"]


# =============================================================================
# Registry
# =============================================================================


class TestSchemaRegistry:
    """Test registry construction and lookup."""

    def test_bundled_providers(self):
        registry = default_registry()
        assert registry.list_providers() == BUNDLED
        assert len(registry) == len(BUNDLED_PROVIDERS)
        assert "trovit" in registry

    def test_unknown_provider(self):
        with pytest.raises(UnknownProviderError) as exc:
            default_registry().get("idealista")
        assert exc.value.provider_id == "idealista"
        assert "fincaraiz" in str(exc.value)

    def test_unknown_provider_is_key_error(self):
        with pytest.raises(KeyError):
            default_registry().resolve(["fincaraiz", "nope"])

    def test_resolve_all_and_subset(self):
        registry = default_registry()
        assert [s.id for s in registry.resolve()] == BUNDLED
        assert [s.id for s in registry.resolve(["trovit", "pads"])] == ["trovit", "pads"]

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            SchemaRegistry([("a", lambda: make_schema("a")), ("a", lambda: make_schema("a"))])

    def test_mismatched_id_rejected(self):
        with pytest.raises(ValueError):
            SchemaRegistry([("a", lambda: make_schema("b"))])

    def test_default_registry_is_cached(self):
        assert default_registry() is default_registry()


class TestBundledSchemas:
    """Test the declarative provider definitions."""

    @pytest.mark.parametrize("provider_id", BUNDLED)
    def test_schema_is_well_formed(self, provider_id):
        schema = default_registry().get(provider_id)
        assert schema.base_url.startswith("https://")
        assert schema.extraction.card_selectors
        assert "title" in schema.extraction.selectors
        assert "price" in schema.extraction.selectors or "price" in schema.extraction.regex_patterns
        assert schema.performance.max_pages >= 1
        assert schema.build_url(Criteria()).startswith(schema.base_url)

    def test_fincaraiz_url(self):
        criteria = Criteria(min_rooms=3, max_price=3_000_000, location={"city": "Bogotá"})
        url = default_registry().get("fincaraiz").build_url(criteria)
        assert url == (
            "https://www.fincaraiz.com.co/arriendo/apartamento/bogota"
            "?min_rooms=3&max_price=3000000&currency=COP"
        )

    def test_metrocuadrado_room_span(self):
        url = default_registry().get("metrocuadrado").build_url(Criteria(min_rooms=2))
        assert url == "https://www.metrocuadrado.com/apartamentos/arriendo/bogota/?habitaciones=2-4&orden=relevancia"

    def test_sale_operation_slug(self):
        url = default_registry().get("ciencuadras").build_url(Criteria(operation="sale"))
        assert url == "https://www.ciencuadras.com/venta/apartamento/bogota"

    def test_mercadolibre_page_offsets(self):
        schema = default_registry().get("mercadolibre")
        search = schema.build_url(Criteria())
        assert schema.input_mapping.page_url(search, 1) == search
        assert schema.input_mapping.page_url(search, 2).endswith("/_Desde_49")
        assert schema.input_mapping.page_url(search, 3).endswith("/_Desde_97")

    def test_page_query_param(self):
        assert page_query_param("https://x.com/s?a=1", 1) == "https://x.com/s?a=1"
        assert page_query_param("https://x.com/s?a=1&page=2", 3) == "https://x.com/s?a=1&page=3"

    def test_static_render_capable_providers(self):
        registry = default_registry()
        for provider_id in ("ciencuadras", "properati"):
            extraction = registry.get(provider_id).extraction
            assert extraction.method is FetchMode.STATIC
            assert extraction.can_render

    def test_budget_min_interval(self):
        budget = PerformanceBudget(
            requests_per_minute=20, delay_between_requests_ms=1000, max_concurrent_requests=1,
            timeout_ms=1000, max_pages=1,
        )
        assert budget.min_interval == 3.0

    def test_budget_rejects_zero_rpm(self):
        with pytest.raises(ValueError):
            PerformanceBudget(
                requests_per_minute=0, delay_between_requests_ms=0, max_concurrent_requests=1,
                timeout_ms=1000, max_pages=1,
            )


# =============================================================================
# Criteria mapper
# =============================================================================


class TestCriteriaMapper:
    """Test plan building and criteria validation."""

    def test_canonical_filter_key(self):
        assert canonical_filter_key("neighborhoods") == "location.neighborhoods"
        assert canonical_filter_key("min_rooms") == "min_rooms"

    def test_plan_collects_present_post_filters(self):
        mapper = CriteriaMapper(default_registry())
        schema = default_registry().get("fincaraiz")
        criteria = Criteria(min_rooms=3, location={"neighborhoods": ["Chapinero"]})

        plan = mapper.build_plan(criteria, schema)

        assert dict(plan.post_filters) == {"min_rooms": 3, "location.neighborhoods": ["Chapinero"]}
        assert plan.method is FetchMode.RENDERED
        assert plan.performance.max_pages == 5
        assert plan.search_url == schema.build_url(criteria)

    @pytest.mark.parametrize("provider_id", BUNDLED)
    def test_stratum_range_is_post_filtered(self, provider_id):
        registry = default_registry()
        plan = CriteriaMapper(registry).build_plan(Criteria(min_stratum=4, max_stratum=5), registry.get(provider_id))
        assert dict(plan.post_filters) == {"min_stratum": 4, "max_stratum": 5}

    def test_plan_is_immutable(self):
        mapper = CriteriaMapper(default_registry())
        plan = mapper.build_plan(Criteria(min_rooms=1), default_registry().get("pads"))
        with pytest.raises(TypeError):
            plan.post_filters["min_rooms"] = 5

    def test_build_plans_for_subset(self):
        plans = CriteriaMapper(default_registry()).build_plans(Criteria(), ["trovit", "pads"])
        assert [p.provider_id for p in plans] == ["trovit", "pads"]

    def test_build_plans_unknown_provider(self):
        with pytest.raises(UnknownProviderError):
            CriteriaMapper(default_registry()).build_plans(Criteria(), ["nope"])

    def test_validate_clean(self):
        report = CriteriaMapper(default_registry()).validate(Criteria(min_rooms=2), "fincaraiz")
        assert report.ok

    def test_validate_warns_on_unexpressible_filter(self):
        criteria = Criteria(preferences={"amenities": ["gimnasio"]})
        report = CriteriaMapper(default_registry()).validate(criteria, "fincaraiz")
        assert not report.ok
        assert "preferences.amenities" in report.warnings[0]

    def test_validate_warns_on_many_post_filters(self):
        registry = make_registry("testsite")
        criteria = Criteria(
            min_rooms=1, max_rooms=4, min_area=40, max_area=120, min_price=1, max_price=5_000_000
        )
        report = CriteriaMapper(registry, post_filter_threshold=5).validate(criteria, "testsite")
        assert any("6 post-filters" in warning for warning in report.warnings)

    def test_validate_unknown_provider(self):
        with pytest.raises(UnknownProviderError):
            CriteriaMapper(default_registry()).validate(Criteria(), "nope")
