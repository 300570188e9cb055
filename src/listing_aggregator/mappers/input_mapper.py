"""Criteria -> per-provider FetchPlan."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from listing_aggregator.config import POST_FILTER_WARNING_THRESHOLD
from listing_aggregator.logging import get_logger
from listing_aggregator.models.criteria import FILTER_ALIASES, Criteria, is_present
from listing_aggregator.schemas.base import FetchMode, PerformanceBudget, SourceSchema
from listing_aggregator.schemas.registry import SchemaRegistry, default_registry


@dataclass(frozen=True)
class FetchPlan:
    """What one provider run needs: where to start, how to fetch, what to re-check."""

    provider_id: str
    search_url: str
    method: FetchMode
    post_filters: Mapping[str, Any]
    performance: PerformanceBudget


@dataclass
class ValidationReport:
    provider_id: str
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def canonical_filter_key(key: str) -> str:
    return FILTER_ALIASES.get(key, key)


class CriteriaMapper:
    """Turns generic criteria into provider fetch plans."""

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        *,
        post_filter_threshold: int = POST_FILTER_WARNING_THRESHOLD,
        logger=None,
    ) -> None:
        self.registry = registry or default_registry()
        self.post_filter_threshold = post_filter_threshold
        self.log = logger or get_logger(__name__)

    def build_plan(self, criteria: Criteria, schema: SourceSchema) -> FetchPlan:
        post_filters: dict[str, Any] = {}
        for key in schema.input_mapping.requires_post_filtering:
            value = criteria.value_at(key)
            if is_present(value):
                post_filters[canonical_filter_key(key)] = value
        plan = FetchPlan(
            provider_id=schema.id,
            search_url=schema.build_url(criteria),
            method=schema.extraction.method,
            post_filters=MappingProxyType(post_filters),
            performance=schema.performance,
        )
        self.log.debug(
            "plan_built",
            provider=schema.id,
            url=plan.search_url,
            method=plan.method.value,
            post_filters=sorted(post_filters),
        )
        return plan

    def build_plans(
        self, criteria: Criteria, provider_ids: Iterable[str] | None = None
    ) -> list[FetchPlan]:
        return [self.build_plan(criteria, schema) for schema in self.registry.resolve(provider_ids)]

    def validate(self, criteria: Criteria, provider_id: str) -> ValidationReport:
        """Non-fatal checks of what a provider can honor for these criteria."""
        schema = self.registry.get(provider_id)
        mapping = schema.input_mapping
        expressible = {canonical_filter_key(k) for k in mapping.supported_filters}
        expressible |= {canonical_filter_key(k) for k in mapping.requires_post_filtering}
        report = ValidationReport(provider_id=provider_id)

        for key in criteria.requested_filters():
            if key not in expressible:
                report.warnings.append(
                    f"Filter '{key}' is not supported by {schema.name} and will be ignored"
                )

        post_count = sum(
            1 for key in mapping.requires_post_filtering if is_present(criteria.value_at(key))
        )
        if post_count > self.post_filter_threshold:
            report.warnings.append(
                f"{schema.name} needs {post_count} post-filters; many scraped listings may be discarded"
            )
        if report.warnings:
            self.log.info("criteria_warnings", provider=provider_id, warnings=report.warnings)
        return report
