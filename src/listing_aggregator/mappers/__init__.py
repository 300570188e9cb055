"""Input and output mapping between criteria, raw records and listings."""

from listing_aggregator.mappers.input_mapper import CriteriaMapper, FetchPlan, ValidationReport
from listing_aggregator.mappers.output_mapper import NormalizationResult, OutputNormalizer

__all__ = [
    "CriteriaMapper",
    "FetchPlan",
    "NormalizationResult",
    "OutputNormalizer",
    "ValidationReport",
]
