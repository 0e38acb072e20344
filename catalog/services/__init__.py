"""
Services for the Parts Catalog Enrichment Service.

Contains:
- similarity: label normalization and similarity scoring
- equivalence_resolver: brand/model equivalence proposals
- year_range: year-range derivation from the generation table
- abbreviations: supplier abbreviation dictionary
- listing_client: text-generation client for product listings
- batch_worker: batch listing generation over the processing queue
- recovery: recovery supervisor for stalled and pending runs
"""

from catalog.services.abbreviations import DEFAULT_ABBREVIATIONS, expand_abbreviations
from catalog.services.batch_worker import BatchResult, BatchWorker, get_batch_worker
from catalog.services.equivalence_resolver import (
    EquivalenceAnalysisResult,
    EquivalenceResolver,
    get_equivalence_resolver,
)
from catalog.services.listing_client import ListingClient, ListingResult, get_listing_client
from catalog.services.recovery import (
    RecoveryAction,
    RecoveryReport,
    RecoverySupervisor,
    get_recovery_supervisor,
)
from catalog.services.similarity import (
    MatchThresholds,
    confidence_for_score,
    normalize_label,
    similarity,
)
from catalog.services.year_range import (
    YearMatchResult,
    YearRange,
    YearRangeDeriver,
    derive_year_range,
    get_year_range_deriver,
)

__all__ = [
    "DEFAULT_ABBREVIATIONS",
    "expand_abbreviations",
    "BatchResult",
    "BatchWorker",
    "get_batch_worker",
    "EquivalenceAnalysisResult",
    "EquivalenceResolver",
    "get_equivalence_resolver",
    "ListingClient",
    "ListingResult",
    "get_listing_client",
    "RecoveryAction",
    "RecoveryReport",
    "RecoverySupervisor",
    "get_recovery_supervisor",
    "MatchThresholds",
    "confidence_for_score",
    "normalize_label",
    "similarity",
    "YearMatchResult",
    "YearRange",
    "YearRangeDeriver",
    "derive_year_range",
    "get_year_range_deriver",
]
