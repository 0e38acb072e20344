"""
Equivalence Resolver.

Proposes brand and model equivalences between the supplier catalog labels
and the reference vehicle-generation taxonomy.

Brands: every (supplier brand, reference brand) pair scoring at or above
the match threshold becomes a BrandEquivalence, unless the pair already
exists. Models: only for brand pairs with an ACTIVE equivalence, every
(supplier model, reference model range) pair is scored the same way.

Records are created with get_or_create against the unique constraints,
so repeated or overlapping runs never duplicate a pair. Existing rows are
never updated or deleted; operators own activation.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Optional, Set

from catalog.models import (
    BrandEquivalence,
    ConfidenceLevel,
    EquivalenceOrigin,
    ModelEquivalence,
    Product,
    VehicleGeneration,
)
from catalog.services.similarity import (
    MatchThresholds,
    confidence_for_score,
    similarity,
)

logger = logging.getLogger(__name__)


@dataclass
class EquivalenceAnalysisResult:
    """Counts of a resolver run."""

    brands_added: int = 0
    models_added: int = 0
    brand_pairs_scored: int = 0
    model_pairs_scored: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "brands_found": self.brands_added,
            "models_found": self.models_added,
            "brand_pairs_scored": self.brand_pairs_scored,
            "model_pairs_scored": self.model_pairs_scored,
        }


class EquivalenceResolver:
    """
    Builds BrandEquivalence and ModelEquivalence records from fuzzy label matches.
    """

    def __init__(self, thresholds: Optional[MatchThresholds] = None):
        self.thresholds = thresholds or MatchThresholds.from_settings()

    def analyze(self) -> EquivalenceAnalysisResult:
        """Run brand analysis, then model analysis for active brand pairs."""
        result = EquivalenceAnalysisResult()

        supplier_models = self._supplier_models_by_brand()
        reference_ranges = self._reference_ranges_by_brand()

        logger.info(
            f"Starting equivalence analysis: {len(supplier_models)} supplier brands, "
            f"{len(reference_ranges)} reference brands"
        )

        self._analyze_brands(set(supplier_models), set(reference_ranges), result)
        self._analyze_models(supplier_models, reference_ranges, result)

        logger.info(
            f"Equivalence analysis complete: {result.brands_added} brands, "
            f"{result.models_added} models added"
        )
        return result

    def _supplier_models_by_brand(self) -> Dict[str, Set[str]]:
        grouped: Dict[str, Set[str]] = defaultdict(set)
        pairs = (
            Product.objects.with_vehicle()
            .values_list("vehicle_brand", "vehicle_model")
            .distinct()
        )
        for brand, model in pairs:
            if brand and model:
                grouped[brand].add(model)
        return grouped

    def _reference_ranges_by_brand(self) -> Dict[str, Set[str]]:
        grouped: Dict[str, Set[str]] = defaultdict(set)
        for brand, model_range in (
            VehicleGeneration.objects.values_list("brand", "model_range").distinct()
        ):
            if brand and model_range:
                grouped[brand].add(model_range)
        return grouped

    def _analyze_brands(
        self,
        supplier_brands: Set[str],
        reference_brands: Set[str],
        result: EquivalenceAnalysisResult,
    ) -> None:
        for supplier_brand in sorted(supplier_brands):
            for reference_brand in sorted(reference_brands):
                result.brand_pairs_scored += 1
                score = similarity(supplier_brand, reference_brand)
                confidence = confidence_for_score(score, self.thresholds)
                if confidence is None:
                    continue

                _, created = BrandEquivalence.objects.get_or_create(
                    supplier_brand=supplier_brand,
                    reference_brand=reference_brand,
                    defaults=self._defaults(confidence),
                )
                if created:
                    result.brands_added += 1
                    logger.info(
                        f"Added brand equivalence: {supplier_brand} <-> "
                        f"{reference_brand} ({confidence}, score={score:.2f})"
                    )

    def _analyze_models(
        self,
        supplier_models: Dict[str, Set[str]],
        reference_ranges: Dict[str, Set[str]],
        result: EquivalenceAnalysisResult,
    ) -> None:
        active_pairs = BrandEquivalence.objects.filter(is_active=True).values_list(
            "supplier_brand", "reference_brand"
        )

        for supplier_brand, reference_brand in active_pairs:
            models = supplier_models.get(supplier_brand, set())
            ranges = reference_ranges.get(reference_brand, set())

            for supplier_model in sorted(models):
                for reference_model in sorted(ranges):
                    result.model_pairs_scored += 1
                    score = similarity(supplier_model, reference_model)
                    confidence = confidence_for_score(score, self.thresholds)
                    if confidence is None:
                        continue

                    _, created = ModelEquivalence.objects.get_or_create(
                        supplier_brand=supplier_brand,
                        supplier_model=supplier_model,
                        reference_brand=reference_brand,
                        reference_model=reference_model,
                        defaults=self._defaults(confidence),
                    )
                    if created:
                        result.models_added += 1
                        logger.info(
                            f"Added model equivalence: {supplier_brand} {supplier_model} <-> "
                            f"{reference_brand} {reference_model} ({confidence})"
                        )

    @staticmethod
    def _defaults(confidence: str) -> Dict[str, object]:
        return {
            "confidence_level": confidence,
            "is_active": confidence == ConfidenceLevel.HIGH,
            "created_by": EquivalenceOrigin.AUTO,
        }


def get_equivalence_resolver() -> EquivalenceResolver:
    """Factory for a resolver configured from Django settings."""
    return EquivalenceResolver()
