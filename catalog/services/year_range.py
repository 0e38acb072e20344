"""
Year-Range Deriver.

Derives the validity window (year_from / year_to) of a product from the
reference generation table. Source data rarely has explicit end dates,
so the end of a generation is taken as one month before the next
generation of the same brand + model range starts. A generation without
successor is considered valid through the current month.

Periods are "YYYY" or "YYYY.MM" strings; a year-only period counts as
January of that year.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from django.utils import timezone

from catalog.models import BrandEquivalence, ModelEquivalence, Product, VehicleGeneration
from catalog.services.similarity import normalize_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearRange:
    year_from: str
    year_to: str


@dataclass
class YearMatchResult:
    """Counts of a year matching run."""

    matched: int = 0
    unmatched: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "matched": self.matched,
            "unmatched": self.unmatched,
            "total": self.total,
            "message": f"Matched {self.matched} products, {self.unmatched} unmatched",
        }


def parse_period(period: str) -> Tuple[int, int]:
    """Parse "2015.06" -> (2015, 6) and "2015" -> (2015, 1)."""
    text = (period or "").strip()
    if not text:
        raise ValueError("Empty period")
    year_part, _, month_part = text.partition(".")
    year = int(year_part)
    month = int(month_part) if month_part else 1
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in period {period!r}")
    return year, month


def format_period(year: int, month: int) -> str:
    return f"{year}.{month:02d}"


def month_before(period: str) -> str:
    """One month before a period, borrowing a year in January."""
    year, month = parse_period(period)
    if month == 1:
        return format_period(year - 1, 12)
    return format_period(year, month - 1)


def derive_year_range(starts: Sequence[str], today: Optional[date] = None) -> Optional[YearRange]:
    """
    Validity window from the start periods of the generations of one
    brand + model range.

    The earliest generation is the candidate. Returns None when there are
    no generations.
    """
    ordered = sorted((s for s in starts if s), key=parse_period)
    if not ordered:
        return None

    year_from = ordered[0]
    if len(ordered) > 1:
        year_to = month_before(ordered[1])
    else:
        today = today or timezone.localdate()
        year_to = format_period(today.year, today.month)
    return YearRange(year_from=year_from, year_to=year_to)


class YearRangeDeriver:
    """
    Writes year_from / year_to onto products whose brand and model resolve
    to a reference brand + model range through active equivalences.
    """

    def __init__(self, today: Optional[date] = None):
        self.today = today

    def run(self, product_ids: Optional[Iterable[int]] = None) -> YearMatchResult:
        result = YearMatchResult()

        products = Product.objects.with_vehicle().only(
            "id", "sku", "vehicle_brand", "vehicle_model"
        )
        if product_ids:
            products = products.filter(id__in=list(product_ids))

        brand_map = self._brand_map()
        model_map = self._model_map()
        generations = self._generations_by_range()

        for product in products:
            result.total += 1

            reference_brand = brand_map.get(normalize_label(product.vehicle_brand))
            if not reference_brand:
                logger.debug(f"No brand equivalence found for {product.vehicle_brand}")
                result.unmatched += 1
                continue

            reference_model = model_map.get(
                (normalize_label(product.vehicle_brand), normalize_label(product.vehicle_model)),
                product.vehicle_model,
            )
            starts = generations.get((reference_brand, normalize_label(reference_model)))
            if not starts:
                logger.debug(f"No model match found for {reference_brand} {product.vehicle_model}")
                result.unmatched += 1
                continue

            try:
                year_range = derive_year_range(starts, today=self.today)
            except ValueError as e:
                logger.warning(f"Invalid generation period for {reference_brand} {reference_model}: {e}")
                result.unmatched += 1
                continue

            Product.objects.filter(id=product.id).update(
                year_from=year_range.year_from,
                year_to=year_range.year_to,
                updated_at=timezone.now(),
            )
            result.matched += 1
            logger.info(
                f"Matched {product.sku} {product.vehicle_brand} {product.vehicle_model}: "
                f"{year_range.year_from} - {year_range.year_to}"
            )

        logger.info(
            f"Year matching complete: {result.matched} matched, "
            f"{result.unmatched} unmatched of {result.total}"
        )
        return result

    def _brand_map(self) -> Dict[str, str]:
        """Normalized supplier brand -> reference brand, active equivalences only."""
        return {
            normalize_label(supplier): reference
            for supplier, reference in BrandEquivalence.objects.filter(
                is_active=True
            ).values_list("supplier_brand", "reference_brand")
        }

    def _model_map(self) -> Dict[Tuple[str, str], str]:
        """(normalized supplier brand, normalized supplier model) -> reference model range."""
        return {
            (normalize_label(brand), normalize_label(model)): reference_model
            for brand, model, reference_model in ModelEquivalence.objects.filter(
                is_active=True
            ).values_list("supplier_brand", "supplier_model", "reference_model")
        }

    def _generations_by_range(self) -> Dict[Tuple[str, str], List[str]]:
        grouped: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        for brand, model_range, year_from in VehicleGeneration.objects.order_by(
            "brand", "model_range", "year_from"
        ).values_list("brand", "model_range", "year_from"):
            grouped[(brand, normalize_label(model_range))].append(year_from)
        return grouped


def get_year_range_deriver() -> YearRangeDeriver:
    return YearRangeDeriver()
