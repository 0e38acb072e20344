"""
Tests for the Equivalence Resolver.
"""

from django.test import TestCase

from catalog.models import (
    BrandEquivalence,
    ConfidenceLevel,
    EquivalenceOrigin,
    ModelEquivalence,
    VehicleGeneration,
)
from catalog.services.equivalence_resolver import EquivalenceResolver
from catalog.tests.factories import make_product


def _generation(brand, model_range, year_from):
    return VehicleGeneration.objects.create(brand=brand, model_range=model_range, year_from=year_from)


class TestBrandAnalysis(TestCase):
    def setUp(self):
        make_product(sku="F1", vehicle_brand="FORD", vehicle_model="FOCUS")
        make_product(sku="C1", vehicle_brand="Citroën", vehicle_model="C4")
        _generation("FORD", "FOCUS", "2004.09")
        _generation("CITROEN", "C4", "2004.10")

    def test_exact_matches_create_active_high_equivalences(self):
        result = EquivalenceResolver().analyze()

        assert result.brands_added == 2
        ford = BrandEquivalence.objects.get(supplier_brand="FORD", reference_brand="FORD")
        assert ford.confidence_level == ConfidenceLevel.HIGH
        assert ford.is_active is True
        assert ford.created_by == EquivalenceOrigin.AUTO

        citroen = BrandEquivalence.objects.get(supplier_brand="Citroën")
        assert citroen.reference_brand == "CITROEN"
        assert citroen.is_active is True

    def test_unrelated_brands_are_not_proposed(self):
        result = EquivalenceResolver().analyze()

        assert not BrandEquivalence.objects.filter(
            supplier_brand="FORD", reference_brand="CITROEN"
        ).exists()
        assert result.brand_pairs_scored == 4

    def test_second_run_adds_nothing(self):
        first = EquivalenceResolver().analyze()
        brand_count = BrandEquivalence.objects.count()
        model_count = ModelEquivalence.objects.count()

        second = EquivalenceResolver().analyze()

        assert first.brands_added == 2
        assert second.brands_added == 0
        assert second.models_added == 0
        assert BrandEquivalence.objects.count() == brand_count
        assert ModelEquivalence.objects.count() == model_count

    def test_existing_pair_is_not_modified(self):
        BrandEquivalence.objects.create(
            supplier_brand="FORD",
            reference_brand="FORD",
            confidence_level=ConfidenceLevel.LOW,
            is_active=False,
            created_by=EquivalenceOrigin.MANUAL,
        )

        result = EquivalenceResolver().analyze()

        ford = BrandEquivalence.objects.get(supplier_brand="FORD", reference_brand="FORD")
        assert ford.is_active is False
        assert ford.created_by == EquivalenceOrigin.MANUAL
        assert result.brands_added == 1


class TestLowConfidenceBrands(TestCase):
    def setUp(self):
        make_product(sku="M1", vehicle_brand="MERCEDES", vehicle_model="CLASE C")
        _generation("MERCEDES-BENZ", "CLASE C", "2000.05")

    def test_containment_match_is_low_and_inactive(self):
        result = EquivalenceResolver().analyze()

        assert result.brands_added == 1
        equivalence = BrandEquivalence.objects.get()
        assert equivalence.confidence_level == ConfidenceLevel.LOW
        assert equivalence.is_active is False

    def test_inactive_brand_pairs_get_no_model_analysis(self):
        result = EquivalenceResolver().analyze()

        assert result.models_added == 0
        assert result.model_pairs_scored == 0
        assert not ModelEquivalence.objects.exists()

    def test_models_are_analyzed_once_the_brand_is_activated(self):
        EquivalenceResolver().analyze()
        BrandEquivalence.objects.update(is_active=True)

        result = EquivalenceResolver().analyze()

        assert result.models_added == 1
        model = ModelEquivalence.objects.get()
        assert model.supplier_brand == "MERCEDES"
        assert model.reference_brand == "MERCEDES-BENZ"
        assert model.supplier_model == "CLASE C"
        assert model.reference_model == "CLASE C"
        assert model.is_active is True


class TestModelAnalysis(TestCase):
    def setUp(self):
        make_product(sku="F1", vehicle_brand="FORD", vehicle_model="FOCUS")
        make_product(sku="F2", vehicle_brand="FORD", vehicle_model="FOCUS C-MAX")
        make_product(sku="F3", vehicle_brand="FORD", vehicle_model="KA")
        _generation("FORD", "FOCUS", "2004.09")
        _generation("FORD", "FOCUS", "2011.03")
        _generation("FORD", "FIESTA", "2002.01")

    def test_model_equivalences_carry_both_brands(self):
        result = EquivalenceResolver().analyze()

        focus = ModelEquivalence.objects.get(supplier_model="FOCUS", reference_model="FOCUS")
        assert focus.supplier_brand == "FORD"
        assert focus.reference_brand == "FORD"
        assert focus.confidence_level == ConfidenceLevel.HIGH

        cmax = ModelEquivalence.objects.get(supplier_model="FOCUS C-MAX")
        assert cmax.reference_model == "FOCUS"
        assert cmax.confidence_level == ConfidenceLevel.LOW
        assert cmax.is_active is False

        assert not ModelEquivalence.objects.filter(supplier_model="KA").exists()
        assert result.models_added == 2

    def test_model_analysis_is_idempotent(self):
        EquivalenceResolver().analyze()
        second = EquivalenceResolver().analyze()

        assert second.models_added == 0
        assert ModelEquivalence.objects.count() == 2
