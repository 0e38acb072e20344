"""
Tests for year-range derivation.
"""

from datetime import date

import pytest
from django.test import TestCase
from django.utils import timezone

from catalog.models import BrandEquivalence, ModelEquivalence, Product, VehicleGeneration
from catalog.services.year_range import (
    YearRange,
    YearRangeDeriver,
    derive_year_range,
    format_period,
    month_before,
    parse_period,
)
from catalog.tests.factories import make_product

TODAY = date(2024, 5, 17)


class TestPeriods:
    def test_parse_year_and_month(self):
        assert parse_period("2015.06") == (2015, 6)

    def test_year_only_counts_as_january(self):
        assert parse_period("2015") == (2015, 1)

    @pytest.mark.parametrize("value", ["", "abc", "2015.13", "2015.00"])
    def test_invalid_periods(self, value):
        with pytest.raises(ValueError):
            parse_period(value)

    def test_format_pads_month(self):
        assert format_period(2015, 6) == "2015.06"

    def test_month_before_borrows_a_year(self):
        assert month_before("2015.06") == "2015.05"
        assert month_before("2012.01") == "2011.12"
        assert month_before("2012") == "2011.12"


class TestDeriveYearRange:
    def test_ends_one_month_before_next_generation(self):
        assert derive_year_range(["2010.01", "2015.06"], today=TODAY) == YearRange("2010.01", "2015.05")

    def test_single_generation_runs_until_today(self):
        assert derive_year_range(["2018.03"], today=TODAY) == YearRange("2018.03", "2024.05")

    def test_uses_earliest_generation_regardless_of_input_order(self):
        result = derive_year_range(["2015.06", "2004.09", "2010.01"], today=TODAY)
        assert result == YearRange("2004.09", "2009.12")

    def test_year_only_start_keeps_its_label(self):
        assert derive_year_range(["2004", "2011.03"], today=TODAY) == YearRange("2004", "2011.02")

    def test_no_generations(self):
        assert derive_year_range([], today=TODAY) is None


class TestYearRangeDeriver(TestCase):
    def setUp(self):
        BrandEquivalence.objects.create(supplier_brand="FORD", reference_brand="FORD", is_active=True)
        VehicleGeneration.objects.create(brand="FORD", model_range="FOCUS", year_from="2004.09")
        VehicleGeneration.objects.create(brand="FORD", model_range="FOCUS", year_from="2011.03")
        VehicleGeneration.objects.create(brand="FORD", model_range="FIESTA", year_from="2017.06")
        self.deriver = YearRangeDeriver(today=TODAY)

    def test_matched_product_gets_year_range(self):
        product = make_product(sku="F1", vehicle_brand="FORD", vehicle_model="FOCUS")

        result = self.deriver.run()

        product.refresh_from_db()
        assert product.year_from == "2004.09"
        assert product.year_to == "2011.02"
        assert result.matched == 1
        assert result.unmatched == 0
        assert result.total == 1

    def test_model_label_is_normalized(self):
        product = make_product(sku="F2", vehicle_brand="Ford", vehicle_model="fiesta")

        self.deriver.run()

        product.refresh_from_db()
        assert product.year_from == "2017.06"
        assert product.year_to == "2024.05"

    def test_open_range_ends_in_the_current_month(self):
        product = make_product(sku="F3", vehicle_brand="FORD", vehicle_model="FIESTA")
        before = timezone.localdate()

        YearRangeDeriver().run()

        after = timezone.localdate()
        product.refresh_from_db()
        assert product.year_from == "2017.06"
        assert product.year_to in {format_period(d.year, d.month) for d in (before, after)}

    def test_brand_without_active_equivalence_is_unmatched(self):
        BrandEquivalence.objects.create(supplier_brand="OPEL", reference_brand="OPEL", is_active=False)
        VehicleGeneration.objects.create(brand="OPEL", model_range="ASTRA", year_from="2004")
        product = make_product(sku="O1", vehicle_brand="OPEL", vehicle_model="ASTRA")

        result = self.deriver.run()

        product.refresh_from_db()
        assert product.year_from is None
        assert result.unmatched == 1

    def test_unknown_model_is_unmatched(self):
        product = make_product(sku="F3", vehicle_brand="FORD", vehicle_model="MONDEO")

        result = self.deriver.run()

        product.refresh_from_db()
        assert product.year_from is None
        assert result.to_dict()["message"] == "Matched 0 products, 1 unmatched"

    def test_active_model_equivalence_resolves_the_range(self):
        ModelEquivalence.objects.create(
            supplier_brand="FORD",
            supplier_model="FOCUS II",
            reference_brand="FORD",
            reference_model="FOCUS",
            is_active=True,
        )
        product = make_product(sku="F4", vehicle_brand="FORD", vehicle_model="FOCUS II")

        self.deriver.run()

        product.refresh_from_db()
        assert (product.year_from, product.year_to) == ("2004.09", "2011.02")

    def test_products_without_vehicle_are_skipped(self):
        make_product(sku="X1")

        result = self.deriver.run()

        assert result.total == 0

    def test_restricted_to_product_ids(self):
        first = make_product(sku="F1", vehicle_brand="FORD", vehicle_model="FOCUS")
        second = make_product(sku="F5", vehicle_brand="FORD", vehicle_model="FIESTA")

        result = self.deriver.run(product_ids=[second.id])

        first.refresh_from_db()
        second.refresh_from_db()
        assert result.total == 1
        assert first.year_from is None
        assert second.year_from == "2017.06"

    def test_invalid_generation_period_is_unmatched(self):
        VehicleGeneration.objects.create(brand="FORD", model_range="KUGA", year_from="20X8")
        make_product(sku="K1", vehicle_brand="FORD", vehicle_model="KUGA")

        result = self.deriver.run()

        assert result.unmatched == 1
        assert Product.objects.get(sku="K1").year_from is None
