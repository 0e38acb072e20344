"""
Management command to derive product year ranges.

Usage:
    python manage.py match_vehicle_years                    # All products
    python manage.py match_vehicle_years --product-id=12 --product-id=15
"""

from django.core.management.base import BaseCommand

from catalog.services.year_range import get_year_range_deriver


class Command(BaseCommand):
    help = "Write year_from / year_to onto products from the reference generation table"

    def add_arguments(self, parser):
        parser.add_argument(
            "--product-id",
            type=int,
            action="append",
            dest="product_ids",
            help="Restrict matching to this product (repeatable)",
        )

    def handle(self, *args, **options):
        result = get_year_range_deriver().run(product_ids=options["product_ids"])
        self.stdout.write(self.style.SUCCESS(result.to_dict()["message"]))
