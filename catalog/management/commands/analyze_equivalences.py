"""
Management command to propose brand and model equivalences.

Usage:
    python manage.py analyze_equivalences
"""

from django.core.management.base import BaseCommand

from catalog.services.equivalence_resolver import get_equivalence_resolver


class Command(BaseCommand):
    help = "Match supplier brand/model labels against the reference generation table"

    def handle(self, *args, **options):
        result = get_equivalence_resolver().analyze()

        self.stdout.write(f"Brand pairs scored: {result.brand_pairs_scored}")
        self.stdout.write(f"Model pairs scored: {result.model_pairs_scored}")
        self.stdout.write(
            self.style.SUCCESS(
                f"Added {result.brands_added} brand and {result.models_added} model equivalence(s)"
            )
        )
