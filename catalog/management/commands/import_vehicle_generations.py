"""
Management command to replace the reference vehicle generation table.

Reads a JSON file holding a list of objects with the keys
brand, model_range, year_from and optionally year_to, brand_ref_id,
range_ref_id. The whole table is replaced in one transaction.

Usage:
    python manage.py import_vehicle_generations generations.json
    python manage.py import_vehicle_generations generations.json --dry-run
"""

import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from catalog.models import VehicleGeneration

REQUIRED_KEYS = ("brand", "model_range", "year_from")
REF_ID_KEYS = ("brand_ref_id", "range_ref_id")


class Command(BaseCommand):
    help = "Replace the vehicle generation reference table from a JSON file"

    def add_arguments(self, parser):
        parser.add_argument("path", type=str, help="JSON file with generation rows")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Validate the file without changing the table",
        )

    def handle(self, *args, **options):
        path = Path(options["path"])
        if not path.exists():
            raise CommandError(f"File not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise CommandError(f"Invalid JSON in {path}: {e}")

        if not isinstance(data, list):
            raise CommandError("Expected a JSON list of generation objects")

        rows = []
        for index, item in enumerate(data):
            if not isinstance(item, dict):
                raise CommandError(f"Row {index}: expected an object")
            missing = [key for key in REQUIRED_KEYS if not item.get(key)]
            if missing:
                raise CommandError(f"Row {index}: missing {', '.join(missing)}")
            row = {key: str(item[key]).strip() for key in REQUIRED_KEYS}
            row["year_to"] = item.get("year_to")
            for key in REF_ID_KEYS:
                value = item.get(key)
                if value in (None, ""):
                    row[key] = None
                    continue
                try:
                    row[key] = int(value)
                except (TypeError, ValueError):
                    raise CommandError(f"Row {index}: {key} must be an integer, got {value!r}")
            rows.append(row)

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING(f"DRY RUN - {len(rows)} valid row(s), no changes made"))
            return

        count = VehicleGeneration.objects.replace_all(rows)
        self.stdout.write(self.style.SUCCESS(f"Imported {count} vehicle generation(s)"))
