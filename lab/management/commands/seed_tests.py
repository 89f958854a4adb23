# lab/management/commands/seed_tests.py
import json
from pathlib import Path

from django.core.management.base import BaseCommand

from lab.models import LabTest

CATALOG = Path(__file__).resolve().parents[2] / "fixtures" / "default_tests.json"


class Command(BaseCommand):
    help = "Insert the default test catalog; tests that already exist by name are skipped."

    def add_arguments(self, parser):
        parser.add_argument("--file", default=str(CATALOG))

    def handle(self, *args, **opts):
        with open(opts["file"], encoding="utf-8") as fh:
            rows = json.load(fh)

        existing = {n.lower() for n in LabTest.objects.values_list("name", flat=True)}
        new = []
        for row in rows:
            if row["name"].lower() in existing:
                continue
            existing.add(row["name"].lower())
            new.append(LabTest(
                name=row["name"],
                category=row.get("category", ""),
                description=row.get("description", ""),
                price=row.get("price", 0),
                sample_type=row.get("sampleType", "blood"),
                fasting_required=bool(row.get("fastingRequired")),
                parameters=row.get("parameters", []),
            ))
        LabTest.objects.bulk_create(new)
        self.stdout.write(self.style.SUCCESS(f"seeded {len(new)} tests ({len(rows) - len(new)} already present)"))
