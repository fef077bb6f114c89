import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from api.management.validators import validate_template_data
from api.models import Template


DEFAULT_FILE = Path(__file__).resolve().parents[2] / "fixtures" / "starter_templates.json"


class Command(BaseCommand):
    help = "Load website templates from JSON, creating or updating them by name"
    #usage: python manage.py seed_templates [--file path/to/templates.json]

    def add_arguments(self, parser):
        parser.add_argument('--file', type=str, default=str(DEFAULT_FILE), help='Path to the template JSON file')

    def handle(self, *args, **options):
        json_file = options['file']

        try:
            with open(json_file, encoding='utf-8') as f:
                templates = json.load(f)
        except FileNotFoundError:
            raise CommandError(f"JSON file not found: {json_file}")
        except json.JSONDecodeError as e:
            raise CommandError(f"Invalid JSON in {json_file}: {e}")

        try:
            validate_template_data(templates)
        except ValueError as e:
            raise CommandError(f"Validation error: {e}")

        created_count = updated_count = 0

        with transaction.atomic():
            for item in templates:
                defaults = {
                    "description": item.get("description", ""),
                    "category": item["category"],
                    "thumbnail": item.get("thumbnail", ""),
                    "content": item["content"],
                    "styles": item.get("styles", ""),
                    "is_default": item.get("is_default", False),
                }
                if "settings" in item:
                    defaults["settings"] = item["settings"]

                _, created = Template.objects.update_or_create(name=item["name"], defaults=defaults)
                if created:
                    created_count += 1
                else:
                    updated_count += 1

        self.stdout.write(self.style.SUCCESS(
            f"Loaded {len(templates)} templates ({created_count} created, {updated_count} updated)"
        ))
