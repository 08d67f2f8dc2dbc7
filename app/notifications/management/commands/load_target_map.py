"""
Load a notification target map JSON file as a new active version.

Usage:
    python manage.py load_target_map
    python manage.py load_target_map path/to/target_map.json --dry-run
"""

from django.core.management.base import BaseCommand, CommandError

from core.exceptions import ValidationError

from notifications.services import TargetMapService
from notifications.targeting import (
    DEFAULT_TARGET_MAP_PATH,
    parse_target_map,
    read_target_map_file,
)


class Command(BaseCommand):
    help = "Validate a notification target map file and store it as a new version."

    def add_arguments(self, parser):
        parser.add_argument(
            "path",
            nargs="?",
            default=str(DEFAULT_TARGET_MAP_PATH),
            help="Target map JSON file (defaults to the bundled map)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Validate only, do not store",
        )

    def handle(self, *args, **options):
        path = options["path"]
        try:
            target_map = parse_target_map(read_target_map_file(path))
        except ValidationError as e:
            errors = e.details.get("errors") if e.details else None
            raise CommandError(
                f"{e.message}: {'; '.join(errors)}" if errors else e.message
            ) from e

        summary = f"{len(target_map.rules)} rules, {len(target_map.templates)} templates"
        if options["dry_run"]:
            self.stdout.write(f"{path} is valid ({summary})")
            return

        version = TargetMapService.store(target_map)
        self.stdout.write(self.style.SUCCESS(f"Stored target map v{version} ({summary})"))
