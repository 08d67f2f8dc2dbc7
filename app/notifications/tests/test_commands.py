"""
Tests for the load_target_map management command.
"""

import json
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from notifications.models import NotificationTargetRule
from notifications.services import TargetMapService

VALID_MAP = {
    "rules": [
        {
            "domain": "order",
            "status": "closed",
            "notification_type": "order_closed",
            "roles": ["admin"],
        }
    ],
    "templates": [
        {"notification_type": "order_closed", "title": "Order {entity_name} closed"}
    ],
}


@pytest.fixture
def map_file(tmp_path):
    path = tmp_path / "target_map.json"
    path.write_text(json.dumps(VALID_MAP), encoding="utf-8")
    return path


class TestLoadTargetMap:
    """
    Verifies:
    - A valid file becomes the next active version
    - --dry-run validates without writing
    - Invalid files fail with every error listed
    """

    def test_stores_new_version(self, db, map_file):
        out = StringIO()

        call_command("load_target_map", str(map_file), stdout=out)

        assert "Stored target map v2" in out.getvalue()
        target_map = TargetMapService.get_target_map()
        assert target_map.version == 2
        assert len(target_map) == 1

    def test_dry_run(self, db, map_file):
        out = StringIO()

        call_command("load_target_map", str(map_file), "--dry-run", stdout=out)

        assert "is valid (1 rules, 1 templates)" in out.getvalue()
        assert TargetMapService.active_version() == 1
        assert not NotificationTargetRule.objects.filter(version=2).exists()

    def test_invalid_file(self, db, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text(
            json.dumps({"rules": [{"domain": "order", "status": "x", "notification_type": "nope"}]}),
            encoding="utf-8",
        )

        with pytest.raises(CommandError, match="unknown notification type 'nope'"):
            call_command("load_target_map", str(path))

        assert TargetMapService.active_version() == 1

    def test_bundled_map_by_default(self, db):
        call_command("load_target_map", stdout=StringIO())

        assert TargetMapService.active_version() == 2
        assert len(TargetMapService.get_target_map()) == 13
