"""
Notification targeting.

Turns a domain event ("order 42 moved to admin_approved, done by user 7
with role engineering") into what should be created: the notification
type, the rendered title/body and who receives it.

Everything in this module is pure. The target map is passed in as an
immutable TargetMap snapshot; loading it from the database and caching
it is TargetMapService's job (services.py).

Resolution:
    1. Look up (domain, status). No rule -> empty resolution, not an error.
    2. Recipient roles are the rule's roles. With include_creator the actor
       is added explicitly, unless the actor's role is already targeted.
    3. Render the template of the mapped type, or a generic fallback.

Target map file format (notifications/data/target_map.json):
    {
        "rules": [
            {"domain": "order", "status": "created",
             "notification_type": "order_created",
             "roles": ["engineering"], "include_creator": false}
        ],
        "templates": [
            {"notification_type": "order_created",
             "title": "New purchase order",
             "body": "Purchase order \"{entity_name}\" was created."}
        ]
    }
"""

from __future__ import annotations

import json
import logging
import string
from dataclasses import asdict, dataclass, field
from pathlib import Path

from core.exceptions import ValidationError

from notifications.models import (
    SOURCE_BY_DOMAIN,
    NotificationDomain,
    NotificationType,
)

DEFAULT_TARGET_MAP_PATH = Path(__file__).resolve().parent / "data" / "target_map.json"

ALLOWED_PLACEHOLDERS = frozenset({"entity_name", "entity_id", "status", "old_status"})

INVALID_TARGET_MAP = "INVALID_TARGET_MAP"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetRule:
    domain: str
    status: str
    notification_type: str
    roles: tuple[str, ...] = ()
    include_creator: bool = False


@dataclass(frozen=True)
class MessageTemplate:
    notification_type: str
    title: str
    body: str = ""


@dataclass(frozen=True)
class TargetMap:
    """
    Immutable snapshot of one target map version.

    Attributes:
        version: Version the rows were loaded from (0 for an empty map)
        rules: (domain, status) -> TargetRule
        templates: notification_type -> MessageTemplate
    """

    version: int = 0
    rules: dict[tuple[str, str], TargetRule] = field(default_factory=dict)
    templates: dict[str, MessageTemplate] = field(default_factory=dict)

    def rule_for(self, domain: str, status: str) -> TargetRule | None:
        return self.rules.get((domain, status))

    def template_for(self, notification_type: str) -> MessageTemplate | None:
        return self.templates.get(notification_type)

    def __len__(self) -> int:
        return len(self.rules)


@dataclass(frozen=True)
class DomainEvent:
    """
    A lifecycle status change in the order or project domain.

    Attributes:
        domain: NotificationDomain value
        status: New status string
        actor_user_id: User who caused the change (None for system changes)
        actor_role: Role of the actor at the time of the change
        entity_id: Id of the order/project
        entity_name: Human name of the order/project used in texts
        old_status: Previous status, if known
    """

    domain: str
    status: str
    entity_id: str
    entity_name: str = ""
    actor_user_id: int | None = None
    actor_role: str | None = None
    old_status: str | None = None

    @property
    def project_source(self) -> str:
        return SOURCE_BY_DOMAIN.get(self.domain, "")

    def to_dict(self) -> dict:
        """JSON-safe form for Celery task arguments."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> DomainEvent:
        return cls(
            domain=data["domain"],
            status=data["status"],
            entity_id=str(data["entity_id"]),
            entity_name=data.get("entity_name") or "",
            actor_user_id=data.get("actor_user_id"),
            actor_role=data.get("actor_role"),
            old_status=data.get("old_status"),
        )


@dataclass(frozen=True)
class TargetResolution:
    """
    Outcome of resolving a DomainEvent.

    An empty resolution (unmapped status, or a rule that targets nobody)
    means no notifications are created.
    """

    notification_type: str | None = None
    title: str = ""
    body: str = ""
    recipient_roles: frozenset[str] = frozenset()
    explicit_recipient_user_ids: frozenset[int] = frozenset()
    version: int = 0

    @property
    def is_empty(self) -> bool:
        return self.notification_type is None or not (
            self.recipient_roles or self.explicit_recipient_user_ids
        )


class NotificationTargetResolver:
    """
    Resolves domain events against a TargetMap.

    Usage:
        resolver = NotificationTargetResolver(target_map)
        resolution = resolver.resolve(event)
        if not resolution.is_empty:
            ...
    """

    def __init__(self, target_map: TargetMap):
        self.target_map = target_map

    def resolve(self, event: DomainEvent) -> TargetResolution:
        rule = self.target_map.rule_for(event.domain, event.status)
        if rule is None:
            return TargetResolution(version=self.target_map.version)

        roles = frozenset(rule.roles)
        explicit: frozenset[int] = frozenset()
        if (
            rule.include_creator
            and event.actor_user_id is not None
            and event.actor_role not in roles
        ):
            explicit = frozenset({event.actor_user_id})

        title, body = self.render(rule.notification_type, event)

        return TargetResolution(
            notification_type=rule.notification_type,
            title=title,
            body=body,
            recipient_roles=roles,
            explicit_recipient_user_ids=explicit,
            version=self.target_map.version,
        )

    def render(self, notification_type: str, event: DomainEvent) -> tuple[str, str]:
        """
        Render title and body for an event.

        Templates written outside parse_target_map (raw SQL, shell edits) may
        still carry bad placeholders; those render the generic text instead.
        """
        context = {
            "entity_name": event.entity_name or event.entity_id,
            "entity_id": event.entity_id,
            "status": event.status,
            "old_status": event.old_status or "",
        }
        fallback = (
            str(NotificationType(notification_type).label),
            f"{context['entity_name']}: {event.status}",
        )
        template = self.target_map.template_for(notification_type)
        if template is None:
            return fallback
        try:
            return template.title.format(**context), template.body.format(**context)
        except (KeyError, IndexError, ValueError, AttributeError) as e:
            logger.warning(
                f"Template for {notification_type} (target map v{self.target_map.version}) "
                f"failed to render, using generic text: {e!r}"
            )
            return fallback


# =============================================================================
# Parsing
# =============================================================================


def check_rule(domain: str, notification_type: str, where: str) -> list[str]:
    """
    Check that a rule maps a known domain to a type that domain can produce.

    Domain types must match the rule's domain; `system` is allowed for any domain.
    """
    errors = []
    if domain not in NotificationDomain.values:
        errors.append(f"{where}: unknown domain '{domain}'")
    if notification_type not in NotificationType.values:
        errors.append(f"{where}: unknown notification type '{notification_type}'")
        return errors
    type_domain = NotificationType.domain_of(notification_type)
    if type_domain is not None and domain in NotificationDomain.values and type_domain != domain:
        errors.append(
            f"{where}: notification type '{notification_type}' belongs to domain "
            f"'{type_domain}', not '{domain}'"
        )
    return errors


def check_placeholders(text: str, where: str) -> list[str]:
    errors = []
    try:
        parsed = list(string.Formatter().parse(text))
    except ValueError as e:
        return [f"{where}: {e}"]
    for _, field_name, _, _ in parsed:
        if field_name is None:
            continue
        if field_name not in ALLOWED_PLACEHOLDERS:
            errors.append(f"{where}: unknown placeholder {{{field_name}}}")
    return errors


def parse_target_map(data: dict, version: int = 0) -> TargetMap:
    """
    Build a TargetMap from its JSON form.

    Raises:
        ValidationError: INVALID_TARGET_MAP listing every problem found
            (unknown domain/type, type from another domain, duplicate
            (domain, status), bad placeholders)
    """
    errors: list[str] = []
    rules: dict[tuple[str, str], TargetRule] = {}
    templates: dict[str, MessageTemplate] = {}

    for index, raw in enumerate(data.get("rules", [])):
        where = f"rules[{index}]"
        try:
            rule = TargetRule(
                domain=raw["domain"],
                status=raw["status"],
                notification_type=raw["notification_type"],
                roles=tuple(raw.get("roles", [])),
                include_creator=bool(raw.get("include_creator", False)),
            )
        except (KeyError, TypeError) as e:
            errors.append(f"{where}: missing {e}")
            continue
        errors.extend(check_rule(rule.domain, rule.notification_type, where))
        if (rule.domain, rule.status) in rules:
            errors.append(f"{where}: duplicate rule for {rule.domain}:{rule.status}")
        rules[(rule.domain, rule.status)] = rule

    for index, raw in enumerate(data.get("templates", [])):
        where = f"templates[{index}]"
        try:
            template = MessageTemplate(
                notification_type=raw["notification_type"],
                title=raw["title"],
                body=raw.get("body", ""),
            )
        except (KeyError, TypeError) as e:
            errors.append(f"{where}: missing {e}")
            continue
        if template.notification_type not in NotificationType.values:
            errors.append(
                f"{where}: unknown notification type '{template.notification_type}'"
            )
        errors.extend(check_placeholders(template.title, f"{where}.title"))
        errors.extend(check_placeholders(template.body, f"{where}.body"))
        templates[template.notification_type] = template

    if errors:
        raise ValidationError(
            "Invalid notification target map",
            error_code=INVALID_TARGET_MAP,
            details={"errors": errors},
        )

    return TargetMap(version=version, rules=rules, templates=templates)


def read_target_map_file(path: Path | str = DEFAULT_TARGET_MAP_PATH) -> dict:
    """
    Read a target map JSON file.

    Raises:
        ValidationError: If the file is unreadable, not valid JSON or not an object
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(
            f"Cannot read target map file {path}: {e}",
            error_code=INVALID_TARGET_MAP,
        ) from e
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Target map file is not valid JSON: {e}",
            error_code=INVALID_TARGET_MAP,
        ) from e
    if not isinstance(data, dict):
        raise ValidationError(
            "Target map file must contain a JSON object",
            error_code=INVALID_TARGET_MAP,
        )
    return data
