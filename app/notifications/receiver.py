"""
Background receiver contract.

The browser side of Web Push runs in a service worker with no access to
server state. This module pins down what that worker does, as a small
actor that processes one message at a time from its inbox:

    PushReceived(raw)               -> show a platform notification
    NotificationClicked(data, act)  -> dismiss, or focus/navigate a window,
                                       or open a new one

The platform (service worker globals, a test double) is reached only
through the NotificationPlatform protocol, so the contract can be
exercised without a browser.

Usage:
    receiver = BackgroundReceiver(platform, origin="https://app.example.com")
    receiver.post(PushReceived(raw=event_data))
    receiver.post(NotificationClicked(data=notification.data, action=None))
    outcomes = receiver.run()
"""

from __future__ import annotations

import enum
import json
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import singledispatchmethod
from typing import Protocol, runtime_checkable
from urllib.parse import urljoin, urlsplit

from notifications.models import NotificationType
from notifications.payloads import detail_path

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "Orderflow"
DEFAULT_BODY = "You have a new notification"
DEFAULT_URL = "/home"
OPEN_ACTION = "open"
CLOSE_ACTION = "close"


# =============================================================================
# Platform protocol
# =============================================================================


@runtime_checkable
class WindowClient(Protocol):
    """An open app window the worker can control."""

    url: str

    def focus(self) -> None: ...

    def navigate(self, url: str) -> None: ...


@runtime_checkable
class NotificationPlatform(Protocol):
    """What the receiver needs from the environment it runs in."""

    def show_notification(self, notification: PlatformNotification) -> None: ...

    def list_windows(self) -> list[WindowClient]: ...

    def open_window(self, url: str) -> None: ...


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class PushReceived:
    raw: bytes | str | None


@dataclass(frozen=True)
class NotificationClicked:
    data: dict = field(default_factory=dict)
    action: str | None = None


@dataclass(frozen=True)
class PushMessage:
    """A decoded push body with defaults filled in."""

    title: str
    body: str
    icon: str | None = None
    badge: str | None = None
    tag: str | None = None
    data: dict = field(default_factory=dict)

    @classmethod
    def parse(
        cls,
        raw: bytes | str | None,
        app_name: str = DEFAULT_APP_NAME,
        default_body: str = DEFAULT_BODY,
    ) -> PushMessage:
        """
        Decode a push body.

        JSON objects supply any of title/body/icon/badge/tag/data. Any
        other text becomes the body. An empty push gets both defaults.
        """
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        if not raw:
            return cls(title=app_name, body=default_body)

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            decoded = None
        if not isinstance(decoded, dict):
            return cls(title=app_name, body=raw)

        data = decoded.get("data")
        return cls(
            title=decoded.get("title") or app_name,
            body=decoded.get("body") or default_body,
            icon=decoded.get("icon"),
            badge=decoded.get("badge"),
            tag=decoded.get("tag"),
            data=data if isinstance(data, dict) else {},
        )


@dataclass(frozen=True)
class PlatformNotification:
    """What the platform is asked to display."""

    title: str
    body: str
    tag: str
    data: dict
    icon: str | None = None
    badge: str | None = None
    actions: tuple[tuple[str, str], ...] = ((OPEN_ACTION, "Open"), (CLOSE_ACTION, "Close"))
    require_interaction: bool = True


class ClickResult(enum.Enum):
    DISMISSED = "dismissed"
    FOCUSED = "focused"
    OPENED = "opened"


@dataclass(frozen=True)
class ClickOutcome:
    result: ClickResult
    url: str | None = None


# =============================================================================
# Routing
# =============================================================================


def resolve_click_url(data: dict | None, default_url: str = DEFAULT_URL) -> str:
    """
    Pick the route a notification click opens.

    Order: explicit data.url, then a route derived from data.type and
    data.entityId, then orderId/projectId keys, then default_url.
    """
    data = data or {}
    if data.get("url"):
        return data["url"]

    domain = NotificationType.domain_of(data.get("type"))
    if domain is not None:
        return detail_path(domain, data.get("entityId"))

    if data.get("orderId"):
        return detail_path("order", str(data["orderId"]))
    if data.get("projectId"):
        return detail_path("project", str(data["projectId"]))

    return default_url


def _same_origin(url: str, origin: str) -> bool:
    left, right = urlsplit(url), urlsplit(origin)
    return (left.scheme, left.netloc) == (right.scheme, right.netloc)


# =============================================================================
# Actor
# =============================================================================


class BackgroundReceiver:
    """
    Processes push and click messages in arrival order.

    Args:
        platform: NotificationPlatform implementation
        origin: App origin, e.g. "https://app.example.com"
        app_name: Title used when a push has none
        default_body: Body used when a push has none
        default_url: Route opened when a click carries no target
        clock: Returns epoch seconds; used for fallback tags
    """

    def __init__(
        self,
        platform: NotificationPlatform,
        origin: str,
        app_name: str = DEFAULT_APP_NAME,
        default_body: str = DEFAULT_BODY,
        default_url: str = DEFAULT_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.platform = platform
        self.origin = origin.rstrip("/")
        self.app_name = app_name
        self.default_body = default_body
        self.default_url = default_url
        self.clock = clock
        self._inbox: deque = deque()

    def post(self, message) -> None:
        self._inbox.append(message)

    def run(self) -> list:
        """Drain the inbox; returns one result per message."""
        results = []
        while self._inbox:
            results.append(self.handle(self._inbox.popleft()))
        return results

    @singledispatchmethod
    def handle(self, message):
        raise TypeError(f"Unsupported receiver message: {type(message).__name__}")

    @handle.register
    def _(self, message: PushReceived) -> PlatformNotification:
        push = PushMessage.parse(message.raw, self.app_name, self.default_body)
        notification = PlatformNotification(
            title=push.title,
            body=push.body,
            tag=push.tag or f"notification-{int(self.clock() * 1000)}",
            data=push.data,
            icon=push.icon,
            badge=push.badge,
        )
        self.platform.show_notification(notification)
        return notification

    @handle.register
    def _(self, message: NotificationClicked) -> ClickOutcome:
        if message.action == CLOSE_ACTION:
            return ClickOutcome(ClickResult.DISMISSED)

        path = resolve_click_url(message.data, self.default_url)
        url = urljoin(self.origin + "/", path)

        for window in self.platform.list_windows():
            if _same_origin(window.url, self.origin):
                window.navigate(url)
                window.focus()
                return ClickOutcome(ClickResult.FOCUSED, url)

        self.platform.open_window(url)
        return ClickOutcome(ClickResult.OPENED, url)
