"""Notification dispatch for the auth client.

Components receive a NotificationCenter explicitly and publish user-facing
messages through it; whatever renders them (a terminal, a GUI toast, a test)
subscribes as a listener.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ALERT = "alert"


@dataclass(slots=True, frozen=True)
class Notification:
    type: NotificationType
    title: str
    message: str


NotificationListener = Callable[[Notification], None]


class NotificationCenter:
    """Fans notifications out to registered listeners."""

    def __init__(self) -> None:
        self._listeners: List[NotificationListener] = []

    def add_listener(self, listener: NotificationListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: NotificationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, type: NotificationType, title: str, message: str) -> Notification:
        notification = Notification(type=type, title=title, message=message)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("Error notifying listener")
        return notification

    def info(self, title: str, message: str) -> Notification:
        return self.notify(NotificationType.INFO, title, message)

    def success(self, title: str, message: str) -> Notification:
        return self.notify(NotificationType.SUCCESS, title, message)

    def alert(self, title: str, message: str) -> Notification:
        return self.notify(NotificationType.ALERT, title, message)
