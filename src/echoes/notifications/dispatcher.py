"""Notification dispatching for unlocked memories."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from ..logging import JSONLLogger, get_logger

logger = logging.getLogger(__name__)

MEMORY_ID_KEY = "memoryId"
MEMORY_UNLOCKED_TITLE = "Echo Unlocked"
MEMORY_UNLOCKED_BODY = "You've returned to a place with a memory. Tap to revisit it."


def memory_unlocked_identifier(memory_id: str) -> str:
    """Notification identifier for a memory's unlock notice."""
    return f"memory_unlocked_{memory_id}"


@dataclass(frozen=True)
class Notification:
    """A notification handed to a dispatcher."""

    identifier: str
    title: str
    body: str
    payload: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def memory_id(self) -> str | None:
        return self.payload.get(MEMORY_ID_KEY)


class NotificationAuthorization(Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"


class NotificationDispatcher(ABC):
    """Base interface for notification delivery."""

    @abstractmethod
    async def notify(
        self,
        identifier: str,
        title: str,
        body: str,
        payload: dict[str, str] | None = None,
    ) -> bool:
        """Deliver a notification. Returns whether it was delivered."""
        ...

    def request_authorization(self) -> bool:
        """Ask for permission to deliver. Dispatchers without one grant it."""
        return True


class LocalNotificationCenter(NotificationDispatcher):
    """In-process notification center.

    Keeps delivered notifications, forwards them to subscribed handlers
    and records which memory the user opened from a notification.
    """

    def __init__(
        self,
        auto_grant: bool = True,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.auto_grant = auto_grant
        self.event_log = event_log or get_logger()
        self.authorization_status = NotificationAuthorization.NOT_DETERMINED
        self.delivered: list[Notification] = []
        self.tapped_memory_id: str | None = None
        self._handlers: list[Callable[[Notification], None]] = []

    def add_handler(self, handler: Callable[[Notification], None]) -> None:
        """Subscribe to delivered notifications."""
        self._handlers.append(handler)

    def request_authorization(self) -> bool:
        """Resolve permission once; later calls return the stored answer."""
        if self.authorization_status is NotificationAuthorization.NOT_DETERMINED:
            self.authorization_status = (
                NotificationAuthorization.AUTHORIZED
                if self.auto_grant
                else NotificationAuthorization.DENIED
            )
        return self.authorization_status is NotificationAuthorization.AUTHORIZED

    async def notify(
        self,
        identifier: str,
        title: str,
        body: str,
        payload: dict[str, str] | None = None,
    ) -> bool:
        if self.authorization_status is NotificationAuthorization.DENIED:
            logger.info("Notifications denied, dropping %s", identifier)
            self.event_log.log_notification(
                identifier, False, channel="local", error="notifications denied"
            )
            return False

        notification = Notification(
            identifier=identifier,
            title=title,
            body=body,
            payload=dict(payload or {}),
        )
        self.delivered.append(notification)
        self.event_log.log_notification(identifier, True, channel="local")

        for handler in list(self._handlers):
            try:
                handler(notification)
            except Exception:
                logger.exception("Notification handler failed for %s", identifier)
        return True

    def handle_response(self, payload: dict[str, str]) -> str | None:
        """Record the memory a user opened from a notification.

        Args:
            payload: The payload of the tapped notification.

        Returns:
            The memory id, or None if the payload carries none.
        """
        memory_id = payload.get(MEMORY_ID_KEY)
        if memory_id:
            self.tapped_memory_id = memory_id
        return memory_id

    def consume_tapped_memory_id(self) -> str | None:
        """Return and clear the last tapped memory id."""
        memory_id, self.tapped_memory_id = self.tapped_memory_id, None
        return memory_id
