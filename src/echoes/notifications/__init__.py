"""Notification delivery."""

from .dispatcher import (
    LocalNotificationCenter,
    Notification,
    NotificationAuthorization,
    NotificationDispatcher,
    memory_unlocked_identifier,
)

__all__ = [
    "LocalNotificationCenter",
    "Notification",
    "NotificationAuthorization",
    "NotificationDispatcher",
    "memory_unlocked_identifier",
]
