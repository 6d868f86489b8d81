# Overview: Notification gateway port and its adapters (database inbox, log-only, in-memory).

"""
Only the message and its recipient store are decided here. Push/LINE
delivery reads the store inbox and is handled outside this service.

Callers treat every gateway as best-effort: exceptions are caught and
logged by the dispatcher, never surfaced to the borrow workflow.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..extensions import db
from ..models import StoreNotification
from storelend.logging_config import get_logger

logger = get_logger(__name__)

BACKEND_DATABASE = "database"
BACKEND_LOG = "log"
BACKEND_MEMORY = "memory"


class NotificationGateway(ABC):
    """Abstract interface for store staff notifications."""

    @abstractmethod
    def notify_store(
        self,
        store_id: int,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        exclude_actor_id: Optional[int] = None,
    ) -> None:
        """Deliver a message to the staff group of `store_id`."""
        ...


class DatabaseNotificationGateway(NotificationGateway):
    """Writes one inbox row per message into store_notifications."""

    def notify_store(self, store_id, title, body, data=None, exclude_actor_id=None) -> None:
        row = StoreNotification(
            store_id=store_id,
            title=title,
            body=body,
            data=data or {},
            exclude_user_id=exclude_actor_id,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class LoggingNotificationGateway(NotificationGateway):
    """Logs messages instead of storing them (local development)."""

    def notify_store(self, store_id, title, body, data=None, exclude_actor_id=None) -> None:
        logger.info(
            "Store notification",
            store_id=store_id,
            title=title,
            body=body,
            data=data or {},
            exclude_actor_id=exclude_actor_id,
        )


class InMemoryNotificationGateway(NotificationGateway):
    """Records messages in memory for test assertions."""

    def __init__(self):
        self.sent: list[dict] = []
        self.should_fail = False

    def notify_store(self, store_id, title, body, data=None, exclude_actor_id=None) -> None:
        if self.should_fail:
            raise RuntimeError("Simulated notification failure")
        self.sent.append({
            "store_id": store_id,
            "title": title,
            "body": body,
            "data": data or {},
            "exclude_actor_id": exclude_actor_id,
        })

    def for_store(self, store_id: int) -> list[dict]:
        return [m for m in self.sent if m["store_id"] == store_id]

    def titled(self, title: str) -> list[dict]:
        return [m for m in self.sent if m["title"] == title]

    def reset(self) -> None:
        self.sent.clear()
        self.should_fail = False


def build_notification_gateway(backend: str) -> NotificationGateway:
    """Return the notification gateway configured by name."""
    if backend == BACKEND_DATABASE:
        return DatabaseNotificationGateway()
    if backend == BACKEND_LOG:
        return LoggingNotificationGateway()
    if backend == BACKEND_MEMORY:
        return InMemoryNotificationGateway()
    raise ValueError(f"Unknown notification backend: {backend}")
