# Overview: Audit recorder port and its adapters (database, log-only, in-memory).

"""
Audit invariants

- Append-only: no updates or deletes of recorded facts.
- No domain logic here; callers decide what to record.
- Recording happens after the borrow transition has committed. A failed
  record is logged by the dispatcher and never undoes the transition.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..extensions import db
from ..models import AuditEvent
from storelend.logging_config import get_logger

logger = get_logger(__name__)

BORROW_REQUESTED = "BORROW_REQUESTED"
BORROW_APPROVED = "BORROW_APPROVED"
BORROW_REJECTED = "BORROW_REJECTED"
BORROW_POS_CONFIRMED = "BORROW_POS_CONFIRMED"
BORROW_COMPLETED = "BORROW_COMPLETED"
BORROW_PHOTO_UPLOADED = "BORROW_PHOTO_UPLOADED"


@dataclass(frozen=True)
class EntityRef:
    entity_type: str
    entity_id: int

    @classmethod
    def borrow(cls, borrow_id: int) -> "EntityRef":
        return cls("borrow", borrow_id)


class AuditRecorder(ABC):
    """Abstract interface for audit fact storage."""

    @abstractmethod
    def record(
        self,
        store_id: int,
        action_type: str,
        entity_ref: EntityRef,
        payload: Optional[dict[str, Any]],
        actor_id: Optional[int],
    ) -> None:
        ...


class DatabaseAuditRecorder(AuditRecorder):
    def record(self, store_id, action_type, entity_ref, payload, actor_id) -> None:
        ev = AuditEvent(
            store_id=store_id,
            action_type=action_type,
            entity_type=entity_ref.entity_type,
            entity_id=entity_ref.entity_id,
            actor_user_id=actor_id,
            payload=payload,
        )
        db.session.add(ev)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class LoggingAuditRecorder(AuditRecorder):
    def record(self, store_id, action_type, entity_ref, payload, actor_id) -> None:
        logger.info(
            "Audit event",
            store_id=store_id,
            action_type=action_type,
            entity_type=entity_ref.entity_type,
            entity_id=entity_ref.entity_id,
            actor_id=actor_id,
            payload=payload,
        )


class InMemoryAuditRecorder(AuditRecorder):
    """Records audit facts in memory for test assertions."""

    def __init__(self):
        self.events: list[dict] = []
        self.should_fail = False

    def record(self, store_id, action_type, entity_ref, payload, actor_id) -> None:
        if self.should_fail:
            raise RuntimeError("Simulated audit failure")
        self.events.append({
            "store_id": store_id,
            "action_type": action_type,
            "entity_type": entity_ref.entity_type,
            "entity_id": entity_ref.entity_id,
            "payload": payload,
            "actor_id": actor_id,
        })

    def of_type(self, action_type: str) -> list[dict]:
        return [e for e in self.events if e["action_type"] == action_type]

    def reset(self) -> None:
        self.events.clear()
        self.should_fail = False


def build_audit_recorder(backend: str) -> AuditRecorder:
    """Return the audit recorder configured by name."""
    if backend == "database":
        return DatabaseAuditRecorder()
    if backend == "log":
        return LoggingAuditRecorder()
    if backend == "memory":
        return InMemoryAuditRecorder()
    raise ValueError(f"Unknown audit backend: {backend}")
