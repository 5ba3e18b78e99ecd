"""
Audit trail for payment settlement and capability grants.

REQUIREMENTS:
- Audit logs are append-only (no UPDATE/DELETE)
- Writing an audit event NEVER raises into business logic
- PII fields are redacted before persistence
- Failed writes fall back to the ``audit.fallback`` logger

Audited actions:
- payment.captured (webhook fast path settled an order)
- order.reconciled (reconciliation sweep settled an order)
- order.failed / order.cancelled (terminal negative transitions)
- addon.granted (support or system granted an add-on)
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, FrozenSet, Optional

from sqlalchemy import Column, String, DateTime, JSON, Index
from sqlalchemy.orm import Session

from access_core.db_base import Base

logger = logging.getLogger(__name__)
fallback_logger = logging.getLogger("audit.fallback")


class AuditAction(str, Enum):
    """Enumeration of all auditable actions."""
    PAYMENT_CAPTURED = "payment.captured"
    ORDER_RECONCILED = "order.reconciled"
    ORDER_FAILED = "order.failed"
    ORDER_CANCELLED = "order.cancelled"
    ADDON_GRANTED = "addon.granted"


class AuditActorType(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ADMIN = "admin"
    WEBHOOK = "webhook"


class AuditOutcome(str, Enum):
    """Outcome of the audited action."""
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"


class PIIRedactor:
    """
    Redacts PII fields from audit metadata before persistence.

    Redacted fields are replaced with "[REDACTED]" to maintain
    structure while removing sensitive data.
    """

    REDACTED_FIELDS: FrozenSet[str] = frozenset({
        "email",
        "phone",
        "contact",
        "token",
        "signature",
        "secret",
        "card_number",
        "vpa",
        "bank_account",
    })

    REDACTION_MARKER = "[REDACTED]"

    @classmethod
    def redact(cls, data: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(data, dict):
            return data
        result = {}
        for key, value in data.items():
            if key.lower() in cls.REDACTED_FIELDS:
                result[key] = cls.REDACTION_MARKER
            elif isinstance(value, dict):
                result[key] = cls.redact(value)
            else:
                result[key] = value
        return result


class AuditLog(Base):
    """
    Audit log database model.

    CRITICAL: This table is append-only.
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(255), nullable=False)
    actor_type = Column(String(20), nullable=False)
    actor_id = Column(String(255), nullable=True)  # NULL for system/webhook events
    event_metadata = Column(JSON, nullable=False, default=dict)
    outcome = Column(String(20), nullable=False, default="success")
    correlation_id = Column(String(255), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )


@dataclass
class AuditEvent:
    """Audit event built before writing; metadata is redacted on write."""
    action: AuditAction
    entity_type: str
    entity_id: str
    actor_type: AuditActorType = AuditActorType.SYSTEM
    actor_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    outcome: AuditOutcome = AuditOutcome.SUCCESS
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_type": self.actor_type.value,
            "actor_id": self.actor_id,
            "event_metadata": PIIRedactor.redact(self.metadata),
            "outcome": self.outcome.value,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp,
        }


def write_audit_log_sync(db: Session, event: AuditEvent) -> Optional[AuditLog]:
    """
    Append an audit event and commit.

    On failure, writes to the fallback logger and returns None. Callers
    commit their own business writes before auditing.
    """
    audit_id = str(uuid.uuid4())
    try:
        audit_log = AuditLog(id=audit_id, **event.to_dict())
        db.add(audit_log)
        db.commit()

        logger.info(
            "Audit event recorded",
            extra={
                "audit_id": audit_id,
                "action": event.action.value,
                "entity_type": event.entity_type,
                "entity_id": event.entity_id,
                "correlation_id": event.correlation_id,
            }
        )
        return audit_log

    except Exception as e:
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.error("Audit rollback failed", extra={"error": str(rollback_error)})

        _write_fallback_log(event, audit_id, str(e))
        return None


def _write_fallback_log(event: AuditEvent, audit_id: str, error_reason: str) -> None:
    fallback_entry = {
        "event_id": audit_id,
        "action": event.action.value,
        "entity_type": event.entity_type,
        "entity_id": event.entity_id,
        "actor_type": event.actor_type.value,
        "actor_id": event.actor_id,
        "timestamp": event.timestamp.isoformat(),
        "correlation_id": event.correlation_id,
        "metadata": PIIRedactor.redact(event.metadata),
        "fallback_reason": error_reason,
    }
    fallback_logger.error(
        "Audit log fallback",
        extra={"audit_entry": json.dumps(fallback_entry, default=str)},
    )
