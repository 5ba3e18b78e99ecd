"""Ledger of processed payment webhook events (idempotency by event id)."""

from sqlalchemy import Column, String, DateTime, JSON

from access_core.db_base import Base
from access_core.models.base import generate_uuid, utcnow


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    event_id = Column(String(255), nullable=False, unique=True)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    received_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
