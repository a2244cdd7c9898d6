"""WebhookEventRecord model - append-only log of aggregator webhooks."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Text

from database import Base, generate_uuid


class WebhookEventRecord(Base):
    """A single inbound webhook delivery, stored once per message id.

    The unique constraint on ``message_id`` is what makes redelivery
    idempotent: a second insert with the same key fails and is treated
    as a duplicate.
    """

    __tablename__ = "open_banking_webhook_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    message_id = Column(String, unique=True, index=True, nullable=False)
    event_type = Column(String, nullable=False)
    aggregator_customer_id = Column(String, index=True, nullable=True)
    raw_headers = Column(Text, nullable=False, default="{}")  # JSON string
    raw_payload = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    processed_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
