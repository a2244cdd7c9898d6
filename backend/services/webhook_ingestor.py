"""Webhook ingestion - verify, deduplicate, persist, then route.

The aggregator delivers at least once; the unique ``message_id`` on
:class:`~models.WebhookEventRecord` turns that into at-most-once state
change locally. A failed insert on that constraint is a duplicate, not
an error.
"""

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import WebhookEventRecord
from services.linkage_state_machine import EVENT_PING, LinkageStateMachine, WebhookEvent
from services.webhook_signature import WebhookSignatureVerifier

logger = logging.getLogger(__name__)

MESSAGE_ID_HEADER = "x-mastercard-webhook-message-id"


class WebhookValidationError(ValueError):
    """The webhook body is not valid JSON or lacks mandatory fields."""


@dataclass
class IngestResult:
    """Outcome reported back to the aggregator."""

    event_id: str
    processed: bool = False
    duplicate: bool = False
    verified: bool = False
    received: bool = True


def _generated_key() -> str:
    return f"generated-{uuid.uuid4().hex}"


def parse_event(raw_body: bytes) -> WebhookEvent:
    """Parse and validate a webhook body.

    Raises:
        WebhookValidationError: malformed JSON or missing mandatory fields.
    """
    try:
        data = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise WebhookValidationError("Invalid JSON body") from exc

    if not isinstance(data, dict):
        raise WebhookValidationError("Webhook body must be a JSON object")

    event_type = data.get("eventType")
    if not isinstance(event_type, str) or not event_type:
        raise WebhookValidationError("Missing eventType")

    event_id = data.get("eventId")
    customer_id = data.get("customerId")
    if event_type != EVENT_PING:
        missing = [name for name, value in (("eventId", event_id), ("customerId", customer_id)) if value in (None, "")]
        if missing:
            raise WebhookValidationError(f"Missing required fields: {', '.join(missing)}")

    payload = data.get("payload")
    return WebhookEvent(
        event_type=event_type,
        event_id=str(event_id) if event_id not in (None, "") else None,
        customer_id=str(customer_id) if customer_id not in (None, "") else None,
        payload=payload if isinstance(payload, dict) else {},
    )


class WebhookIngestor:
    """Receives aggregator webhooks and hands new events to the state machine."""

    def __init__(self, verifier: WebhookSignatureVerifier, state_machine: LinkageStateMachine):
        self._verifier = verifier
        self._state_machine = state_machine

    @staticmethod
    def idempotency_key(headers: Mapping[str, str], event: WebhookEvent) -> str:
        """Message-id header, else the event id, else a generated key."""
        lowered = {k.lower(): v for k, v in headers.items()}
        return lowered.get(MESSAGE_ID_HEADER) or event.event_id or _generated_key()

    def ingest(self, db: Session, raw_body: bytes, headers: Mapping[str, str]) -> IngestResult:
        """Ingest one delivery.

        Commits the event record before routing so the audit log survives
        a routing failure. Routing errors are logged and swallowed; only
        :class:`WebhookValidationError` escapes.
        """
        event = parse_event(raw_body)

        if event.event_type == EVENT_PING:
            logger.info("Webhook ping acknowledged")
            return IngestResult(event_id=event.event_id or _generated_key())

        verified = self._verifier.verify(raw_body, headers)
        if not verified:
            logger.warning(
                "Webhook %s (%s) failed signature verification; processing as unverified",
                event.event_id, event.event_type,
            )

        message_id = self.idempotency_key(headers, event)
        record = WebhookEventRecord(
            message_id=message_id,
            event_type=event.event_type,
            aggregator_customer_id=event.customer_id,
            raw_headers=json.dumps(dict(headers)),
            raw_payload=raw_body.decode("utf-8", errors="replace"),
            verified=verified,
        )

        try:
            with db.begin_nested():
                db.add(record)
                db.flush()
        except IntegrityError:
            logger.info("Duplicate webhook delivery %s (%s); skipping", message_id, event.event_type)
            return IngestResult(
                event_id=event.event_id or message_id,
                duplicate=True,
                verified=verified,
            )
        db.commit()

        processed = False
        try:
            new_status = self._state_machine.route(db, event)
            db.commit()
            processed = True
            logger.info(
                "Processed webhook %s (%s) for customer %s -> %s",
                message_id, event.event_type, event.customer_id,
                new_status.value if new_status else "no change",
            )
        except Exception:
            db.rollback()
            logger.exception(
                "Failed to process webhook %s (%s) for customer %s",
                message_id, event.event_type, event.customer_id,
            )

        return IngestResult(
            event_id=event.event_id or message_id,
            processed=processed,
            verified=verified,
        )
