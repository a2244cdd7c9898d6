"""Inbound aggregator webhook endpoints.

The aggregator gets a 202 for every structurally valid delivery, even when
local processing fails. Only malformed bodies get a 400.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from api.helpers import CORS_HEADERS, get_open_banking_config
from database import get_db
from integrations.open_banking_config import OpenBankingConfig
from schemas.open_banking import WebhookAck
from services.linkage_state_machine import LinkageStateMachine
from services.webhook_ingestor import WebhookIngestor, WebhookValidationError
from services.webhook_signature import WebhookSignatureVerifier

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhooks/open-banking"

router = APIRouter(prefix=WEBHOOK_PATH, tags=["webhooks"])


def get_webhook_ingestor(
    config: OpenBankingConfig = Depends(get_open_banking_config),
) -> WebhookIngestor:
    """Dependency for injecting the ingestor (overridable in tests)."""
    return WebhookIngestor(
        WebhookSignatureVerifier(config.webhook_public_key),
        LinkageStateMachine(),
    )


def _ack(ack: WebhookAck, status_code: int = 202) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ack.model_dump(), headers=CORS_HEADERS)


@router.options("")
def webhook_options():
    """Permissive CORS preflight."""
    return Response(content="ok", headers=CORS_HEADERS)


@router.post("", status_code=202, response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    db: Session = Depends(get_db),
    ingestor: WebhookIngestor = Depends(get_webhook_ingestor),
):
    """Receive one aggregator webhook: verify, deduplicate, persist, route."""
    raw_body = await request.body()
    headers = dict(request.headers)

    try:
        result = await run_in_threadpool(ingestor.ingest, db, raw_body, headers)
    except WebhookValidationError as e:
        logger.warning("Rejected malformed webhook: %s", e)
        return JSONResponse(status_code=400, content={"error": str(e)}, headers=CORS_HEADERS)
    except Exception:
        db.rollback()
        logger.exception("Unhandled error ingesting webhook")
        return _ack(WebhookAck(processed=False, eventId=None))

    return _ack(
        WebhookAck(
            processed=result.processed,
            eventId=result.event_id,
            duplicate=result.duplicate,
        )
    )


@router.api_route("/ping", methods=["GET", "POST"])
def ping():
    """Reachability check for the webhook endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "message": "Open Banking webhook endpoint is accessible",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoint": WEBHOOK_PATH,
        },
        headers=CORS_HEADERS,
    )
