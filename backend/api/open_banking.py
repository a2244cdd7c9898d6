"""Open Banking API endpoints used by the firm's UI.

Sending bank-link invitations, polling linkage status, and checking a
client's accounts directly with the aggregator.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_open_banking_client, link_status_response
from database import get_db
from integrations.exceptions import AggregatorAuthError, AggregatorError
from integrations.open_banking_client import OpenBankingClient
from schemas.open_banking import (
    InvitationRequest,
    InvitationResponse,
    LinkStatusResponse,
    LiveAccountsResponse,
)
from services.connect_invitation_service import ConnectInvitationSender
from services.customer_link_registry import CustomerLinkRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/open-banking", tags=["open-banking"])


def _aggregator_http_error(action: str, e: AggregatorError) -> HTTPException:
    if isinstance(e, AggregatorAuthError):
        logger.error("Aggregator rejected partner credentials during %s: %s", action, e)
        return HTTPException(
            status_code=502,
            detail="Open banking provider rejected the partner credentials",
        )
    logger.error("Aggregator error during %s: %s", action, e)
    return HTTPException(status_code=502, detail=f"Open banking provider error: {e}")


@router.post(
    "/clients/{platform_client_id}/invitations",
    response_model=InvitationResponse,
)
def send_invitation(
    platform_client_id: str,
    body: InvitationRequest,
    db: Session = Depends(get_db),
    client: OpenBankingClient = Depends(get_open_banking_client),
):
    """Create the client's aggregator customer if needed and email a Connect link.

    Raises:
        HTTPException:
            - 502 Bad Gateway: aggregator auth or API failure
    """
    registry = CustomerLinkRegistry(client)
    sender = ConnectInvitationSender(client)
    try:
        customer_id = registry.get_or_create_customer(db, platform_client_id, body.client_name)
        result = sender.send_invitation(
            customer_id,
            body.client_email,
            body.client_name,
            redirect_uri=body.redirect_uri,
        )
    except AggregatorError as e:
        raise _aggregator_http_error("invitation send", e)

    return InvitationResponse(
        aggregator_customer_id=result.aggregator_customer_id,
        data=result.data,
    )


@router.get(
    "/clients/{platform_client_id}/status",
    response_model=LinkStatusResponse,
)
def get_status(platform_client_id: str, db: Session = Depends(get_db)):
    """Current linkage status and active accounts, as updated by webhooks."""
    return link_status_response(CustomerLinkRegistry.get_status(db, platform_client_id))


@router.get(
    "/clients/{platform_client_id}/accounts/live",
    response_model=LiveAccountsResponse,
)
def get_live_accounts(
    platform_client_id: str,
    db: Session = Depends(get_db),
    client: OpenBankingClient = Depends(get_open_banking_client),
):
    """Ask the aggregator which accounts the client has linked right now.

    Does not change stored status or accounts.
    """
    registry = CustomerLinkRegistry(client)
    mapping = registry.get_mapping(db, platform_client_id)
    if mapping is None:
        raise HTTPException(
            status_code=404,
            detail=f"No open banking customer for client: {platform_client_id}",
        )
    try:
        accounts = registry.fetch_live_accounts(db, platform_client_id) or []
    except AggregatorError as e:
        raise _aggregator_http_error("live account check", e)

    return LiveAccountsResponse(
        aggregator_customer_id=mapping.aggregator_customer_id,
        accounts=accounts,
        account_count=len(accounts),
        has_accounts=bool(accounts),
    )
