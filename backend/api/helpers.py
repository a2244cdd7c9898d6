"""Shared API helpers for route handlers.

Dependency providers for the open-banking components and common response
builders. Each provider is overridable in tests via
``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException

from integrations.exceptions import ConfigurationError
from integrations.open_banking_client import OpenBankingClient
from integrations.open_banking_config import OpenBankingConfig
from schemas.open_banking import BankAccountResponse, LinkStatusResponse
from services.customer_link_registry import LinkStatus

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@lru_cache
def _load_config() -> OpenBankingConfig:
    return OpenBankingConfig.from_settings()


def get_open_banking_config() -> OpenBankingConfig:
    """Dependency for the open-banking configuration.

    Raises:
        HTTPException: 503 if required configuration is missing.
    """
    try:
        return _load_config()
    except ConfigurationError as e:
        logger.error("Open banking is not configured: %s", e)
        raise HTTPException(status_code=503, detail="Open banking is not configured")


def get_open_banking_client(config: OpenBankingConfig = Depends(get_open_banking_config)):
    """Dependency yielding an aggregator client, closed after the request."""
    client = OpenBankingClient(config)
    try:
        yield client
    finally:
        client.close()


def link_status_response(link_status: LinkStatus) -> LinkStatusResponse:
    """Build a LinkStatusResponse from the registry's projection."""
    return LinkStatusResponse(
        status=link_status.status,
        aggregator_customer_id=link_status.aggregator_customer_id,
        linked_at=link_status.linked_at,
        account_count=link_status.account_count,
        accounts=[BankAccountResponse.model_validate(a) for a in link_status.accounts],
    )
