"""Partner access tokens for the open-banking aggregator.

Every authenticated aggregator call first exchanges the partner
credentials for a short-lived token. Tokens are not cached: each
aggregator request fetches a fresh one. Any :class:`TokenProvider` can
be swapped in, including a caching one.
"""

import logging
from typing import Protocol

import httpx

from integrations.exceptions import AggregatorAuthError, AggregatorConnectionError
from integrations.open_banking_config import OpenBankingConfig

logger = logging.getLogger(__name__)

AUTH_PATH = "/aggregation/v2/partners/authentication"


class TokenProvider(Protocol):
    """Anything that can hand out a partner bearer token."""

    def fetch_token(self) -> str:
        ...


class PartnerTokenProvider:
    """Fetches partner tokens from the aggregator's authentication API."""

    def __init__(self, config: OpenBankingConfig, http_client: httpx.Client | None = None):
        self._config = config
        self._client = http_client or httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def fetch_token(self) -> str:
        """Exchange partner credentials for a fresh access token.

        Returns:
            The opaque token string.

        Raises:
            AggregatorAuthError: non-2xx response, or a 2xx without a token.
            AggregatorConnectionError: network failure.
        """
        try:
            response = self._client.request(
                "POST",
                AUTH_PATH,
                json={
                    "partnerId": self._config.partner_id,
                    "partnerSecret": self._config.partner_secret,
                },
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "Finicity-App-Key": self._config.app_key,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = exc.response.text
            logger.error("Partner authentication rejected (HTTP %d)", status)
            raise AggregatorAuthError(
                f"Partner auth failed: HTTP {status} - {body}",
                status_code=status,
                body=body,
            ) from exc
        except httpx.RequestError as exc:
            raise AggregatorConnectionError(
                f"Partner auth connection failed: {exc}",
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = None
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AggregatorAuthError(
                "Partner auth succeeded but no token in response",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug("Fetched fresh partner token")
        return token
