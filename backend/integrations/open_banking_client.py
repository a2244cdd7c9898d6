"""Open-banking aggregator API client.

Wraps the aggregator endpoints the linkage flow needs: creating
customers, sending the Connect email, and reading a customer's accounts.
Each call fetches a fresh partner token from the injected
:class:`~integrations.partner_token_provider.TokenProvider`.
"""

import logging
from typing import Any

import httpx

from integrations.exceptions import (
    AggregatorAPIError,
    AggregatorAuthError,
    AggregatorConnectionError,
)
from integrations.open_banking_config import OpenBankingConfig
from integrations.partner_token_provider import PartnerTokenProvider, TokenProvider

logger = logging.getLogger(__name__)

CUSTOMERS_TESTING_PATH = "/aggregation/v2/customers/testing"
CONNECT_EMAIL_PATH = "/connect/v2/send/email"
CUSTOMER_ACCOUNTS_PATH = "/aggregation/v1/customers/{customer_id}/accounts"


class OpenBankingClient:
    """Thin HTTP client for the aggregator's partner API."""

    def __init__(
        self,
        config: OpenBankingConfig,
        token_provider: TokenProvider | None = None,
        http_client: httpx.Client | None = None,
    ):
        self._config = config
        self._client = http_client or httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
        )
        self._token_provider = token_provider or PartnerTokenProvider(config, self._client)

    @property
    def provider_name(self) -> str:
        return "OpenBanking"

    @property
    def config(self) -> OpenBankingConfig:
        return self._config

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Issue an authenticated request and return the decoded JSON body.

        Returns ``None`` for a 404 when ``allow_not_found`` is set.
        """
        token = self._token_provider.fetch_token()
        headers = {
            "Accept": "application/json",
            "Finicity-App-Key": self._config.app_key,
            "Finicity-App-Token": token,
        }
        if json is not None:
            headers["Content-Type"] = "application/json"

        try:
            response = self._client.request(method, path, json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = exc.response.text
            if status == 404 and allow_not_found:
                return None
            if status in (401, 403):
                raise AggregatorAuthError(
                    f"Aggregator rejected credentials for {method} {path} (HTTP {status})",
                    status_code=status,
                    body=body,
                ) from exc
            raise AggregatorAPIError(
                f"Aggregator API error for {method} {path} (HTTP {status}) - {body}",
                status_code=status,
                body=body,
            ) from exc
        except httpx.RequestError as exc:
            raise AggregatorConnectionError(
                f"Aggregator connection failed for {method} {path}: {exc}",
            ) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise AggregatorAPIError(
                f"Aggregator returned non-JSON body for {method} {path}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def create_testing_customer(self, username: str) -> dict:
        """Create an aggregator customer.

        Returns:
            The aggregator's customer record; ``id`` is the customer id.
        """
        data = self._request("POST", CUSTOMERS_TESTING_PATH, json={"username": username})
        if not isinstance(data, dict) or not data.get("id"):
            raise AggregatorAPIError(
                "Create customer succeeded but response has no customer id",
                body=str(data),
            )
        logger.info("Created aggregator customer %s (username=%s)", data["id"], username)
        return data

    def send_connect_email(self, payload: dict) -> dict:
        """Ask the aggregator to email a Connect link to a customer."""
        data = self._request("POST", CONNECT_EMAIL_PATH, json=payload)
        return data if isinstance(data, dict) else {"response": data}

    def get_customer_accounts(self, customer_id: str) -> list[dict]:
        """Read the accounts the aggregator currently holds for a customer.

        A 404 means the customer has not linked anything yet.
        """
        path = CUSTOMER_ACCOUNTS_PATH.format(customer_id=customer_id)
        data = self._request("GET", path, allow_not_found=True)
        if not data:
            return []
        accounts = data.get("accounts", []) if isinstance(data, dict) else []
        logger.info("Aggregator reports %d accounts for customer %s", len(accounts), customer_id)
        return accounts
