"""Connect invitation sender - asks the aggregator to email a linking link."""

import logging
from dataclasses import dataclass, field

from integrations.open_banking_client import OpenBankingClient

logger = logging.getLogger(__name__)


@dataclass
class InvitationResult:
    """The aggregator accepted the email job (not that the client acted on it)."""

    aggregator_customer_id: str
    accepted: bool = True
    data: dict = field(default_factory=dict)


class ConnectInvitationSender:
    """Sends single-use Connect email invitations through the aggregator.

    Never changes linkage status; status only moves on webhook events.
    """

    def __init__(self, client: OpenBankingClient):
        self._client = client
        self._config = client.config

    def build_payload(
        self,
        aggregator_customer_id: str,
        client_email: str,
        client_name: str,
        redirect_uri: str,
        webhook_url: str,
    ) -> dict:
        branding = self._config.email
        first_name = (client_name or "").split(" ")[0] or "Client"
        email = {
            "to": client_email,
            "subject": branding.subject,
            "firstName": first_name,
            "institutionName": branding.institution_name,
            "institutionAddress": branding.institution_address,
        }
        # Optional fields are omitted rather than sent empty
        if branding.sender:
            email["from"] = branding.sender
        if branding.support_phone:
            email["supportPhone"] = branding.support_phone
        if branding.signature:
            email["signature"] = list(branding.signature)

        return {
            "partnerId": self._config.partner_id,
            "customerId": aggregator_customer_id,
            "language": "en",
            "redirectUri": redirect_uri,
            "webhook": webhook_url,
            "webhookContentType": "application/json",
            "email": email,
            "singleUseUrl": True,
        }

    def send_invitation(
        self,
        aggregator_customer_id: str,
        client_email: str,
        client_name: str,
        redirect_uri: str | None = None,
        webhook_url: str | None = None,
    ) -> InvitationResult:
        """Ask the aggregator to email the client a Connect link.

        Raises:
            AggregatorError: token fetch or email request failed.
        """
        payload = self.build_payload(
            aggregator_customer_id,
            client_email,
            client_name,
            redirect_uri or self._config.redirect_uri,
            webhook_url or self._config.webhook_url,
        )
        data = self._client.send_connect_email(payload)
        logger.info("Connect email accepted for customer %s", aggregator_customer_id)
        return InvitationResult(aggregator_customer_id=aggregator_customer_id, data=data)
