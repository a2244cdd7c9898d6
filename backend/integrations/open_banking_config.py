"""Explicit configuration for the open-banking components.

Each component takes an :class:`OpenBankingConfig` in its constructor
instead of reading the global settings object, so tests can point the
components at fake endpoints and keys.
"""

from dataclasses import dataclass, field

from config import Settings, settings as default_settings
from integrations.exceptions import ConfigurationError

_REQUIRED_FIELDS = {
    "base_url": "OPEN_BANKING_BASE_URL",
    "partner_id": "OPEN_BANKING_PARTNER_ID",
    "partner_secret": "OPEN_BANKING_PARTNER_SECRET",
    "app_key": "OPEN_BANKING_APP_KEY",
    "redirect_uri": "OPEN_BANKING_REDIRECT_URI",
    "webhook_url": "OPEN_BANKING_WEBHOOK_URL",
    "webhook_public_key": "OPEN_BANKING_WEBHOOK_PUBLIC_KEY",
}


@dataclass(frozen=True)
class EmailBranding:
    """Fields of the aggregator Connect email that identify the firm."""

    sender: str = ""
    subject: str = "Please link your bank account"
    institution_name: str = "Your CPA"
    institution_address: str = ""
    support_phone: str = ""
    signature: tuple[str, ...] = ()


@dataclass(frozen=True)
class OpenBankingConfig:
    """Immutable open-banking configuration shared by all components."""

    base_url: str
    partner_id: str
    partner_secret: str
    app_key: str
    redirect_uri: str
    webhook_url: str
    webhook_public_key: str
    email: EmailBranding = field(default_factory=EmailBranding)
    timeout: float = 30.0

    def __post_init__(self):
        missing = [
            env_name
            for attr, env_name in _REQUIRED_FIELDS.items()
            if not (getattr(self, attr) or "").strip()
        ]
        if missing:
            raise ConfigurationError(
                "Missing required open banking configuration: " + ", ".join(missing),
                missing=missing,
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "OpenBankingConfig":
        """Build the config from application settings.

        Raises:
            ConfigurationError: if any required value is empty.
        """
        s = settings or default_settings
        signature = tuple(
            line.strip() for line in s.OPEN_BANKING_EMAIL_SIGNATURE.split("|") if line.strip()
        )
        return cls(
            base_url=s.OPEN_BANKING_BASE_URL.rstrip("/"),
            partner_id=s.OPEN_BANKING_PARTNER_ID,
            partner_secret=s.OPEN_BANKING_PARTNER_SECRET,
            app_key=s.OPEN_BANKING_APP_KEY,
            redirect_uri=s.OPEN_BANKING_REDIRECT_URI,
            webhook_url=s.OPEN_BANKING_WEBHOOK_URL,
            webhook_public_key=s.OPEN_BANKING_WEBHOOK_PUBLIC_KEY,
            email=EmailBranding(
                sender=s.OPEN_BANKING_EMAIL_FROM,
                subject=s.OPEN_BANKING_EMAIL_SUBJECT,
                institution_name=s.OPEN_BANKING_INSTITUTION_NAME,
                institution_address=s.OPEN_BANKING_INSTITUTION_ADDRESS,
                support_phone=s.OPEN_BANKING_SUPPORT_PHONE,
                signature=signature,
            ),
        )
