"""Application settings via pydantic-settings.

Precedence, highest first: explicit init values, the OS keychain (for
the names in ``CREDENTIAL_KEYS`` only), environment variables, ``.env``.
"""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the keychain entries of credential fields.

    A field with no keychain entry is left out, so lower-priority sources
    still supply it.
    """

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        if field_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        return get_credential(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        found = (
            self.get_field_value(info, name)
            for name, info in self.settings_cls.model_fields.items()
        )
        return {name: value for value, name, _ in found if value is not None}


class Settings(BaseSettings):
    """Runtime configuration for the open banking backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        keychain = KeychainSettingsSource(settings_cls)
        return init_settings, keychain, env_settings, dotenv_settings, file_secret_settings

    DATABASE_URL: str = "sqlite:///./open_banking.db"

    # Aggregator partner access; required, see OpenBankingConfig
    OPEN_BANKING_BASE_URL: str = "https://api.finicity.com"
    OPEN_BANKING_PARTNER_ID: str = ""
    OPEN_BANKING_PARTNER_SECRET: str = ""
    OPEN_BANKING_APP_KEY: str = ""
    OPEN_BANKING_REDIRECT_URI: str = ""
    OPEN_BANKING_WEBHOOK_URL: str = ""
    OPEN_BANKING_WEBHOOK_PUBLIC_KEY: str = ""

    # Connect email branding
    OPEN_BANKING_EMAIL_FROM: str = ""
    OPEN_BANKING_EMAIL_SUBJECT: str = "Please link your bank account"
    OPEN_BANKING_INSTITUTION_NAME: str = "Your CPA"
    OPEN_BANKING_INSTITUTION_ADDRESS: str = ""
    OPEN_BANKING_SUPPORT_PHONE: str = ""
    OPEN_BANKING_EMAIL_SIGNATURE: str = ""  # lines separated by "|"

    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @field_validator("OPEN_BANKING_WEBHOOK_PUBLIC_KEY", mode="before")
    @classmethod
    def unescape_pem_newlines(cls, v: str) -> str:
        """A PEM exported from a shell keeps ``\\n`` as two characters."""
        if isinstance(v, str):
            return v.replace("\\n", "\n")
        return v

    @field_validator("OPEN_BANKING_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") if isinstance(v, str) else v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = str(v).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}, got {v!r}")
        return level


settings = Settings()
