"""OS keychain storage for the aggregator partner secrets.

Only the names in :data:`CREDENTIAL_KEYS` live in the keychain; every
other setting stays in the environment or ``.env``. Keychain failures
(no backend, locked keychain) are logged and treated as "not stored" so
settings loading falls through to the environment.
"""

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "cpa-open-banking"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "OPEN_BANKING_PARTNER_ID",
        "OPEN_BANKING_PARTNER_SECRET",
        "OPEN_BANKING_APP_KEY",
        "OPEN_BANKING_WEBHOOK_PUBLIC_KEY",
    }
)


def _is_credential_key(key: str, action: str) -> bool:
    if key in CREDENTIAL_KEYS:
        return True
    logger.warning("Refusing to %s non-credential key %s", action, key)
    return False


def get_credential(key: str) -> str | None:
    """Read one credential, or ``None`` when absent or the keychain is unusable."""
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except KeyringError:
        logger.debug("Keychain lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store one credential.

    Returns:
        ``True`` if stored; ``False`` for unknown keys, blank values, or
        keychain errors.
    """
    if not _is_credential_key(key, "store"):
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store empty value for %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value)
    except KeyringError:
        logger.warning("Could not store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove one credential. ``False`` if it was not there."""
    if not _is_credential_key(key, "delete"):
        return False

    try:
        keyring.delete_password(SERVICE_NAME, key)
    except PasswordDeleteError:
        logger.debug("%s was not in the keychain", key)
        return False
    except KeyringError:
        logger.warning("Could not delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True
