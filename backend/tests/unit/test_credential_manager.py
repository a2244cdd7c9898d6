"""Tests for services.credential_manager."""

from unittest.mock import patch

import pytest
from keyring.errors import KeyringError, NoKeyringError, PasswordDeleteError

from services.credential_manager import (
    CREDENTIAL_KEYS,
    SERVICE_NAME,
    delete_credential,
    get_credential,
    set_credential,
)


@pytest.fixture
def mock_keyring():
    with patch("services.credential_manager.keyring") as mock:
        yield mock


# ---------------------------------------------------------------------------
# get_credential
# ---------------------------------------------------------------------------


class TestGetCredential:
    def test_returns_value(self, mock_keyring):
        mock_keyring.get_password.return_value = "secret123"
        assert get_credential("OPEN_BANKING_PARTNER_SECRET") == "secret123"
        mock_keyring.get_password.assert_called_once_with(
            SERVICE_NAME, "OPEN_BANKING_PARTNER_SECRET"
        )

    def test_returns_none_when_not_found(self, mock_keyring):
        mock_keyring.get_password.return_value = None
        assert get_credential("OPEN_BANKING_PARTNER_SECRET") is None

    def test_returns_none_without_keyring_backend(self, mock_keyring):
        mock_keyring.get_password.side_effect = NoKeyringError("no backend")
        assert get_credential("OPEN_BANKING_PARTNER_SECRET") is None


# ---------------------------------------------------------------------------
# set_credential
# ---------------------------------------------------------------------------


class TestSetCredential:
    def test_stores_value(self, mock_keyring):
        assert set_credential("OPEN_BANKING_APP_KEY", "app-key") is True
        mock_keyring.set_password.assert_called_once_with(
            SERVICE_NAME, "OPEN_BANKING_APP_KEY", "app-key"
        )

    def test_rejects_non_credential_key(self, mock_keyring):
        assert set_credential("OPEN_BANKING_REDIRECT_URI", "https://firm.test") is False
        mock_keyring.set_password.assert_not_called()

    def test_rejects_empty_value(self, mock_keyring):
        assert set_credential("OPEN_BANKING_APP_KEY", "") is False
        assert set_credential("OPEN_BANKING_APP_KEY", "   ") is False
        mock_keyring.set_password.assert_not_called()

    def test_returns_false_on_keyring_error(self, mock_keyring):
        mock_keyring.set_password.side_effect = KeyringError("locked")
        assert set_credential("OPEN_BANKING_APP_KEY", "app-key") is False


# ---------------------------------------------------------------------------
# delete_credential
# ---------------------------------------------------------------------------


class TestDeleteCredential:
    def test_deletes_value(self, mock_keyring):
        assert delete_credential("OPEN_BANKING_PARTNER_ID") is True
        mock_keyring.delete_password.assert_called_once_with(
            SERVICE_NAME, "OPEN_BANKING_PARTNER_ID"
        )

    def test_rejects_non_credential_key(self, mock_keyring):
        assert delete_credential("NOT_A_REAL_KEY") is False
        mock_keyring.delete_password.assert_not_called()

    def test_missing_entry(self, mock_keyring):
        mock_keyring.delete_password.side_effect = PasswordDeleteError("not found")
        assert delete_credential("OPEN_BANKING_PARTNER_ID") is False

    def test_keyring_error(self, mock_keyring):
        mock_keyring.delete_password.side_effect = KeyringError("locked")
        assert delete_credential("OPEN_BANKING_PARTNER_ID") is False


# ---------------------------------------------------------------------------
# CREDENTIAL_KEYS
# ---------------------------------------------------------------------------


class TestCredentialKeys:
    def test_contains_expected_keys(self):
        assert CREDENTIAL_KEYS == {
            "OPEN_BANKING_PARTNER_ID",
            "OPEN_BANKING_PARTNER_SECRET",
            "OPEN_BANKING_APP_KEY",
            "OPEN_BANKING_WEBHOOK_PUBLIC_KEY",
        }

    def test_excludes_non_secret_keys(self):
        assert "DATABASE_URL" not in CREDENTIAL_KEYS
        assert "OPEN_BANKING_BASE_URL" not in CREDENTIAL_KEYS
        assert "OPEN_BANKING_REDIRECT_URI" not in CREDENTIAL_KEYS
        assert "LOG_LEVEL" not in CREDENTIAL_KEYS

    def test_is_frozen(self):
        assert isinstance(CREDENTIAL_KEYS, frozenset)
