#!/usr/bin/env python3
"""Open banking credential setup.

Moves the aggregator partner credentials and webhook public key from the
backend ``.env`` file into the OS keychain, after checking that the
webhook key parses. Optionally confirms the partner credentials by
fetching a token from the aggregator.

Usage:
    python -m scripts.setup_open_banking                # store in keychain
    python -m scripts.setup_open_banking --check        # store, then test partner auth
    python -m scripts.setup_open_banking --clean        # store & remove from .env
    python -m scripts.setup_open_banking --delete       # remove from keychain
"""

import argparse
import re
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import dotenv_values

from config import Settings
from integrations.exceptions import AggregatorError, ConfigurationError
from integrations.open_banking_config import OpenBankingConfig
from integrations.partner_token_provider import PartnerTokenProvider
from services.credential_manager import (
    CREDENTIAL_KEYS,
    delete_credential,
    get_credential,
    set_credential,
)
from services.webhook_signature import load_public_key

WEBHOOK_KEY = "OPEN_BANKING_WEBHOOK_PUBLIC_KEY"


def store_credentials(env_path: Path, *, clean: bool = False) -> list[str]:
    """Store every non-empty credential from ``env_path`` in the keychain.

    Returns:
        The keys now held in the keychain.

    Raises:
        ConfigurationError: the webhook public key in ``.env`` does not parse.
    """
    values = dotenv_values(env_path)

    webhook_key = values.get(WEBHOOK_KEY)
    if webhook_key:
        load_public_key(webhook_key.replace("\\n", "\n"))

    stored: list[str] = []
    for key in sorted(CREDENTIAL_KEYS):
        value = values.get(key)
        if not value:
            print(f"  - {key} (not set in .env)")
            continue
        if get_credential(key) == value:
            print(f"  = {key} (already in keychain)")
            stored.append(key)
            continue
        if set_credential(key, value):
            print(f"  + {key}")
            stored.append(key)
        else:
            print(f"  ! {key} (keychain write failed)")

    if clean and stored:
        _remove_from_env_file(env_path, stored)
    return stored


def delete_credentials() -> list[str]:
    """Remove all open banking credentials from the keychain."""
    removed = [key for key in sorted(CREDENTIAL_KEYS) if delete_credential(key)]
    for key in removed:
        print(f"  x {key}")
    return removed


def check_partner_auth() -> bool:
    """Fetch one partner token with the effective settings."""
    try:
        config = OpenBankingConfig.from_settings(Settings())
    except ConfigurationError as e:
        print(f"Configuration incomplete: {e}")
        return False

    provider = PartnerTokenProvider(config)
    try:
        provider.fetch_token()
    except AggregatorError as e:
        print(f"Partner authentication failed: {e}")
        return False
    finally:
        provider.close()
    print(f"Partner authentication OK against {config.base_url}")
    return True


def _remove_from_env_file(env_path: Path, keys: list[str]) -> None:
    lines = env_path.read_text().splitlines(keepends=True)
    pattern = re.compile(r"^(" + "|".join(re.escape(k) for k in keys) + r")\s*=")
    env_path.write_text("".join(line for line in lines if not pattern.match(line)))
    print(f"Removed {len(keys)} credential(s) from {env_path}")


def main():
    parser = argparse.ArgumentParser(description="Store open banking credentials in the OS keychain")
    parser.add_argument("--clean", action="store_true", help="Remove stored credentials from .env")
    parser.add_argument("--check", action="store_true", help="Test partner authentication afterwards")
    parser.add_argument("--delete", action="store_true", help="Remove credentials from the keychain")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(__file__).parent.parent / ".env",
        help="Path to .env file (default: backend/.env)",
    )
    args = parser.parse_args()

    if args.delete:
        delete_credentials()
        return

    if not args.env_file.exists():
        print(f"No .env file found at {args.env_file}")
        sys.exit(1)

    try:
        store_credentials(args.env_file, clean=args.clean)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.check and not check_partner_auth():
        sys.exit(1)


if __name__ == "__main__":
    main()
