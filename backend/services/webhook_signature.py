"""Webhook signature verification for aggregator callbacks.

The aggregator signs ``<raw body>.<timestamp>`` with ECDSA P-256 over
SHA-256 and sends the hex-encoded signature plus the timestamp in
headers. A signature older (or newer) than the skew window is rejected
to bound replay.

Verification failure is reported, not enforced: the ingestor stores the
event as unverified and still processes it.
"""

import base64
import binascii
import logging
import math
import time
from collections.abc import Mapping
from datetime import datetime, timezone

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from integrations.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-mastercard-signature"
TIMESTAMP_HEADER = "x-mastercard-signature-timestamp"
ALGORITHM_HEADER = "x-mastercard-signature-algorithm"
SUPPORTED_ALGORITHM = "SHA256withECDSA"

MAX_SKEW_SECONDS = 300

# P-256 raw signatures (WebCrypto style) are r||s, 32 bytes each
_RAW_SIGNATURE_LENGTH = 64


def load_public_key(key_text: str) -> ec.EllipticCurvePublicKey:
    """Load a P-256 public key from PEM text or bare base64 DER.

    Raises:
        ConfigurationError: if the key cannot be parsed or is not P-256.
    """
    key_text = key_text.strip()
    try:
        if "-----BEGIN" in key_text:
            key = serialization.load_pem_public_key(key_text.encode())
        else:
            der = base64.b64decode("".join(key_text.split()), validate=True)
            key = serialization.load_der_public_key(der)
    except (ValueError, binascii.Error, UnsupportedAlgorithm) as exc:
        raise ConfigurationError(f"Invalid webhook public key: {exc}") from exc

    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(key.curve, ec.SECP256R1):
        raise ConfigurationError("Webhook public key must be an ECDSA P-256 key")
    return key


def _decode_signature(value: str) -> bytes:
    """Decode the transport encoding (hex, falling back to base64) into DER."""
    value = value.strip()
    try:
        raw = bytes.fromhex(value)
    except ValueError:
        raw = base64.b64decode(value, validate=True)

    if len(raw) == _RAW_SIGNATURE_LENGTH:
        r = int.from_bytes(raw[:32], "big")
        s = int.from_bytes(raw[32:], "big")
        return encode_dss_signature(r, s)
    return raw


def parse_timestamp(value: str) -> float:
    """Parse a signature timestamp into epoch seconds.

    Accepts epoch seconds, epoch milliseconds, or an ISO-8601 string.

    Raises:
        ValueError: if the value is none of those.
    """
    value = value.strip()
    try:
        number = float(value)
    except ValueError:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
    if not math.isfinite(number):
        raise ValueError(f"Non-finite timestamp: {value!r}")
    # Anything this large is milliseconds
    if number > 1e11:
        number /= 1000.0
    return number


class WebhookSignatureVerifier:
    """Verifies aggregator webhook signatures against a configured public key."""

    def __init__(self, public_key: str | ec.EllipticCurvePublicKey, max_skew_seconds: int = MAX_SKEW_SECONDS):
        if isinstance(public_key, str):
            public_key = load_public_key(public_key)
        self._public_key = public_key
        self._max_skew = max_skew_seconds

    def verify(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        """Return True only for a valid, fresh signature over ``raw_body``.

        Never raises; every failure is logged and reported as False.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER)
        timestamp = lowered.get(TIMESTAMP_HEADER)
        algorithm = lowered.get(ALGORITHM_HEADER)

        if not signature or not timestamp:
            logger.warning("Webhook missing signature or timestamp header")
            return False
        if algorithm and algorithm != SUPPORTED_ALGORITHM:
            logger.warning("Unsupported webhook signature algorithm: %s", algorithm)
            return False

        try:
            signed_at = parse_timestamp(timestamp)
        except ValueError:
            logger.warning("Unparseable webhook signature timestamp: %r", timestamp)
            return False

        skew = abs(time.time() - signed_at)
        if skew > self._max_skew:
            logger.warning("Webhook signature timestamp outside window (skew %.0fs)", skew)
            return False

        try:
            der_signature = _decode_signature(signature)
        except (ValueError, binascii.Error):
            logger.warning("Webhook signature is not valid hex or base64")
            return False

        message = raw_body + b"." + timestamp.encode()
        try:
            self._public_key.verify(der_signature, message, ec.ECDSA(hashes.SHA256()))
        except InvalidSignature:
            logger.warning("Webhook signature did not verify")
            return False
        except ValueError:
            logger.warning("Webhook signature is malformed")
            return False

        return True
