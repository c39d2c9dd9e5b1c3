"""Signature Verification — reference tokens and inbound webhook signatures.

Invariants:
    - Tokens are deterministic: same (entity_id, amount, secret) → same 16-hex token
    - Every comparison goes through hmac.compare_digest on fixed-length digests
      (no early return on length mismatch)
    - Webhook signatures are verified over the RAW body — callers must not parse first
    - Empty secret → ConfigurationError (fail closed, never skip verification)
    - The ledger channel authenticates by an export key carried in the body

Design Decisions:
    - Pure functions, secrets passed explicitly: no env reads in core
    - Payment scheme follows the processor's documented t=<ts>,v1=<sig> header with
      a timestamp tolerance window for replay protection
    - Board channel signs the raw body with a shared secret (hex HMAC-SHA256)
"""

import hashlib
import hmac
import logging
import string
import time
from decimal import Decimal

from app.core.errors import ConfigurationError, MalformedTokenError

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 16
DEFAULT_PAYMENT_TOLERANCE_SECONDS = 300

_HEX_DIGITS = frozenset(string.hexdigits)


def _format_amount(amount: str | int | float | Decimal) -> str:
    """Render amounts the same way regardless of numeric type (150 == 150.0)."""
    if isinstance(amount, str):
        return amount.strip()
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    if isinstance(amount, Decimal):
        normalized = amount.normalize()
        return format(normalized, "f")
    return str(amount)


def generate_token(
    entity_id: str | int, amount: str | int | float | Decimal, secret: str,
) -> str:
    """Keyed fingerprint of (entity_id, amount), truncated to 16 hex chars."""
    if not secret:
        raise ConfigurationError("Job token secret")
    message = f"{entity_id}:{_format_amount(amount)}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256)
    return digest.hexdigest()[:TOKEN_LENGTH]


def validate_token(
    entity_id: str | int,
    amount: str | int | float | Decimal,
    provided_token: str,
    secret: str,
) -> bool:
    """Recompute the token and compare in constant time.

    Returns False for a wrong token of any length. Raises MalformedTokenError
    only when provided_token is not hex.
    """
    if not provided_token or not _HEX_DIGITS.issuperset(provided_token):
        raise MalformedTokenError()
    expected = generate_token(entity_id, amount, secret)
    return _constant_time_equals(
        expected, provided_token, secret.encode("utf-8"),
    )


def _constant_time_equals(expected: str, provided: str, key: bytes) -> bool:
    # Re-key both sides to 32-byte digests so length never branches the comparator
    left = hmac.new(key, expected.encode("utf-8"), hashlib.sha256).digest()
    right = hmac.new(key, provided.encode("utf-8"), hashlib.sha256).digest()
    return hmac.compare_digest(left, right)


def _parse_payment_header(signature_header: str) -> tuple[str | None, list[str]]:
    """Split 't=<ts>,v1=<sig>,v1=<sig>' into (timestamp, [v1 signatures])."""
    timestamp = None
    signatures: list[str] = []
    for item in signature_header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


def verify_payment_signature(
    raw_body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance_seconds: int = DEFAULT_PAYMENT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> bool:
    """Verify a payment-processor webhook signature over the raw body."""
    if not secret:
        raise ConfigurationError("Payment webhook secret")
    if not signature_header:
        return False

    timestamp_str, signatures = _parse_payment_header(signature_header)
    if not timestamp_str or not signatures:
        return False
    try:
        timestamp = int(timestamp_str)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - timestamp) > tolerance_seconds:
        logger.warning(f"Payment webhook timestamp outside tolerance: {timestamp}")
        return False

    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    expected = hmac.new(
        secret.encode("utf-8"), signed_payload, hashlib.sha256,
    ).hexdigest()
    return any(
        hmac.compare_digest(expected.encode("utf-8"), sig.encode("utf-8"))
        for sig in signatures
    )


def sign_payment_payload(raw_body: bytes, secret: str, timestamp: int) -> str:
    """Build a payment signature header — used by tests and local replay tools."""
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    sig = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


def sign_board_payload(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw board webhook body."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_board_signature(
    raw_body: bytes, signature_header: str | None, secret: str,
) -> bool:
    """Verify the board channel's shared-secret signature over the raw body."""
    if not secret:
        raise ConfigurationError("Board webhook secret")
    if not signature_header:
        return False
    expected = sign_board_payload(raw_body, secret)
    provided = signature_header.strip().lower().encode("utf-8")
    return hmac.compare_digest(expected.encode("utf-8"), provided)


def verify_export_key(provided: str | None, expected: str) -> bool:
    """Constant-time check of the ledger webhook's shared export key."""
    if not expected:
        raise ConfigurationError("Ledger export key")
    if not provided:
        return False
    return _constant_time_equals(expected, provided, expected.encode("utf-8"))
