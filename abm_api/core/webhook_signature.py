"""
HMAC verification for voice provider webhooks.

Header format (ElevenLabs-Signature): ``t=<unix_seconds>,v0=<hex_hmac_sha256>``.
The MAC covers ``"<t>.<raw body>"`` keyed by the shared webhook secret.
"""
import hashlib
import hmac
import logging
import time
from typing import Dict, Optional
from abm_api.config import settings
from abm_api.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "ElevenLabs-Signature"


def parse_signature_header(signature_header: str) -> Dict[str, str]:
    """Split a comma-separated ``key=value`` header. The first occurrence of a key wins."""
    fields: Dict[str, str] = {}
    for part in signature_header.split(","):
        key, sep, value = part.strip().partition("=")
        if sep and key and key not in fields:
            fields[key] = value
    return fields


def compute_signature(timestamp: str, raw_body: str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``"<timestamp>.<raw_body>"``."""
    signed_payload = f"{timestamp}.{raw_body}"
    return hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_webhook_signature(
    raw_body: str,
    signature_header: str,
    secret: str,
    now: Optional[float] = None,
    tolerance_seconds: Optional[int] = None
) -> bool:
    """
    Verify a webhook signature.

    Args:
        raw_body: Request body exactly as received
        signature_header: Value of the signature header
        secret: Shared webhook secret
        now: Current unix time (defaults to time.time())
        tolerance_seconds: Accepted skew in either direction

    Returns:
        True only for a fresh, matching signature; never raises
    """
    if not signature_header or not secret:
        return False

    if tolerance_seconds is None:
        tolerance_seconds = settings.WEBHOOK_TOLERANCE_SECONDS

    fields = parse_signature_header(signature_header)
    timestamp = fields.get("t")
    received_hash = fields.get("v0")

    if not timestamp or not received_hash:
        logger.warning("Webhook signature header is missing t or v0")
        return False

    try:
        request_time = int(timestamp)
    except ValueError:
        logger.warning(sanitize_log_message("Webhook timestamp is not an integer", Timestamp=timestamp))
        return False

    current_time = int(now if now is not None else time.time())
    if abs(current_time - request_time) > tolerance_seconds:
        logger.warning(
            sanitize_log_message(
                "Webhook timestamp outside tolerance",
                Skew=current_time - request_time,
                Tolerance=tolerance_seconds
            )
        )
        return False

    try:
        computed_hash = compute_signature(timestamp, raw_body, secret)
        return hmac.compare_digest(
            computed_hash.encode("utf-8"),
            received_hash.encode("utf-8")
        )
    except (TypeError, ValueError, UnicodeError) as e:
        logger.warning(sanitize_log_message("Error verifying webhook signature", Error=str(e)))
        return False


def sign_payload(raw_body: str, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a signature header for a payload (used by tooling and tests)."""
    ts = str(int(timestamp if timestamp is not None else time.time()))
    return f"t={ts},v0={compute_signature(ts, raw_body, secret)}"
