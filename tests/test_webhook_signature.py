"""
Tests for webhook HMAC signature verification.
"""
import hashlib
import hmac
from abm_api.core.webhook_signature import (
    compute_signature,
    parse_signature_header,
    sign_payload,
    verify_webhook_signature,
)

SECRET = "whsec_test_secret"
BODY = '{"type":"post_call_transcription","data":{"conversation_id":"conv_1"}}'
NOW = 1_700_000_000


def _header(timestamp: int, body: str = BODY, secret: str = SECRET) -> str:
    return sign_payload(body, secret, timestamp=timestamp)


class TestSignatureFormat:

    def test_compute_signature_matches_hmac_sha256(self):
        expected = hmac.new(
            SECRET.encode("utf-8"),
            f"{NOW}.{BODY}".encode("utf-8"),
            hashlib.sha256
        ).hexdigest()

        assert compute_signature(str(NOW), BODY, SECRET) == expected

    def test_sign_payload_header_shape(self):
        header = _header(NOW)

        assert header.startswith(f"t={NOW},v0=")
        assert len(header.split("v0=")[1]) == 64

    def test_parse_signature_header(self):
        assert parse_signature_header("t=1,v0=abc") == {"t": "1", "v0": "abc"}
        assert parse_signature_header(" t=1 , v0=abc ") == {"t": "1", "v0": "abc"}
        assert parse_signature_header("garbage") == {}

    def test_parse_keeps_first_occurrence(self):
        assert parse_signature_header("t=1,v0=first,v0=second")["v0"] == "first"


class TestVerifyWebhookSignature:

    def test_fresh_signature_accepted(self):
        assert verify_webhook_signature(BODY, _header(NOW), SECRET, now=NOW) is True

    def test_skew_inside_tolerance_accepted(self):
        assert verify_webhook_signature(BODY, _header(NOW - 1799), SECRET, now=NOW) is True
        assert verify_webhook_signature(BODY, _header(NOW + 1799), SECRET, now=NOW) is True

    def test_skew_at_tolerance_accepted(self):
        assert verify_webhook_signature(BODY, _header(NOW - 1800), SECRET, now=NOW) is True

    def test_skew_outside_tolerance_rejected(self):
        assert verify_webhook_signature(BODY, _header(NOW - 1801), SECRET, now=NOW) is False
        assert verify_webhook_signature(BODY, _header(NOW + 1801), SECRET, now=NOW) is False

    def test_tampered_body_rejected(self):
        header = _header(NOW)
        tampered = BODY.replace("conv_1", "conv_2")

        assert verify_webhook_signature(tampered, header, SECRET, now=NOW) is False

    def test_wrong_secret_rejected(self):
        header = _header(NOW, secret="another_secret")

        assert verify_webhook_signature(BODY, header, SECRET, now=NOW) is False

    def test_missing_parts_rejected(self):
        signature = compute_signature(str(NOW), BODY, SECRET)

        assert verify_webhook_signature(BODY, f"v0={signature}", SECRET, now=NOW) is False
        assert verify_webhook_signature(BODY, f"t={NOW}", SECRET, now=NOW) is False

    def test_non_numeric_timestamp_rejected(self):
        signature = compute_signature("soon", BODY, SECRET)

        assert verify_webhook_signature(BODY, f"t=soon,v0={signature}", SECRET, now=NOW) is False

    def test_truncated_signature_rejected(self):
        header = _header(NOW)[:-10]

        assert verify_webhook_signature(BODY, header, SECRET, now=NOW) is False

    def test_empty_header_or_secret_rejected(self):
        assert verify_webhook_signature(BODY, "", SECRET, now=NOW) is False
        assert verify_webhook_signature(BODY, _header(NOW), "", now=NOW) is False

    def test_custom_tolerance(self):
        header = _header(NOW - 120)

        assert verify_webhook_signature(BODY, header, SECRET, now=NOW, tolerance_seconds=60) is False
        assert verify_webhook_signature(BODY, header, SECRET, now=NOW, tolerance_seconds=300) is True
