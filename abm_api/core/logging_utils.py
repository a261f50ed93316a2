import re
from typing import Any, Dict, Optional
from fastapi import Request
from abm_api.config import settings

MASK = "***MASKED***"

# Raw API keys: configured prefix followed by hex
_API_KEY_PATTERN = re.compile(re.escape(settings.API_KEY_PREFIX) + r"[0-9a-fA-F]{8,}")
# Signature headers: t=<ts>,v0=<hex>
_SIGNATURE_PATTERN = re.compile(r"v0=[0-9a-fA-F]+")

_SECRET_KEY_TERMS = (
    "api_key", "apikey", "api-key", "key_hash",
    "token", "authorization", "bearer",
    "password", "secret", "signature",
)

SENSITIVE_HEADERS = (
    "authorization",
    "elevenlabs-signature",
    "cookie",
    "set-cookie",
)


def mask_email(value: str) -> str:
    """Keep the first three characters of the local part and the domain."""
    local, sep, domain = value.partition("@")
    if not sep or len(local) <= 3:
        return MASK
    return f"{local[:3]}***@{domain}"


def mask_string(value: str) -> str:
    """Mask credentials embedded in free text."""
    value = _API_KEY_PATTERN.sub(lambda m: m.group(0)[:settings.API_KEY_DISPLAY_LENGTH] + "...", value)
    return _SIGNATURE_PATTERN.sub("v0=" + MASK, value)


def mask_sensitive_data(data: Any) -> Any:
    """
    Recursively mask sensitive data in dictionaries, lists, and strings.

    Request IDs and key prefixes are kept for traceability.
    """
    if not settings.LOG_MASK_SENSITIVE:
        return data

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if key_lower in ("requestid", "request_id", "keyprefix", "key_prefix"):
                masked[key] = value
            elif any(term in key_lower for term in _SECRET_KEY_TERMS):
                masked[key] = MASK
            elif "email" in key_lower and isinstance(value, str):
                masked[key] = mask_email(value)
            else:
                masked[key] = mask_sensitive_data(value)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item) for item in data]

    if isinstance(data, str):
        return mask_string(data)

    return data


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Mask sensitive HTTP headers."""
    return {
        key: MASK if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def get_request_id(request: Optional[Request]) -> Optional[str]:
    """Request ID assigned by the logging middleware, if any."""
    if request and hasattr(request.state, "request_id"):
        return request.state.request_id
    return None


def get_client_ip(request: Request) -> Optional[str]:
    """Client IP, honouring X-Forwarded-For / X-Real-IP from the proxy in front of us."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Build a log line of the form ``message | Key: value | ... | RequestID: <id>``.

    Context values are masked; the RequestID is appended last so the
    formatter can lift it into its own column.
    """
    request_id = kwargs.pop('RequestID', None) or kwargs.pop('request_id', None)

    context_parts = []
    for key, value in mask_sensitive_data(kwargs).items():
        if isinstance(value, (dict, list)):
            context_parts.append(f"{key}: {str(value)[:200]}")
        else:
            context_parts.append(f"{key}: {value}")

    formatted_message = mask_string(message) if settings.LOG_MASK_SENSITIVE else message
    if context_parts:
        formatted_message = f"{formatted_message} | {' | '.join(context_parts)}"

    if request_id:
        formatted_message = f"{formatted_message} | RequestID: {request_id}"

    return formatted_message
