import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Optional, Tuple
from fastapi import Header, Depends
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload
from abm_api.config import settings
from abm_api.core.exceptions import UnauthenticatedException, ServerConfigurationException
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.database import get_db
from abm_api.models.api_key import ApiKey

logger = logging.getLogger(__name__)


def hash_api_key(api_key: str) -> str:
    """
    Hash an API key for storage using SHA256.
    Using SHA256 instead of bcrypt because:
    - API keys are long random tokens (not user-chosen passwords)
    - lookups must be by hash, which rules out salted schemes
    """
    return sha256(api_key.encode('utf-8')).hexdigest()


def verify_api_key(plain_key: str, hashed_key: str) -> bool:
    """Verify an API key against its hash using constant-time comparison."""
    computed_hash = hash_api_key(plain_key)
    return secrets.compare_digest(computed_hash, hashed_key)


def generate_api_key() -> Tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        Tuple of (raw_key, key_hash, key_prefix). The raw key is shown to the
        caller once and never stored.
    """
    raw_key = f"{settings.API_KEY_PREFIX}{secrets.token_hex(32)}"
    return raw_key, hash_api_key(raw_key), raw_key[:settings.API_KEY_DISPLAY_LENGTH]


@dataclass(frozen=True)
class AuthResult:
    """Outcome of API key validation. Failures carry the message and HTTP status to answer with."""

    is_valid: bool
    error: Optional[str] = None
    status_code: int = 200
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    key_id: Optional[str] = None
    key_name: Optional[str] = None

    @classmethod
    def failure(cls, error: str, status_code: int = 401) -> "AuthResult":
        return cls(is_valid=False, error=error, status_code=status_code)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a `Bearer <token>` header, or None."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):]
    return token or None


async def _touch_last_used(db: AsyncSession, key_id: str) -> None:
    """Best-effort bookkeeping: failures are logged and never affect validation."""
    try:
        await db.execute(
            update(ApiKey)
            .where(ApiKey.id == key_id)
            .values(last_used_at=datetime.now(timezone.utc))
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning(
            sanitize_log_message(
                "Failed to update API key last_used_at",
                KeyID=key_id,
                Error=str(e)
            )
        )


async def _deactivate(db: AsyncSession, key_id: str) -> None:
    """Flip an expired key to inactive. Repeating it is harmless."""
    try:
        await db.execute(
            update(ApiKey)
            .where(ApiKey.id == key_id)
            .values(is_active=False)
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            sanitize_log_message(
                "Failed to deactivate expired API key",
                KeyID=key_id,
                Error=str(e)
            )
        )


async def validate_api_key(
    authorization: Optional[str],
    db: AsyncSession,
    now: Optional[datetime] = None
) -> AuthResult:
    """
    Validate a bearer API key and resolve the organization it belongs to.

    Uses a direct hash lookup instead of iterating through all keys.

    Args:
        authorization: Raw Authorization header value
        db: Database session
        now: Reference time (defaults to current UTC time)

    Returns:
        AuthResult; invalid input never raises
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return AuthResult.failure("Missing or invalid Authorization header")

    if not token.startswith(settings.API_KEY_PREFIX):
        return AuthResult.failure("Invalid API key format")

    key_hash = hash_api_key(token)
    key_prefix = token[:settings.API_KEY_DISPLAY_LENGTH]

    logger.debug(
        sanitize_log_message(
            "API key validation",
            KeyPrefix=key_prefix,
            HashPrefix=key_hash[:10]
        )
    )

    try:
        result = await db.execute(
            select(ApiKey)
            .options(joinedload(ApiKey.organization))
            .where(
                ApiKey.key_hash == key_hash,
                ApiKey.is_active == True
            )
        )
        api_key = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(
            sanitize_log_message(
                "API key lookup failed",
                KeyPrefix=key_prefix,
                Error=str(e)
            ),
            exc_info=True
        )
        return AuthResult.failure(
            "Server configuration error. API key storage is unavailable.",
            status_code=500
        )

    if api_key is None:
        logger.info(
            sanitize_log_message(
                "API key not found or inactive",
                KeyPrefix=key_prefix
            )
        )
        return AuthResult.failure("Invalid or expired API key")

    now = now or datetime.now(timezone.utc)
    if api_key.is_expired(now):
        key_id = api_key.id
        await _deactivate(db, key_id)
        logger.info(
            sanitize_log_message(
                "API key expired",
                KeyID=key_id,
                KeyPrefix=key_prefix
            )
        )
        return AuthResult.failure("API key has expired")

    # Build the result before the bookkeeping write: a rollback there expires loaded rows
    auth = AuthResult(
        is_valid=True,
        organization_id=api_key.organization_id,
        organization_name=api_key.organization.name if api_key.organization else None,
        key_id=api_key.id,
        key_name=api_key.name,
    )

    await _touch_last_used(db, auth.key_id)

    return auth


async def require_api_key(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> AuthResult:
    """
    Validate API key and raise exception if invalid.

    Args:
        authorization: Authorization header
        db: Database session

    Returns:
        Successful AuthResult

    Raises:
        UnauthenticatedException for credential failures,
        ServerConfigurationException when the key store is unreachable
    """
    auth = await validate_api_key(authorization, db)

    if auth.is_valid:
        return auth

    if auth.status_code >= 500:
        raise ServerConfigurationException(detail=auth.error)

    raise UnauthenticatedException(
        detail=auth.error,
        headers={"WWW-Authenticate": "Bearer"},
    )


def expiry_from_days(expiry_days: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """Expiry timestamp for a new key; 0 or less means the key never expires."""
    if expiry_days <= 0:
        return None
    return (now or datetime.now(timezone.utc)) + timedelta(days=expiry_days)
