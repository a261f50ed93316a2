import logging
from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.core.api_key import generate_api_key, expiry_from_days
from abm_api.core.exceptions import ForbiddenException, NotFoundException
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.models.api_key import ApiKey
from abm_api.models.organization import Organization

logger = logging.getLogger(__name__)


class ApiKeyService:
    """Service for API key minting, listing and revocation. Keys are never deleted."""

    @staticmethod
    async def create_api_key(
        db: AsyncSession,
        organization_id: str,
        name: str,
        expiry_days: int = 0,
        created_by: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Tuple[str, ApiKey]:
        """
        Mint a key for an organization.

        Returns:
            Tuple of (raw_key, ApiKey). The raw key must be shown to the
            caller now; only its hash is stored.
        """
        raw_key, key_hash, key_prefix = generate_api_key()

        api_key = ApiKey(
            organization_id=organization_id,
            name=name,
            key_hash=key_hash,
            key_prefix=key_prefix,
            expires_at=expiry_from_days(expiry_days),
            created_by=created_by,
            is_active=True,
        )
        db.add(api_key)
        await db.commit()
        await db.refresh(api_key)

        logger.info(
            sanitize_log_message(
                "API key created",
                RequestID=request_id,
                KeyID=api_key.id,
                KeyPrefix=key_prefix,
                OrganizationID=organization_id,
                ExpiresAt=api_key.expires_at.isoformat() if api_key.expires_at else None
            )
        )
        return raw_key, api_key

    @staticmethod
    async def list_api_keys(db: AsyncSession, organization_id: str) -> List[ApiKey]:
        result = await db.execute(
            select(ApiKey)
            .where(ApiKey.organization_id == organization_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def revoke_api_key(
        db: AsyncSession,
        key_id: str,
        organization_id: str,
        request_id: Optional[str] = None
    ) -> ApiKey:
        """
        Deactivate a key of the caller's organization.

        Raises:
            NotFoundException if the key does not exist
            ForbiddenException if it belongs to another organization
        """
        result = await db.execute(select(ApiKey).where(ApiKey.id == key_id))
        api_key = result.scalar_one_or_none()

        if api_key is None:
            raise NotFoundException("API key not found")
        if api_key.organization_id != organization_id:
            raise ForbiddenException("You don't have access to this API key")

        api_key.is_active = False
        await db.commit()
        await db.refresh(api_key)

        logger.info(
            sanitize_log_message(
                "API key revoked",
                RequestID=request_id,
                KeyID=api_key.id,
                KeyPrefix=api_key.key_prefix
            )
        )
        return api_key


class OrganizationService:
    """Minimal organization lookups used when minting keys outside a user session."""

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Optional[Organization]:
        result = await db.execute(select(Organization).where(Organization.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_or_create(db: AsyncSession, slug: str, name: Optional[str] = None) -> Organization:
        organization = await OrganizationService.get_by_slug(db, slug)
        if organization is not None:
            return organization

        organization = Organization(slug=slug, name=name or slug)
        db.add(organization)
        await db.commit()
        await db.refresh(organization)
        logger.info(sanitize_log_message("Organization created", OrganizationID=organization.id, Slug=slug))
        return organization
