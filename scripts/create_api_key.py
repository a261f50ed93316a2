#!/usr/bin/env python3
"""
Script to create a new API key for an organization of the ABM Pages API.

Usage:
    python scripts/create_api_key.py --organization acme --name "CRM sync"
    python scripts/create_api_key.py --organization acme --organization-name "Acme Inc" --name "CI" --expiry-days 90
"""

import asyncio
import argparse
import sys
from pathlib import Path

# Add parent directory to path to import abm_api modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError
from abm_api.database import AsyncSessionLocal, init_db, close_db
from abm_api.models.api_key import ApiKey
from abm_api.models.organization import Organization
from abm_api.services.api_key_service import ApiKeyService, OrganizationService


async def create_api_key(
    organization_slug: str,
    name: str,
    organization_name: str = None,
    expiry_days: int = 0
) -> tuple[str, ApiKey, Organization]:
    """
    Create a new API key, creating the organization first if it does not exist.

    Returns:
        Tuple of (plain_api_key, ApiKey model, Organization model)
    """
    async with AsyncSessionLocal() as session:
        organization = await OrganizationService.get_or_create(
            session,
            slug=organization_slug,
            name=organization_name
        )
        plain_api_key, api_key = await ApiKeyService.create_api_key(
            session,
            organization_id=organization.id,
            name=name,
            expiry_days=expiry_days
        )
        return plain_api_key, api_key, organization


async def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Create a new API key for the ABM Pages API"
    )
    parser.add_argument(
        "--organization",
        required=True,
        help="Organization slug (created if missing)"
    )
    parser.add_argument(
        "--organization-name",
        default=None,
        help="Display name used when the organization is created (defaults to the slug)"
    )
    parser.add_argument(
        "--name",
        required=True,
        help="Label for the API key (required)"
    )
    parser.add_argument(
        "--expiry-days",
        type=int,
        default=0,
        help="Days until the key expires; 0 means never (default: 0)"
    )

    args = parser.parse_args()

    if args.expiry_days < 0:
        parser.error("--expiry-days must be 0 or greater")

    # Initialize database
    await init_db()

    try:
        plain_key, api_key, organization = await create_api_key(
            organization_slug=args.organization,
            name=args.name,
            organization_name=args.organization_name,
            expiry_days=args.expiry_days
        )
    except SQLAlchemyError as e:
        print(f"Error creating API key: {str(e)}", file=sys.stderr)
        sys.exit(1)
    finally:
        await close_db()

    print("\n" + "="*70)
    print("API KEY CREATED SUCCESSFULLY")
    print("="*70)
    print(f"ID: {api_key.id}")
    print(f"Name: {api_key.name}")
    print(f"Organization: {organization.name} ({organization.slug})")
    print(f"Prefix: {api_key.key_prefix}")
    print(f"Expires: {api_key.expires_at or 'never'}")
    print("\n" + "-"*70)
    print("IMPORTANT: Save this API key now. It will NOT be shown again!")
    print("-"*70)
    print(f"\nAPI Key: {plain_key}\n")
    print("="*70)
    print("\nSend it as a bearer token on authenticated requests.")
    print("Example: Authorization: Bearer " + plain_key[:10] + "...")
    print("="*70 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
