"""
Tests for API key hashing, generation and bearer validation.
"""
import hashlib
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy.exc import OperationalError
from abm_api.core.api_key import (
    hash_api_key,
    verify_api_key,
    generate_api_key,
    extract_bearer_token,
    expiry_from_days,
    validate_api_key,
)
from abm_api.models.api_key import ApiKey, as_utc


class TestApiKeyHashing:
    """Tests for API key hashing functions."""

    def test_hash_api_key_is_sha256_hex(self):
        raw_key = "trig_0123456789abcdef"
        hashed = hash_api_key(raw_key)

        assert hashed == hashlib.sha256(raw_key.encode("utf-8")).hexdigest()
        assert len(hashed) == 64
        assert all(c in "0123456789abcdef" for c in hashed)

    def test_hash_api_key_consistent(self):
        assert hash_api_key("trig_same") == hash_api_key("trig_same")

    def test_hash_api_key_different_inputs(self):
        assert hash_api_key("trig_key1") != hash_api_key("trig_key2")

    def test_verify_api_key(self):
        hashed = hash_api_key("trig_secret")

        assert verify_api_key("trig_secret", hashed) is True
        assert verify_api_key("trig_other", hashed) is False
        assert verify_api_key("", hashed) is False


class TestApiKeyGeneration:

    def test_generate_api_key_format(self):
        raw_key, key_hash, key_prefix = generate_api_key()

        assert raw_key.startswith("trig_")
        assert len(raw_key) == len("trig_") + 64
        assert key_prefix == raw_key[:10]
        assert key_hash == hash_api_key(raw_key)

    def test_generate_api_key_unique(self):
        assert generate_api_key()[0] != generate_api_key()[0]

    def test_expiry_from_days(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)

        assert expiry_from_days(0, now) is None
        assert expiry_from_days(30, now) == now + timedelta(days=30)

    def test_extract_bearer_token(self):
        assert extract_bearer_token("Bearer trig_abc") == "trig_abc"
        assert extract_bearer_token("Basic dXNlcjpwYXNz") is None
        assert extract_bearer_token("Bearer ") is None
        assert extract_bearer_token(None) is None


class TestApiKeyModel:

    def test_is_valid_without_expiry(self):
        assert ApiKey(is_active=True, expires_at=None).is_valid() is True

    def test_is_valid_inactive(self):
        assert ApiKey(is_active=False, expires_at=None).is_valid() is False

    def test_is_valid_expiry_boundary(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        key = ApiKey(is_active=True, expires_at=now + timedelta(seconds=1))

        assert key.is_valid(now) is True
        assert key.is_valid(now + timedelta(seconds=1)) is False

    def test_naive_expiry_treated_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0, 0)

        assert as_utc(naive) == datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestValidateApiKey:
    """Tests for bearer validation against the key store."""

    @pytest.mark.asyncio
    async def test_missing_header(self, db_session):
        result = await validate_api_key(None, db_session)

        assert result.is_valid is False
        assert result.status_code == 401
        assert result.error == "Missing or invalid Authorization header"

    @pytest.mark.asyncio
    async def test_not_bearer(self, db_session):
        result = await validate_api_key("Token trig_abc", db_session)

        assert result.error == "Missing or invalid Authorization header"

    @pytest.mark.asyncio
    async def test_wrong_prefix(self, db_session):
        result = await validate_api_key("Bearer sk_live_123", db_session)

        assert result.is_valid is False
        assert result.error == "Invalid API key format"

    @pytest.mark.asyncio
    async def test_unknown_key(self, db_session):
        result = await validate_api_key(f"Bearer trig_{'0' * 64}", db_session)

        assert result.is_valid is False
        assert result.error == "Invalid or expired API key"

    @pytest.mark.asyncio
    async def test_valid_key(self, db_session, api_key, organization):
        raw_key, key = api_key

        result = await validate_api_key(f"Bearer {raw_key}", db_session)

        assert result.is_valid is True
        assert result.organization_id == organization.id
        assert result.organization_name == "Acme Inc"
        assert result.key_id == key.id
        assert result.key_name == "Test Key"

        await db_session.refresh(key)
        assert key.last_used_at is not None

    @pytest.mark.asyncio
    async def test_inactive_key(self, db_session, api_key):
        raw_key, key = api_key
        key.is_active = False
        await db_session.commit()

        result = await validate_api_key(f"Bearer {raw_key}", db_session)

        assert result.is_valid is False
        assert result.error == "Invalid or expired API key"

    @pytest.mark.asyncio
    async def test_expired_key_is_deactivated(self, db_session, make_api_key, organization):
        raw_key, key = await make_api_key(organization, expiry_days=30)
        later = datetime.now(timezone.utc) + timedelta(days=31)

        result = await validate_api_key(f"Bearer {raw_key}", db_session, now=later)

        assert result.is_valid is False
        assert result.error == "API key has expired"

        await db_session.refresh(key)
        assert key.is_active is False

        # Once deactivated the key is simply unknown to the active lookup
        again = await validate_api_key(f"Bearer {raw_key}", db_session, now=later)
        assert again.is_valid is False
        assert again.error == "Invalid or expired API key"

    @pytest.mark.asyncio
    async def test_last_used_write_failure_is_tolerated(self, db_session, api_key, monkeypatch):
        raw_key, key = api_key
        key_id = key.id

        async def failing_commit():
            raise OperationalError("UPDATE api_keys", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        result = await validate_api_key(f"Bearer {raw_key}", db_session)

        assert result.is_valid is True
        assert result.key_id == key_id

    @pytest.mark.asyncio
    async def test_lookup_failure_is_server_error(self, db_session, monkeypatch):
        async def failing_execute(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("no such table: api_keys"))

        monkeypatch.setattr(db_session, "execute", failing_execute)

        result = await validate_api_key(f"Bearer trig_{'a' * 64}", db_session)

        assert result.is_valid is False
        assert result.status_code == 500


class TestApiKeyEndpoints:

    @pytest.mark.asyncio
    async def test_requires_bearer(self, async_client):
        response = await async_client.get("/api/v1/api-keys")

        assert response.status_code == 401
        assert response.json() == {"error": "Missing or invalid Authorization header"}
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_list_keys_hides_hash(self, async_client, auth_headers, api_key):
        response = await async_client.get("/api/v1/api-keys", headers=auth_headers)

        assert response.status_code == 200
        keys = response.json()["api_keys"]
        assert len(keys) == 1
        assert keys[0]["id"] == api_key[1].id
        assert "key_hash" not in keys[0]

    @pytest.mark.asyncio
    async def test_create_key_returns_raw_key_once(self, async_client, auth_headers):
        response = await async_client.post(
            "/api/v1/api-keys",
            json={"name": "CRM sync", "expiry_days": 7},
            headers=auth_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["api_key"].startswith("trig_")
        assert body["key"]["key_prefix"] == body["api_key"][:10]
        assert body["key"]["expires_at"] is not None

        # The new key authenticates for the same organization
        listed = await async_client.get(
            "/api/v1/api-keys",
            headers={"Authorization": f"Bearer {body['api_key']}"}
        )
        assert listed.status_code == 200
        assert len(listed.json()["api_keys"]) == 2

    @pytest.mark.asyncio
    async def test_revoke_key(self, async_client, auth_headers, make_api_key, organization):
        raw_other, other = await make_api_key(organization, name="Other")

        response = await async_client.delete(f"/api/v1/api-keys/{other.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True}

        rejected = await async_client.get(
            "/api/v1/api-keys",
            headers={"Authorization": f"Bearer {raw_other}"}
        )
        assert rejected.status_code == 401

    @pytest.mark.asyncio
    async def test_revoke_unknown_key(self, async_client, auth_headers):
        response = await async_client.delete("/api/v1/api-keys/does-not-exist", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "API key not found"}

    @pytest.mark.asyncio
    async def test_revoke_other_organization_key(
        self, async_client, auth_headers, make_organization, make_api_key
    ):
        rival = await make_organization("rival")
        _, rival_key = await make_api_key(rival)

        response = await async_client.delete(f"/api/v1/api-keys/{rival_key.id}", headers=auth_headers)

        assert response.status_code == 403


class TestOrganizationService:

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, db_session):
        from abm_api.services.api_key_service import OrganizationService

        created = await OrganizationService.get_or_create(db_session, "initech", "Initech")
        again = await OrganizationService.get_or_create(db_session, "initech", "Ignored Name")

        assert again.id == created.id
        assert again.name == "Initech"

    @pytest.mark.asyncio
    async def test_name_defaults_to_slug(self, db_session):
        from abm_api.services.api_key_service import OrganizationService

        organization = await OrganizationService.get_or_create(db_session, "umbrella")

        assert organization.name == "umbrella"
