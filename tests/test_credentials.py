"""Tests for client secret issuance, removal and validation."""

import asyncio

import pytest

from third_party_application.config import CredentialConfig, MutationConfig
from third_party_application.core import CredentialService
from third_party_application.core.credential_service import HINT_LENGTH
from third_party_application.errors import (
    ApplicationNotFound,
    ClientSecretNotFound,
    ClientSecretRequired,
    ClientSecretsLimitExceeded,
)
from third_party_application.telemetry import TelemetryEvents, get_dev_logs


@pytest.mark.asyncio
class TestSecretHasher:
    """Test bcrypt hashing off the event loop."""

    async def test_hash_and_check(self, hasher):
        hashed = await hasher.hash_secret("s3cret")

        assert hashed != "s3cret"
        assert await hasher.check_secret("s3cret", hashed)
        assert not await hasher.check_secret("s3cre7", hashed)

    async def test_hashes_are_salted(self, hasher):
        assert await hasher.hash_secret("same") != await hasher.hash_secret("same")

    async def test_malformed_hash_does_not_match(self, hasher):
        assert not await hasher.check_secret("s3cret", "not-a-bcrypt-hash")


@pytest.mark.asyncio
class TestAddClientSecret:
    """Test issuing client secrets."""

    async def test_add_client_secret(self, credentials, db, testing_application):
        """Test the plaintext is returned once and only its hash is stored."""
        result = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        assert result.client_secret
        assert len(result.tokens.client_secrets) == 1
        assert result.tokens.client_secrets[0].id == result.secret_id
        assert result.tokens.client_secrets[0].hint == result.client_secret[-HINT_LENGTH:]

        stored = await db.get_application(testing_application.id)
        stored_secret = stored.tokens.client_secrets[0]
        assert stored_secret.hashed_secret != result.client_secret
        assert result.client_secret not in stored.model_dump_json()
        assert len(get_dev_logs(TelemetryEvents.CLIENT_SECRET_ADDED)) == 1

    async def test_secrets_are_unique(self, credentials, testing_application):
        first = await credentials.add_client_secret(testing_application.id, "admin@example.com")
        second = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        assert first.client_secret != second.client_secret
        assert first.secret_id != second.secret_id

    async def test_limit_exceeded(self, credentials, db, testing_application):
        """Test the sixth secret is refused when the limit is five."""
        for _ in range(5):
            await credentials.add_client_secret(testing_application.id, "admin@example.com")

        with pytest.raises(ClientSecretsLimitExceeded) as exc_info:
            await credentials.add_client_secret(testing_application.id, "admin@example.com")

        assert exc_info.value.limit == 5
        stored = await db.get_application(testing_application.id)
        assert len(stored.tokens.client_secrets) == 5

    async def test_add_after_delete_at_limit(self, credentials, testing_application):
        """Test deleting one secret at the limit frees a slot for the next add."""
        added = [
            await credentials.add_client_secret(testing_application.id, "admin@example.com")
            for _ in range(5)
        ]

        await credentials.delete_client_secret(
            testing_application.id, added[0].secret_id, "admin@example.com"
        )
        result = await credentials.add_client_secret(
            testing_application.id, "admin@example.com"
        )

        assert len(result.tokens.client_secrets) == 5
        assert added[0].secret_id not in [s.id for s in result.tokens.client_secrets]
        assert result.tokens.client_secrets[-1].id == result.secret_id

    async def test_concurrent_adds_respect_limit(self, credentials, db, testing_application):
        """Test concurrent adds racing for the last free slot never exceed the limit."""
        for _ in range(4):
            await credentials.add_client_secret(testing_application.id, "admin@example.com")

        results = await asyncio.gather(
            credentials.add_client_secret(testing_application.id, "admin@example.com"),
            credentials.add_client_secret(testing_application.id, "admin@example.com"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ClientSecretsLimitExceeded) for r in results) == 1
        stored = await db.get_application(testing_application.id)
        assert len(stored.tokens.client_secrets) == 5

    async def test_add_to_unknown_application(self, credentials):
        with pytest.raises(ApplicationNotFound):
            await credentials.add_client_secret("missing", "admin@example.com")


@pytest.mark.asyncio
class TestDeleteClientSecret:
    """Test removing client secrets."""

    async def test_delete_client_secret(self, credentials, testing_application):
        first = await credentials.add_client_secret(testing_application.id, "admin@example.com")
        second = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        tokens = await credentials.delete_client_secret(
            testing_application.id, first.secret_id, "admin@example.com"
        )

        assert [s.id for s in tokens.client_secrets] == [second.secret_id]
        assert len(get_dev_logs(TelemetryEvents.CLIENT_SECRET_REMOVED)) == 1

    async def test_delete_unknown_secret(self, credentials, testing_application):
        await credentials.add_client_secret(testing_application.id, "admin@example.com")

        with pytest.raises(ClientSecretNotFound):
            await credentials.delete_client_secret(
                testing_application.id, "no-such-secret", "admin@example.com"
            )

    async def test_last_secret_is_required(self, credentials, testing_application):
        """Test the last remaining secret cannot be deleted."""
        only = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        with pytest.raises(ClientSecretRequired):
            await credentials.delete_client_secret(
                testing_application.id, only.secret_id, "admin@example.com"
            )

    async def test_last_secret_deletable_when_allowed(self, db, hasher, testing_application):
        service = CredentialService(
            db,
            hasher,
            CredentialConfig(hash_function_work_factor=4, allow_zero_client_secrets=True),
            MutationConfig(),
        )
        only = await service.add_client_secret(testing_application.id, "admin@example.com")

        tokens = await service.delete_client_secret(
            testing_application.id, only.secret_id, "admin@example.com"
        )

        assert tokens.client_secrets == []


@pytest.mark.asyncio
class TestValidateCredentials:
    """Test client credential validation."""

    async def test_valid_credentials(self, credentials, testing_application):
        result = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        application = await credentials.validate_credentials(
            testing_application.tokens.client_id, result.client_secret
        )

        assert application is not None
        assert application.id == testing_application.id

    async def test_any_stored_secret_is_accepted(self, credentials, testing_application):
        first = await credentials.add_client_secret(testing_application.id, "admin@example.com")
        await credentials.add_client_secret(testing_application.id, "admin@example.com")

        application = await credentials.validate_credentials(
            testing_application.tokens.client_id, first.client_secret
        )

        assert application is not None

    async def test_one_character_change_fails(self, credentials, testing_application):
        """Test a secret differing in a single character is rejected."""
        result = await credentials.add_client_secret(testing_application.id, "admin@example.com")
        secret = result.client_secret
        altered = secret[:-1] + ("A" if secret[-1] != "A" else "B")

        assert (
            await credentials.validate_credentials(testing_application.tokens.client_id, altered)
            is None
        )

    async def test_unknown_client_id(self, credentials, testing_application):
        result = await credentials.add_client_secret(testing_application.id, "admin@example.com")

        assert await credentials.validate_credentials("unknown", result.client_secret) is None

    async def test_deleted_secret_no_longer_validates(self, credentials, testing_application):
        first = await credentials.add_client_secret(testing_application.id, "admin@example.com")
        await credentials.add_client_secret(testing_application.id, "admin@example.com")
        await credentials.delete_client_secret(
            testing_application.id, first.secret_id, "admin@example.com"
        )

        assert (
            await credentials.validate_credentials(
                testing_application.tokens.client_id, first.client_secret
            )
            is None
        )

    async def test_fetch_credentials_hides_hashes(self, credentials, testing_application):
        await credentials.add_client_secret(testing_application.id, "admin@example.com")

        tokens = await credentials.fetch_credentials(testing_application.id)

        assert tokens.client_id == testing_application.tokens.client_id
        assert "hashed_secret" not in tokens.model_dump()["client_secrets"][0]
