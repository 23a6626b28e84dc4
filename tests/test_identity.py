"""
Tests for the identity provider: identifier resolution, sessions and claim
mutation.
"""

import json

import pytest
import pytest_asyncio
import yaml

from claimgate.identity import (
    FileIdentityProvider,
    IdentifierKind,
    MemoryIdentityProvider,
    ServiceCredentials,
    UserRecord,
    load_credentials,
    resolve_identifier,
)
from claimgate.types import (
    ClaimMutationError,
    CredentialsError,
    PrincipalNotFoundError,
    ValidationError,
)


@pytest_asyncio.fixture
async def provider():
    """Memory identity provider with two users"""
    provider = MemoryIdentityProvider()
    await provider.create_user(key="adminUser", email="admin@example.com")
    await provider.create_user(key="userUid", email="user@example.com")
    yield provider
    await provider.close()


class TestIdentifierResolution:
    """Test email-or-key resolution"""

    def test_email_identifier(self):
        resolved = resolve_identifier("admin@example.com")
        assert resolved.kind is IdentifierKind.EMAIL
        assert resolved.value == "admin@example.com"

    def test_key_identifier(self):
        resolved = resolve_identifier("adminUser")
        assert resolved.kind is IdentifierKind.KEY

    @pytest.mark.parametrize("identifier", ["", "   ", None])
    def test_empty_identifier(self, identifier):
        with pytest.raises(ValidationError):
            resolve_identifier(identifier)


class TestDirectory:
    """Test the user directory"""

    @pytest.mark.asyncio
    async def test_lookup_by_email_and_key(self, provider):
        by_email = await provider.lookup("admin@example.com")
        by_key = await provider.lookup("adminUser")
        assert by_email.key == by_key.key == "adminUser"

    @pytest.mark.asyncio
    async def test_get_user_by_email_and_key(self, provider):
        user = await provider.get_user_by_email("admin@example.com")
        assert (await provider.get_user(user.key)).email == "admin@example.com"
        with pytest.raises(PrincipalNotFoundError):
            await provider.get_user_by_email("ghost@example.com")

    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, provider):
        user = await provider.lookup("Admin@Example.com")
        assert user.key == "adminUser"

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, provider):
        with pytest.raises(PrincipalNotFoundError) as exc_info:
            await provider.lookup("nobody@example.com")
        assert exc_info.value.lookup == "email"

        with pytest.raises(PrincipalNotFoundError) as exc_info:
            await provider.lookup("nobody")
        assert exc_info.value.lookup == "key"

    @pytest.mark.asyncio
    async def test_duplicate_users_rejected(self, provider):
        with pytest.raises(ValidationError):
            await provider.create_user(key="adminUser")
        with pytest.raises(ValidationError):
            await provider.create_user(key="other", email="ADMIN@example.com")

    @pytest.mark.asyncio
    async def test_keys_cannot_contain_at_sign(self, provider):
        with pytest.raises(ValidationError):
            await provider.create_user(key="a@b")

    @pytest.mark.asyncio
    async def test_generated_key(self, provider):
        user = await provider.create_user(email="new@example.com")
        assert user.key
        assert (await provider.lookup("new@example.com")).key == user.key

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, provider):
        user = await provider.get_user("adminUser")
        user.custom_claims['admin'] = True
        assert (await provider.get_user("adminUser")).custom_claims == {}


class TestClaimMutation:
    """Test out-of-band claim mutation"""

    @pytest.mark.asyncio
    async def test_set_claim_by_email(self, provider):
        result = await provider.set_claim("admin@example.com", "admin", True)
        assert result.changed
        assert result.user.key == "adminUser"
        assert (await provider.get_user("adminUser")).custom_claims == {'admin': True}

    @pytest.mark.asyncio
    async def test_set_claim_is_idempotent(self, provider):
        first = await provider.set_claim("admin@example.com", "admin", True)
        second = await provider.set_claim("admin@example.com", "admin", True)
        assert first.changed
        assert not second.changed
        assert second.user.custom_claims == first.user.custom_claims

    @pytest.mark.asyncio
    async def test_set_claim_keeps_other_claims(self, provider):
        await provider.set_claim("adminUser", "tier", "gold")
        await provider.set_claim("adminUser", "admin", True)
        user = await provider.get_user("adminUser")
        assert user.custom_claims == {'tier': 'gold', 'admin': True}

    @pytest.mark.asyncio
    async def test_cross_type_value_counts_as_change(self, provider):
        await provider.set_claim("adminUser", "admin", 1)
        result = await provider.set_claim("adminUser", "admin", True)
        assert result.changed
        assert (await provider.get_user("adminUser")).custom_claims['admin'] is True

    @pytest.mark.asyncio
    async def test_revoke_claim(self, provider):
        await provider.set_claim("adminUser", "admin", True)
        result = await provider.set_claim("adminUser", "admin", False)
        assert result.changed
        principal = (await provider.get_user("adminUser")).to_principal()
        assert not principal.claims.is_admin

    @pytest.mark.asyncio
    async def test_set_claim_unknown_user(self, provider):
        with pytest.raises(PrincipalNotFoundError):
            await provider.set_claim("ghost@example.com", "admin", True)

    @pytest.mark.asyncio
    async def test_set_claim_requires_name(self, provider):
        with pytest.raises(ValidationError):
            await provider.set_claim("adminUser", "", True)


class TestSessions:
    """Test session construction"""

    @pytest.mark.asyncio
    async def test_build_session(self, provider):
        session = await provider.build_session("adminUid", True, {'admin': True}, environment_id="env-1")
        assert session.principal.authenticated
        assert session.principal.claims.is_admin
        assert session.environment_id == "env-1"
        assert not session.closed

    @pytest.mark.asyncio
    async def test_session_claims_are_a_snapshot(self, provider):
        claims = {'admin': False}
        session = await provider.build_session("userUid", True, claims)
        claims['admin'] = True
        assert not session.principal.claims.is_admin

    @pytest.mark.asyncio
    async def test_session_for_user_sees_stored_claims(self, provider):
        before = await provider.session_for_user("adminUser")
        await provider.set_claim("admin@example.com", "admin", True)
        after = await provider.session_for_user("adminUser")
        assert not before.principal.claims.is_admin
        assert after.principal.claims.is_admin

    @pytest.mark.asyncio
    async def test_build_session_requires_key(self, provider):
        with pytest.raises(ValidationError):
            await provider.build_session("", True)

    def test_disabled_user_is_unauthenticated(self):
        user = UserRecord(key="u", disabled=True, custom_claims={'admin': True})
        assert not user.to_principal().authenticated


class TestFileIdentityProvider:
    """Test the file-backed user directory"""

    @pytest.mark.asyncio
    async def test_missing_file_starts_empty(self, tmp_path):
        provider = await FileIdentityProvider.open(str(tmp_path / "users.yaml"))
        assert await provider.list_users() == []

    @pytest.mark.asyncio
    async def test_claims_are_written_back(self, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text(yaml.safe_dump({'users': [{'key': 'adminUser', 'email': 'admin@example.com'}]}))

        provider = await FileIdentityProvider.open(str(path))
        await provider.set_claim("admin@example.com", "admin", True)

        reopened = await FileIdentityProvider.open(str(path))
        user = await reopened.get_user("adminUser")
        assert user.custom_claims == {'admin': True}

    @pytest.mark.asyncio
    async def test_unchanged_claim_does_not_rewrite(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text(json.dumps({'users': [{'key': 'adminUser', 'custom_claims': {'admin': True}}]}))
        before = path.read_text()

        provider = await FileIdentityProvider.open(str(path))
        result = await provider.set_claim("adminUser", "admin", True)

        assert not result.changed
        assert path.read_text() == before

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back_claim(self, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text(yaml.safe_dump({'users': [{'key': 'adminUser', 'email': 'admin@example.com'}]}))
        provider = await FileIdentityProvider.open(str(path))

        async def failing_write():
            raise ClaimMutationError("disk full")

        provider._persist = failing_write
        with pytest.raises(ClaimMutationError):
            await provider.set_claim("adminUser", "admin", True)
        assert (await provider.get_user("adminUser")).custom_claims == {}

        del provider._persist
        result = await provider.set_claim("adminUser", "admin", True)
        assert result.changed

        reopened = await FileIdentityProvider.open(str(path))
        assert (await reopened.get_user("adminUser")).custom_claims == {'admin': True}

    @pytest.mark.asyncio
    async def test_failed_write_restores_previous_value(self, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text(yaml.safe_dump({'users': [{'key': 'adminUser', 'custom_claims': {'admin': False}}]}))
        provider = await FileIdentityProvider.open(str(path))

        async def failing_write():
            raise ClaimMutationError("disk full")

        provider._persist = failing_write
        with pytest.raises(ClaimMutationError):
            await provider.set_claim("adminUser", "admin", True)
        assert (await provider.get_user("adminUser")).custom_claims == {'admin': False}

    @pytest.mark.asyncio
    async def test_directory_requires_users_list(self, tmp_path):
        path = tmp_path / "users.yaml"
        path.write_text("users: nope\n")
        with pytest.raises(ValidationError):
            await FileIdentityProvider.open(str(path))

    @pytest.mark.asyncio
    async def test_create_user_persists(self, tmp_path):
        path = tmp_path / "users.yaml"
        provider = await FileIdentityProvider.open(str(path))
        await provider.create_user(key="e2eAdmin", email="e2e-admin@example.com")

        data = yaml.safe_load(path.read_text())
        assert [u['key'] for u in data['users']] == ["e2eAdmin"]


class TestCredentials:
    """Test service account credential loading"""

    @pytest.mark.asyncio
    async def test_load_credentials(self, tmp_path):
        path = tmp_path / "serviceAccountKey.json"
        path.write_text(json.dumps({
            'project_id': 'demo-project',
            'client_email': 'svc@demo-project.example.com',
            'private_key': 'secret-key',
        }))
        credentials = await load_credentials(str(path))
        assert credentials.project_id == 'demo-project'
        assert 'secret-key' not in repr(credentials)

    @pytest.mark.asyncio
    async def test_missing_credentials(self, tmp_path):
        with pytest.raises(CredentialsError) as exc_info:
            await load_credentials(str(tmp_path / "serviceAccountKey.json"))
        assert "not found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "key.json"
        path.write_text("{not json")
        with pytest.raises(CredentialsError):
            await load_credentials(str(path))

    def test_missing_fields(self):
        with pytest.raises(CredentialsError) as exc_info:
            ServiceCredentials.from_dict({'project_id': 'p'})
        assert exc_info.value.details['missing'] == ['client_email', 'private_key']
