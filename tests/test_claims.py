"""
Tests for the claims model.
"""

import pytest

from claimgate.claims import (
    Claims,
    Principal,
    parse_bool_claim,
    recognized_claim_names,
    strict_equals,
)


class TestClaimParsing:
    """Test typed claim access"""

    def test_parse_bool_claim(self):
        assert parse_bool_claim(True) is True
        assert parse_bool_claim(False) is False
        assert parse_bool_claim("true") is None
        assert parse_bool_claim(1) is None
        assert parse_bool_claim(None) is None
        assert parse_bool_claim([True]) is None

    def test_strict_equals_refuses_cross_type(self):
        assert strict_equals(True, True)
        assert not strict_equals(1, True)
        assert not strict_equals("true", True)
        assert strict_equals("a", "a")

    def test_missing_admin_claim_defaults_to_false(self):
        claims = Claims()
        assert claims.get_claim('admin') is False
        assert not claims.is_admin

    @pytest.mark.parametrize("raw", ["true", 1, "yes", {"value": True}])
    def test_malformed_admin_claim_is_not_admin(self, raw):
        claims = Claims({'admin': raw})
        assert claims.get_claim('admin') is False
        assert not claims.is_admin
        # Raw value is still visible
        assert claims['admin'] == raw

    def test_admin_claim_true(self):
        claims = Claims({'admin': True})
        assert claims.is_admin
        assert claims.has_claim('admin')

    def test_unknown_claims_pass_through(self):
        claims = Claims({'tier': 'gold'})
        assert claims.get_claim('tier') == 'gold'
        assert claims.get_claim('missing') is None

    def test_recognized_claims(self):
        assert 'admin' in recognized_claim_names()


class TestClaimsImmutability:
    """Test that claim bags cannot change after construction"""

    def test_claims_are_read_only(self):
        claims = Claims({'admin': True})
        with pytest.raises(TypeError):
            claims['admin'] = False

    def test_source_dict_changes_do_not_leak(self):
        source = {'admin': False}
        claims = Claims(source)
        source['admin'] = True
        assert claims.is_admin is False

    def test_with_claim_returns_new_bag(self):
        claims = Claims()
        updated = claims.with_claim('admin', True)
        assert updated.is_admin
        assert not claims.is_admin

    def test_non_string_claim_names_rejected(self):
        with pytest.raises(TypeError):
            Claims({1: True})

    def test_equality_and_hash(self):
        assert Claims({'admin': True}) == Claims({'admin': True})
        assert Claims({'admin': True}) == {'admin': True}
        assert hash(Claims({'admin': True})) == hash(Claims({'admin': True}))


class TestPrincipal:
    """Test principal construction"""

    def test_anonymous(self):
        principal = Principal.anonymous()
        assert principal.key == "anon"
        assert not principal.authenticated
        assert len(principal.claims) == 0

    def test_authenticated_as(self):
        principal = Principal.authenticated_as("adminUid", {'admin': True}, email="admin@example.com")
        assert principal.authenticated
        assert principal.claims.is_admin
        assert principal.email == "admin@example.com"

    def test_plain_dict_claims_are_coerced(self):
        principal = Principal(key="u", authenticated=True, claims={'admin': True})
        assert isinstance(principal.claims, Claims)
        assert principal.claims.is_admin

    def test_principal_is_frozen(self):
        principal = Principal.authenticated_as("u")
        with pytest.raises(AttributeError):
            principal.authenticated = False

    def test_dict_round_trip(self):
        principal = Principal.authenticated_as("adminUid", {'admin': True})
        restored = Principal.from_dict(principal.to_dict())
        assert restored == principal

    def test_describe_mentions_claims(self):
        text = Principal.authenticated_as("userUid", {'admin': False}).describe()
        assert "userUid" in text
        assert "authenticated" in text
        assert "admin" in text
