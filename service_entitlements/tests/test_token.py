"""
Unit tests for bearer token verification.
"""

import pytest

from shared.errors import AuthenticationError
from shared.test_helpers import MockTokenGenerator, TestUser
from service_entitlements.app.auth.token import TokenVerifier


class TestTokenVerifier:
    """Test cases for TokenVerifier."""

    @pytest.fixture
    def verifier(self):
        return TokenVerifier("test-secret", audience="authenticated")

    @pytest.fixture
    def tokens(self):
        return MockTokenGenerator(secret="test-secret")

    @pytest.fixture
    def user(self):
        return TestUser(user_id="user-1", email="teacher@hillside.example", tenant_id="tenant-1")

    def test_authenticate_valid_token(self, verifier, tokens, user):
        header = f"Bearer {tokens.generate_access_token(user)}"
        assert verifier.authenticate(header) == "user-1"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer    "])
    def test_missing_or_malformed_header(self, verifier, header):
        with pytest.raises(AuthenticationError):
            verifier.authenticate(header)

    def test_wrong_secret(self, verifier, user):
        token = MockTokenGenerator(secret="other-secret").generate_access_token(user)
        with pytest.raises(AuthenticationError) as exc_info:
            verifier.authenticate(f"Bearer {token}")
        assert exc_info.value.status_code == 401

    def test_expired_token(self, verifier, tokens, user):
        with pytest.raises(AuthenticationError):
            verifier.authenticate(f"Bearer {tokens.generate_expired_token(user)}")

    def test_wrong_audience(self, verifier, user):
        token = MockTokenGenerator(secret="test-secret", audience="service-role").generate_access_token(user)
        with pytest.raises(AuthenticationError):
            verifier.authenticate(f"Bearer {token}")

    def test_missing_subject(self, verifier, tokens, user):
        token = tokens.generate_access_token(user, sub="")
        with pytest.raises(AuthenticationError):
            verifier.authenticate(f"Bearer {token}")

    def test_audience_check_disabled(self, user):
        verifier = TokenVerifier("test-secret", audience=None)
        token = MockTokenGenerator(secret="test-secret", audience="anything").generate_access_token(user)
        assert verifier.authenticate(f"Bearer {token}") == "user-1"
