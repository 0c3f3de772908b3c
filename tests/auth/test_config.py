"""Tests for auth/config.py."""

import pytest
from pydantic import ValidationError

from auth.config import AuthConfig


class TestAuthConfig:
    def test_defaults(self):
        config = AuthConfig()
        assert config.token_expiry_days == 7
        assert config.cookie_name == "token"
        assert config.refresh_identity is True
        assert config.rate_limit_attempts == 5

    def test_only_hmac_algorithms(self):
        with pytest.raises(ValidationError):
            AuthConfig(jwt_algorithm="none")

    def test_bcrypt_rounds_bounded(self):
        with pytest.raises(ValidationError):
            AuthConfig(bcrypt_rounds=3)
