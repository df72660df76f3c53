"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from rolegraph.config import Settings
from rolegraph.core.constants import DEFAULT_INSECURE_SALT


pytestmark = pytest.mark.unit


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Defaults describe a local development setup."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.session_backend == "memory"
        assert settings.session_cookie_name == "session"
        assert settings.is_development is True

    def test_short_salt_rejected(self):
        """Verify a salt shorter than the argon2 minimum fails validation."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, password_salt="short")  # type: ignore[call-arg]

    @pytest.mark.parametrize(
        "field",
        ["session_ttl_seconds", "session_cache_stripes", "session_purge_interval_seconds"],
    )
    def test_non_positive_values_rejected(self, field: str):
        """Durations and stripe counts must be positive."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})  # type: ignore[call-arg]

    def test_production_requires_real_salt(self):
        """Production refuses the built-in development salt."""
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None,
            environment="production",
            password_salt=DEFAULT_INSECURE_SALT,
        )

        with pytest.raises(ValueError, match="PASSWORD_SALT"):
            _ = settings.is_production

    def test_production_with_salt(self):
        """Production accepts a real salt."""
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None,
            environment="production",
            password_salt="a-long-deployment-salt",
        )

        assert settings.is_production is True
