"""
tests/test_config.py -- Settings validation.

A missing or short SECRET_KEY must stop the service from starting; every other
field has a usable default.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import Settings

_KEY = "k" * 32


class TestSecretKey:
    def test_missing_secret_key_is_fatal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(_env_file=None)

    def test_empty_secret_key_is_fatal(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(_env_file=None, secret_key="")

    def test_short_secret_key_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(_env_file=None, secret_key="too-short")

    def test_secret_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SECRET_KEY", _KEY)
        assert Settings(_env_file=None).secret_key == _KEY


class TestDefaults:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("PORT", "HOST", "USERS_FILE", "BCRYPT_ROUNDS", "TOKEN_EXPIRE_SECONDS", "DEBUG"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None, secret_key=_KEY)
        assert settings.port == 4001
        assert settings.host == "127.0.0.1"
        assert settings.users_file == Path("data/users.json")
        assert settings.bcrypt_rounds == 12
        assert settings.token_expire_seconds == 0

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("USERS_FILE", "/var/lib/userdir/users.json")
        settings = Settings(_env_file=None, secret_key=_KEY)
        assert settings.port == 8080
        assert settings.users_file == Path("/var/lib/userdir/users.json")

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_bcrypt_rounds_bounds(self, rounds: int) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, secret_key=_KEY, bcrypt_rounds=rounds)
