"""
tests/test_cli.py -- Tests for the main.py admin CLI.

Covers:
  - init-store creates an empty store once and leaves an existing one alone
  - create-user provisions admins and rejects duplicates with exit code 1
  - create-user enforces the same username and password rules as registration
"""

from __future__ import annotations

import json

import pytest

import main
from auth.models import Role
from auth.store import UserStore
from auth.tokens import verify_password
from core.config import get_settings


@pytest.fixture
def cli_users_file(tmp_path, monkeypatch):
    path = tmp_path / "data" / "users.json"
    monkeypatch.setattr(get_settings(), "users_file", path)
    return path


class TestInitStore:
    def test_creates_empty_store(self, cli_users_file) -> None:
        assert main.main(["init-store"]) == 0
        assert json.loads(cli_users_file.read_text(encoding="utf-8")) == []

    def test_existing_store_untouched(self, cli_users_file) -> None:
        main.main(["init-store"])
        main.main(["create-user", "root", "--role", "admin", "--password", "Adm1n!Pass"])
        assert main.main(["init-store"]) == 0
        assert len(UserStore(cli_users_file)) == 1


class TestCreateUser:
    def test_create_admin(self, cli_users_file, capsys) -> None:
        main.main(["init-store"])
        assert main.main(["create-user", "root", "--role", "admin", "--password", "Adm1n!Pass"]) == 0
        user = UserStore(cli_users_file).find_by_username("root")
        assert user.role is Role.ADMIN
        assert verify_password("Adm1n!Pass", user.password_hash)
        assert "Created user 'root'" in capsys.readouterr().out

    def test_duplicate_user(self, cli_users_file, capsys) -> None:
        main.main(["init-store"])
        main.main(["create-user", "root", "--password", "Adm1n!Pass"])
        assert main.main(["create-user", "root", "--password", "Adm1n!Pass"]) == 1
        assert "already taken" in capsys.readouterr().err

    def test_missing_store(self, cli_users_file, capsys) -> None:
        assert main.main(["create-user", "root", "--password", "Adm1n!Pass"]) == 1
        assert capsys.readouterr().err

    def test_short_password(self, cli_users_file) -> None:
        main.main(["init-store"])
        assert main.main(["create-user", "root", "--password", "short"]) == 1
        assert len(UserStore(cli_users_file)) == 0

    def test_prompted_password_mismatch(self, cli_users_file, monkeypatch) -> None:
        main.main(["init-store"])
        answers = iter(["Adm1n!Pass", "Different!1"])
        monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
        assert main.main(["create-user", "root"]) == 1

    def test_password_over_bcrypt_limit(self, cli_users_file, capsys) -> None:
        main.main(["init-store"])
        assert main.main(["create-user", "root", "--password", "A1!" + "x" * 70]) == 1
        assert "password" in capsys.readouterr().err
        assert len(UserStore(cli_users_file)) == 0

    @pytest.mark.parametrize("username", ["bad name!", "ab", "x" * 33, "semi;colon"])
    def test_invalid_username(self, cli_users_file, capsys, username: str) -> None:
        main.main(["init-store"])
        assert main.main(["create-user", username, "--password", "Adm1n!Pass"]) == 1
        assert "Invalid username" in capsys.readouterr().err
        assert len(UserStore(cli_users_file)) == 0
