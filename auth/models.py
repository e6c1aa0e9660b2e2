"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
the domain shape; the store, token helpers and dependencies do the work.

Two views of a user exist:
  User        -- the stored record, including password_hash. Only UserStore
                 creates, holds and mutates these.
  PublicUser  -- the sanitized copy (no hash). Safe to return in a response
                 or sign into a token.

The authentication outcome is a tagged result: every request gets exactly one
of Unauthenticated() or Authenticated(user), never a bare Optional.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: object) -> Role:
        """Return the Role for value, raising ValueError for anything else.

        Booleans and other non-strings are rejected explicitly rather than coerced.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            raise ValueError(f"role must be a string, got {type(value).__name__}")
        return cls(value)


@dataclass(frozen=True)
class PublicUser:
    """Sanitized user: what handlers see and what tokens carry."""

    username: str
    role: Role


@dataclass
class User:
    """A stored user record. password_hash is a bcrypt digest, never plaintext."""

    username: str
    password_hash: str
    role: Role = Role.USER

    def to_public(self) -> PublicUser:
        return PublicUser(username=self.username, role=self.role)


@dataclass(frozen=True)
class TokenClaim:
    """Identity payload decoded from a verified bearer token."""

    username: str
    role: Role


@dataclass(frozen=True)
class TokenResult:
    """Outcome of decode_access_token(): valid with a claim, or invalid."""

    valid: bool
    claim: TokenClaim | None = None


@dataclass(frozen=True)
class Unauthenticated:
    """No usable credential was presented."""

    is_authenticated = False


@dataclass(frozen=True)
class Authenticated:
    """A verified credential resolved to a current store record."""

    user: PublicUser
    is_authenticated = True


AuthOutcome = Union[Unauthenticated, Authenticated]
