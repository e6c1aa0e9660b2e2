"""
auth/tokens.py -- JWT issue/verify and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       sanitized identity only: sub (username) and role. No password hash, ever.
       With the default TOKEN_EXPIRE_SECONDS=0 there is no exp claim -- tokens
       stay valid until SECRET_KEY changes. Setting a positive value adds exp
       and python-jose enforces it on decode.
       Verification returns TokenResult(valid=False) on any failure -- the
       Authenticator turns that into Unauthenticated, never an exception.

  Passwords: bcrypt directly (no passlib wrapper). Cost factor comes from
       Settings.bcrypt_rounds. verify_password() fails closed on a malformed
       digest. authenticate_user() always runs one bcrypt check, against a
       dummy hash for unknown usernames, so response time does not reveal
       whether a username exists.

  SECRET_KEY: sourced from core.config.get_settings() at call time. Settings
       refuses to construct without one, so a missing key fails the first
       request-independent call at startup.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import PublicUser, Role, TokenClaim, TokenResult
from core.config import get_settings
from core.errors import ValidationError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("userdir.auth")

_ALGORITHM = "HS256"

# bcrypt ignores everything past 72 bytes; longer passwords are rejected, never truncated.
PASSWORD_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    The digest is self-describing ($2b$<cost>$<salt><hash>), so verify_password()
    needs nothing but the stored string.

    Raises ValidationError for passwords over PASSWORD_MAX_BYTES in UTF-8.
    """
    if password_too_long(plain):
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes in UTF-8.")
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Any malformed digest, or a password too long to have been hashed, returns
    False rather than raising.
    """
    try:
        if password_too_long(plain):
            return False
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Computed on first use so importing this module does not cost a bcrypt round.
    return hash_password("userdir_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Check a username/password pair against the store with timing equalization.

    Returns the User on success, None on any failure. Do NOT inline
    find_by_username() + verify_password() in a route -- that reintroduces the
    early return for unknown usernames.
    """
    user = store.find_by_username(username)
    if user is None:
        verify_password(password, _dummy_hash())
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user: PublicUser) -> str:
    """Sign the sanitized user into a bearer token.

    Deterministic when expiry is disabled: the same user and key always give
    the same token (no iat, no jti).
    """
    settings = get_settings()
    payload: dict = {"sub": user.username, "role": Role.parse(user.role).value}
    if settings.token_expire_seconds > 0:
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=settings.token_expire_seconds)
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> TokenResult:
    """Verify a bearer token and return its claim.

    Returns TokenResult(valid=False) for malformed input, bad signatures,
    expired tokens, missing claims or unknown roles. Never raises.
    """
    if not isinstance(token, str) or not token:
        return TokenResult(valid=False)
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return TokenResult(valid=False)

    username = payload.get("sub")
    if not isinstance(username, str) or not username:
        return TokenResult(valid=False)
    try:
        role = Role.parse(payload.get("role"))
    except ValueError:
        return TokenResult(valid=False)
    return TokenResult(valid=True, claim=TokenClaim(username=username, role=role))
