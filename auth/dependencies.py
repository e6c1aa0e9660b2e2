"""
auth/dependencies.py -- FastAPI Depends() helpers: Authenticator and Gates.

Two stages run for every protected route:

  1. authenticate()  -- the Authenticator. Reads "Authorization: Bearer <token>",
     verifies the token, resolves it against the UserStore and records an
     AuthOutcome on request.state.auth. It is permissive: a missing, malformed,
     forged or stale token yields Unauthenticated(), never an error.

  2. One gate -- require_anonymous / require_authenticated / require_admin /
     require_non_admin (or require_role(...) for a custom one). Gates consume
     the outcome and raise UnauthorizedError (401) or ForbiddenError (403);
     they are the only place a request is rejected for auth reasons.

Keeping "is this credential valid" apart from "is this operation allowed" lets
visitor-only and admin-only routes share the same Authenticator.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Authenticated, AuthOutcome, PublicUser, Role, Unauthenticated
from auth.store import UserStore
from auth.tokens import decode_access_token
from core.errors import ForbiddenError, UnauthorizedError

_BEARER_PREFIX = "Bearer "


def resolve_authentication(header: str | None, store: UserStore) -> AuthOutcome:
    """Turn a raw Authorization header value into an AuthOutcome.

    The header must be at least one character longer than the "Bearer "
    prefix and start with it exactly. Never raises.
    """
    if not header or len(header) <= len(_BEARER_PREFIX) or not header.startswith(_BEARER_PREFIX):
        return Unauthenticated()

    result = decode_access_token(header[len(_BEARER_PREFIX) :])
    if not result.valid or result.claim is None:
        return Unauthenticated()

    record = store.find_by_identity(result.claim)
    if record is None:
        return Unauthenticated()
    return Authenticated(user=record.to_public())


def authenticate(request: Request) -> AuthOutcome:
    """Authenticator stage. Returns the outcome and also attaches it to request.state.auth.

    Gates take the return value through Depends(). request.state.auth is there
    for handlers that only receive the Request and need the outcome without
    declaring a gate dependency of their own.
    """
    user_store: UserStore = request.app.state.user_store
    outcome = resolve_authentication(request.headers.get("Authorization"), user_store)
    request.state.auth = outcome
    return outcome


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------


def require_anonymous(outcome: AuthOutcome = Depends(authenticate)) -> None:
    """Visitors only. Raises HTTP 403 if the request carries a valid credential.

    Use as a FastAPI dependency:
        @router.post("/register", dependencies=[Depends(require_anonymous)])
    """
    if isinstance(outcome, Authenticated):
        raise ForbiddenError("This resource is only available to visitors who are not logged in.")


def require_authenticated(outcome: AuthOutcome = Depends(authenticate)) -> PublicUser:
    """Require authentication. Raises HTTP 401 if the request is not authenticated."""
    if not isinstance(outcome, Authenticated):
        raise UnauthorizedError("Authentication required.")
    return outcome.user


def require_role(role: Role, *, allowed: bool = True) -> Callable[..., PublicUser]:
    """Build a gate that requires (allowed=True) or excludes (allowed=False) a role.

    Both variants raise 401 for unauthenticated requests and 403 for an
    authenticated user on the wrong side of the check.
    """

    def gate(user: PublicUser = Depends(require_authenticated)) -> PublicUser:
        if (user.role is role) != allowed:
            if allowed:
                raise ForbiddenError(f"The '{role.value}' role is required.")
            raise ForbiddenError(f"This resource is not available to the '{role.value}' role.")
        return user

    gate.__name__ = f"require_{'' if allowed else 'non_'}{role.value}"
    return gate


require_admin = require_role(Role.ADMIN)
require_non_admin = require_role(Role.ADMIN, allowed=False)
