"""
api/routes/users.py -- Registration, login and role-gated check endpoints.

Routes (mounted under /users):
  POST /users/register    -- create a "user"-role account   (visitors only)
  POST /users/login       -- exchange credentials for token  (visitors only)
  GET  /users/visitors    -- gate check                      (visitors only)
  GET  /users/non-admins  -- gate check                      (logged in, not admin)
  GET  /users/admins      -- gate check                      (logged in, admin)

Every route declares exactly one gate from auth.dependencies; the gate pulls
in the Authenticator. Handlers raise core.errors exceptions and never build
error responses themselves -- api/main.py's exception handlers do that.

Register and login are plain `def` so FastAPI runs them (and bcrypt) in the
thread pool instead of blocking the event loop.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response

from api.models import CredentialsRequest, LoginResponse, MessageResponse, RegisterResponse, UserResponse
from auth.dependencies import require_admin, require_anonymous, require_non_admin
from auth.models import PublicUser, Role, User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.errors import UnauthorizedError

logger = logging.getLogger("userdir.api")

# Auth policy:
# - POST /users/register:   require_anonymous
# - POST /users/login:      require_anonymous
# - GET  /users/visitors:   require_anonymous
# - GET  /users/non-admins: require_non_admin (401 anonymous, 403 admin)
# - GET  /users/admins:     require_admin     (401 anonymous, 403 user)
router = APIRouter(prefix="/users")


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=201,
    dependencies=[Depends(require_anonymous)],
)
def register(request: Request, body: CredentialsRequest) -> RegisterResponse:
    """Create a new account with the "user" role.

    Raises ConflictError (409) if the username is taken and StorageError (500)
    if the store cannot be written. Admin accounts are created with the CLI.
    """
    user_store: UserStore = request.app.state.user_store
    record = user_store.create(
        User(username=body.username, password_hash=hash_password(body.password), role=Role.USER)
    )
    return RegisterResponse(
        message="User registered successfully.",
        user=UserResponse.from_public(record.to_public()),
    )


@router.post("/login", response_model=LoginResponse, dependencies=[Depends(require_anonymous)])
def login(request: Request, response: Response, body: CredentialsRequest) -> LoginResponse:
    """Authenticate with username and password; return a bearer token.

    Wrong username and wrong password produce the same 401 so the response
    does not reveal which usernames exist.
    """
    response.headers["Cache-Control"] = "no-store"
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        logger.info("Failed login for %r", body.username)
        raise UnauthorizedError("Invalid username or password.")

    token = create_access_token(user.to_public())
    logger.info("User %s logged in", user.username)
    return LoginResponse(message="Login successful.", access=token)


@router.get("/visitors", response_model=MessageResponse, dependencies=[Depends(require_anonymous)])
async def visitors() -> MessageResponse:
    return MessageResponse(message="Welcome, visitor.")


@router.get("/non-admins", response_model=MessageResponse)
async def non_admins(user: PublicUser = Depends(require_non_admin)) -> MessageResponse:
    return MessageResponse(message=f"Welcome, {user.username}.")


@router.get("/admins", response_model=MessageResponse)
async def admins(user: PublicUser = Depends(require_admin)) -> MessageResponse:
    return MessageResponse(message=f"Welcome, administrator {user.username}.")
