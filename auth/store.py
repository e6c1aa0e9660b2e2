"""
auth/store.py -- File-backed persistence layer for user records.

Pattern: Repository + Data Mapper. UserStore is the repository;
_record_to_user / _user_to_record are the mappers. Route and dependency code
never touches the backing file directly.

Storage format: a single JSON array of
    {"username": str, "password_hash": str, "role": "user" | "admin"}
objects, loaded once into memory at startup and rewritten whole on every
mutation.

Consistency:
  All reads and mutations take self._lock. create() runs the uniqueness check,
  the append and the persist as one critical section, so two concurrent
  registrations for the same username cannot both succeed. FastAPI runs sync
  route handlers in a thread pool, hence a threading lock rather than an
  asyncio one.

  persist() writes a temp file in the same directory, fsyncs it, and
  os.replace()s it over the backing file. A failed write leaves the previous
  file intact, and create() rolls the in-memory append back so memory and
  disk never disagree.

Failures surface as StorageError / ConflictError from core.errors and
propagate to the caller; nothing here logs-and-continues.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from auth.models import PublicUser, Role, TokenClaim, User
from core.errors import ConflictError, StorageError, ValidationError

logger = logging.getLogger("userdir.store")


class UserStore:
    """Repository for User records backed by one JSON file.

    Usage:
        UserStore.initialize(path)          # once, creates an empty file
        store = UserStore(path)             # loads, raises StorageError if bad
        store.create(User(username="alice", password_hash=hash_password("..."), role=Role.USER))
        user = store.find_by_username("alice")
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._users: list[User] = []
        self.load()

    @classmethod
    def initialize(cls, path: Path | str) -> bool:
        """Create an empty store file if none exists. Returns True if created.

        Never called implicitly at startup: a missing file there is a
        configuration error, not a first run.
        """
        path = Path(path)
        if path.exists():
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(path, [])
        logger.info("Initialized empty user store at %s", path)
        return True

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    def load(self) -> list[User]:
        """Read the backing file into memory and return a copy of the records.

        Raises StorageError if the file is missing, unreadable, not valid JSON,
        or contains any record that violates the store invariants.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            logger.error("User store %s does not exist", self.path)
            raise StorageError(detail=f"user store {self.path} does not exist") from exc
        except OSError as exc:
            logger.error("User store %s could not be read: %s", self.path, exc)
            raise StorageError(detail=f"user store {self.path} could not be read") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("User store %s is not valid JSON: %s", self.path, exc)
            raise StorageError(detail=f"user store {self.path} is corrupt") from exc

        if not isinstance(data, list):
            raise StorageError(detail=f"user store {self.path} must contain a JSON array")

        users: list[User] = []
        seen: set[str] = set()
        for index, record in enumerate(data):
            try:
                user = _record_to_user(record)
            except (TypeError, ValueError, KeyError) as exc:
                logger.error("User store %s has an invalid record at index %d: %s", self.path, index, exc)
                raise StorageError(detail=f"invalid user record at index {index}") from exc
            if user.username in seen:
                raise StorageError(detail=f"duplicate username {user.username!r} in user store")
            seen.add(user.username)
            users.append(user)

        with self._lock:
            self._users = users
        logger.info("Loaded %d user(s) from %s", len(users), self.path)
        return list(users)

    def persist(self) -> None:
        """Write the full collection back to the backing file atomically.

        Raises StorageError on any I/O failure; the previous file is untouched.
        """
        with self._lock:
            records = [_user_to_record(u) for u in self._users]
            try:
                _atomic_write(self.path, records)
            except OSError as exc:
                logger.error("Failed to persist user store %s: %s", self.path, exc)
                raise StorageError(detail=f"could not write {self.path}") from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self._lock:
            for user in self._users:
                if user.username == username:
                    return User(username=user.username, password_hash=user.password_hash, role=user.role)
        return None

    def find_by_identity(self, claim: TokenClaim) -> User | None:
        """Resolve a decoded token claim to the current record, or None if stale.

        Identity is the username. The caller takes the role from the returned
        record, not from the claim, so a role change in the store wins over an
        older token.
        """
        return self.find_by_username(claim.username)

    def list_users(self) -> list[PublicUser]:
        """Return sanitized copies of every record, in insertion order."""
        with self._lock:
            return [u.to_public() for u in self._users]

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def __len__(self) -> int:
        return self.count()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Append a new user and persist immediately.

        Raises ValidationError if the record violates store invariants,
        ConflictError if the username is taken, StorageError if the write
        fails (in which case the record is not kept in memory either).
        """
        _validate(user)
        record = User(username=user.username, password_hash=user.password_hash, role=Role.parse(user.role))
        with self._lock:
            if any(u.username == record.username for u in self._users):
                raise ConflictError(f"Username '{record.username}' is already taken.")
            self._users.append(record)
            try:
                self.persist()
            except StorageError:
                self._users.pop()
                raise
        logger.info("Created user %s (role=%s)", record.username, record.role.value)
        return User(username=record.username, password_hash=record.password_hash, role=record.role)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validate(user: User) -> None:
    if not isinstance(user.username, str) or not user.username:
        raise ValidationError("Username must be a non-empty string.")
    if not isinstance(user.password_hash, str) or not user.password_hash:
        raise ValidationError("Password hash must be a non-empty string.")
    try:
        Role.parse(user.role)
    except ValueError as exc:
        raise ValidationError(f"Invalid role {user.role!r}.") from exc


def _atomic_write(path: Path, records: list[dict]) -> None:
    """Write records as JSON to a temp file beside path, then rename over it."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(records, fh, indent=2)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


# ---------------------------------------------------------------------------
# Record mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _record_to_user(record: dict) -> User:
    if not isinstance(record, dict):
        raise TypeError(f"expected an object, got {type(record).__name__}")
    username = record["username"]
    password_hash = record["password_hash"]
    if not isinstance(username, str) or not username:
        raise ValueError("username must be a non-empty string")
    if not isinstance(password_hash, str) or not password_hash:
        raise ValueError("password_hash must be a non-empty string")
    return User(username=username, password_hash=password_hash, role=Role.parse(record["role"]))


def _user_to_record(user: User) -> dict:
    return {"username": user.username, "password_hash": user.password_hash, "role": user.role.value}
