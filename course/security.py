"""Password hashing and the authentication provider used by the course."""

from __future__ import annotations

import logging
import re
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional

import bcrypt

from models import User

from .store import SERVER_TIMESTAMP, DocumentStore, document_path

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s/]+@[^@\s/]+\.[^@\s/]+$")

AuthListener = Callable[[Optional[User]], None]


def hash_password(plaintext: str) -> str:
    """Return a bcrypt hash for the provided password."""
    if not plaintext:
        raise ValueError("Password must be provided.")
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plaintext: str, password_hash: str) -> bool:
    """Verify that the supplied plaintext password matches a stored hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # bcrypt raises ValueError for malformed hashes.
        return False


class AuthProviderError(RuntimeError):
    """Raised by an auth provider; ``code`` identifies the failure (e.g. ``auth/wrong-password``)."""

    def __init__(self, code: str, message: Optional[str] = None) -> None:
        super().__init__(message or code)
        self.code = code


class AuthProvider(ABC):
    """Identity provider issuing opaque uids and reporting sign-in transitions."""

    def __init__(self) -> None:
        self._listeners: dict[int, AuthListener] = {}
        self._next_listener_id = 0
        self._current_user: Optional[User] = None
        self._state_lock = threading.Lock()

    @property
    def current_user(self) -> Optional[User]:
        return self._current_user

    def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        """Register ``listener``; it is called with the current user right away and on every transition."""
        with self._state_lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = listener
            current = self._current_user
        listener(current)

        def remove() -> None:
            with self._state_lock:
                self._listeners.pop(listener_id, None)

        return remove

    def _transition(self, user: Optional[User]) -> None:
        with self._state_lock:
            self._current_user = user
            listeners = list(self._listeners.values())
        for listener in listeners:
            listener(user)

    @abstractmethod
    def sign_in(self, email: str, password: str) -> User:
        ...

    @abstractmethod
    def create_account(self, email: str, password: str, display_name: str = "") -> User:
        ...

    @abstractmethod
    def sign_in_with_google(self) -> User:
        ...

    @abstractmethod
    def send_password_reset(self, email: str) -> None:
        ...

    @abstractmethod
    def update_profile(self, uid: str, display_name: str, photo_url: Optional[str] = None) -> User:
        ...

    @abstractmethod
    def get_user(self, uid: str) -> Optional[User]:
        ...

    def sign_out(self) -> None:
        self._transition(None)


def _email_key(email: str) -> str:
    return email.strip().lower()


class LocalAuthProvider(AuthProvider):
    """Email/password accounts stored in the document store with bcrypt hashes.

    Layout: ``accounts/{email}`` holds the account, ``accountIds/{uid}``
    maps a uid back to its email.
    """

    def __init__(self, store: DocumentStore, *, min_password_length: int = 6) -> None:
        super().__init__()
        self._store = store
        self._min_password_length = min_password_length

    def _account_path(self, email: str) -> str:
        return document_path("accounts", _email_key(email))

    def _check_email(self, email: str) -> None:
        if not email or not _EMAIL_PATTERN.match(email.strip()):
            raise AuthProviderError("auth/invalid-email")

    @staticmethod
    def _to_user(account: dict) -> User:
        return User(
            uid=str(account["uid"]),
            email=str(account["email"]),
            display_name=account.get("displayName"),
            photo_url=account.get("photoURL"),
        )

    def create_account(self, email: str, password: str, display_name: str = "") -> User:
        self._check_email(email)
        if not password or len(password) < self._min_password_length:
            raise AuthProviderError("auth/weak-password")
        path = self._account_path(email)
        if self._store.get(path) is not None:
            raise AuthProviderError("auth/email-already-in-use")

        uid = uuid.uuid4().hex
        account = {
            "uid": uid,
            "email": email.strip(),
            "displayName": display_name or None,
            "photoURL": None,
            "passwordHash": hash_password(password),
            "disabled": False,
            "createdAt": SERVER_TIMESTAMP,
        }
        self._store.set(path, account)
        self._store.set(document_path("accountIds", uid), {"email": _email_key(email)})
        user = self._to_user(account)
        logger.info("Registered account %s", uid)
        self._transition(user)
        return user

    def sign_in(self, email: str, password: str) -> User:
        self._check_email(email)
        account = self._store.get(self._account_path(email))
        if account is None:
            raise AuthProviderError("auth/user-not-found")
        if account.get("disabled"):
            raise AuthProviderError("auth/user-disabled")
        if not verify_password(password or "", str(account.get("passwordHash") or "")):
            raise AuthProviderError("auth/wrong-password")
        user = self._to_user(account)
        self._transition(user)
        return user

    def sign_in_with_google(self) -> User:
        raise AuthProviderError("auth/operation-not-allowed")

    def send_password_reset(self, email: str) -> None:
        self._check_email(email)
        path = self._account_path(email)
        if self._store.get(path) is None:
            raise AuthProviderError("auth/user-not-found")
        self._store.update(path, {"passwordResetRequestedAt": SERVER_TIMESTAMP})
        logger.info("Password reset requested for %s", _email_key(email))

    def get_user(self, uid: str) -> Optional[User]:
        if not uid:
            return None
        index = self._store.get(document_path("accountIds", uid))
        if index is None:
            return None
        account = self._store.get(self._account_path(str(index["email"])))
        if account is None:
            return None
        return self._to_user(account)

    def update_profile(self, uid: str, display_name: str, photo_url: Optional[str] = None) -> User:
        user = self.get_user(uid)
        if user is None:
            raise AuthProviderError("auth/user-not-found")
        changes = {"displayName": display_name}
        if photo_url:
            changes["photoURL"] = photo_url
        self._store.update(self._account_path(user.email), changes)
        updated = self.get_user(uid)
        if updated is None:
            raise AuthProviderError("auth/user-not-found")
        if self._current_user is not None and self._current_user.id == uid:
            self._current_user = updated
        return updated
