from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from models import User

from ..results import Result, enveloped
from ..security import AuthProvider, AuthProviderError

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    "auth/email-already-in-use": "This email is already in use.",
    "auth/invalid-email": "Invalid email format.",
    "auth/operation-not-allowed": "Operation not allowed.",
    "auth/weak-password": "Password is too weak (at least 6 characters).",
    "auth/user-disabled": "This account has been disabled.",
    "auth/user-not-found": "User not found.",
    "auth/wrong-password": "Wrong password.",
    "auth/too-many-requests": "Too many attempts. Try again later.",
    "auth/network-request-failed": "Network error. Check your internet connection.",
    "auth/popup-closed-by-user": "Sign-in window was closed.",
    "auth/cancelled-popup-request": "Request cancelled.",
}


def error_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, f"An error occurred: {code}")


@dataclass(frozen=True)
class SignedIn:
    user: User


@dataclass(frozen=True)
class SignedOut:
    pass


AuthEvent = Union[SignedIn, SignedOut]


class AuthService:
    """Envelope-returning facade over an :class:`AuthProvider`."""

    def __init__(self, provider: AuthProvider) -> None:
        self._provider = provider

    @property
    def provider(self) -> AuthProvider:
        return self._provider

    def current_user(self) -> Optional[User]:
        return self._provider.current_user

    def subscribe(self, observer: Callable[[AuthEvent], None]) -> Callable[[], None]:
        """Deliver the current state now and every later transition; returns an unsubscribe handle."""

        def _relay(user: Optional[User]) -> None:
            observer(SignedIn(user) if user is not None else SignedOut())

        return self._provider.add_listener(_relay)

    @enveloped("register")
    def register(self, email: str, password: str, display_name: str = "") -> Result:
        try:
            user = self._provider.create_account(email, password, display_name)
        except AuthProviderError as exc:
            return Result.fail(error_message(exc.code))
        return Result.ok(user)

    @enveloped("log in")
    def login(self, email: str, password: str) -> Result:
        try:
            user = self._provider.sign_in(email, password)
        except AuthProviderError as exc:
            logger.info("Login failed for %s: %s", email, exc.code)
            return Result.fail(error_message(exc.code))
        return Result.ok(user)

    @enveloped("log in with Google")
    def login_with_google(self) -> Result:
        try:
            user = self._provider.sign_in_with_google()
        except AuthProviderError as exc:
            return Result.fail(error_message(exc.code))
        return Result.ok(user)

    @enveloped("log out")
    def logout(self) -> Result:
        self._provider.sign_out()
        return Result.ok()

    @enveloped("reset password")
    def reset_password(self, email: str) -> Result:
        try:
            self._provider.send_password_reset(email)
        except AuthProviderError as exc:
            return Result.fail(error_message(exc.code))
        return Result.ok(message=f"Password reset email sent to {email}")

    @enveloped("update profile")
    def update_profile(
        self,
        display_name: str,
        photo_url: Optional[str] = None,
        *,
        uid: Optional[str] = None,
    ) -> Result:
        target = uid
        if target is None:
            current = self._provider.current_user
            if current is None:
                return Result.fail("User is not signed in.")
            target = current.id
        try:
            user = self._provider.update_profile(target, display_name, photo_url)
        except AuthProviderError as exc:
            return Result.fail(error_message(exc.code))
        return Result.ok(user)
