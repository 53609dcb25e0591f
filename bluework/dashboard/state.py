"""
Per-request presentation state: colour theme and the signed-in admin
"""

import logging
from typing import Callable, Optional

from bluework.backend.base import AuthClient, AuthSession, User

logger = logging.getLogger(__name__)

THEME_COOKIE = "bw_theme"
SESSION_COOKIE = "bw_session"

THEMES = ("light", "dark")


class ThemeState:
    def __init__(self, theme: str = "light"):
        self.theme = theme if theme in THEMES else "light"

    @classmethod
    def from_cookie(cls, value: Optional[str]) -> "ThemeState":
        return cls(value or "light")

    @property
    def is_dark(self) -> bool:
        return self.theme == "dark"

    def toggle(self) -> str:
        self.theme = "light" if self.is_dark else "dark"
        return self.theme


AuthListener = Callable[[Optional[User]], None]


class AuthState:
    """
    Mirrors the auth capability for one request and notifies listeners
    whenever the current user changes (sign in, sign out, expired token).
    """

    def __init__(self, auth: AuthClient):
        self.auth = auth
        self.user: Optional[User] = None
        self.session: Optional[AuthSession] = None
        self._listeners: list[AuthListener] = []

    def on_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, user: Optional[User]) -> None:
        changed = (self.user.id if self.user else None) != (user.id if user else None)
        self.user = user
        if changed:
            for listener in list(self._listeners):
                listener(user)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self, access_token: Optional[str]) -> Optional[User]:
        user = await self.auth.get_user(access_token)
        self._set_user(user)
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        self.session = await self.auth.sign_in(email, password)
        self._set_user(self.session.user)
        return self.session

    async def sign_out(self, access_token: Optional[str]) -> None:
        try:
            if access_token:
                await self.auth.sign_out(access_token)
        finally:
            self.session = None
            self._set_user(None)


def log_auth_change(user: Optional[User]) -> None:
    if user:
        logger.info(f"🔐 Admin signed in: {user.email}")
    else:
        logger.info("🔓 Admin signed out")
