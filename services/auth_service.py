"""Shared-secret login and the session it opens.

The secret is read once, when the service is built. Rotating it is an
administrative action (``main.py --set-password``) that takes effect on the
next start.
"""
import hmac
import time
from dataclasses import dataclass

from utils.app_config import get_master_secret
from utils.constants import INACTIVITY_LIMIT_SECONDS, OPERATORS
from utils.logging_setup import get_logger

log = get_logger("warehouse.auth_service")


@dataclass
class LoginResult:
    authorized: bool
    message: str = ""


class AuthService:
    def __init__(self, secret: str | None = None,
                 idle_limit: float = INACTIVITY_LIMIT_SECONDS):
        self._secret = secret if secret is not None else get_master_secret()
        self._idle_limit = idle_limit
        self._user: str | None = None
        self._last_activity = 0.0

    @property
    def current_user(self) -> str | None:
        return self._user

    @property
    def is_logged_in(self) -> bool:
        return self._user is not None

    def login(self, password: str, username: str) -> LoginResult:
        if not self._secret:
            log.warning("Login attempted but no master password is configured")
            return LoginResult(False, "尚未設定系統密碼，請聯絡管理員")
        if username not in OPERATORS:
            return LoginResult(False, "請選擇操作人員")
        if not hmac.compare_digest(
            (password or "").encode("utf-8"), self._secret.encode("utf-8")
        ):
            log.info("Rejected login for %s", username)
            return LoginResult(False, "密碼錯誤，請重新輸入")
        self._user = username
        self.touch()
        log.info("%s logged in", username)
        return LoginResult(True)

    def logout(self) -> None:
        if self._user:
            log.info("%s logged out", self._user)
        self._user = None

    def touch(self, now: float | None = None) -> None:
        """Record user activity for the inactivity timer."""
        self._last_activity = time.monotonic() if now is None else now

    def is_idle_expired(self, now: float | None = None) -> bool:
        if self._user is None:
            return False
        now = time.monotonic() if now is None else now
        return now - self._last_activity >= self._idle_limit
