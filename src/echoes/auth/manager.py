"""Local account sign-up, login and session persistence."""

import hashlib
import hmac
import json
import logging
import re
import secrets
from pathlib import Path
from typing import Callable

from ..logging import JSONLLogger, get_logger
from .models import User, UserCredentials

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}$")
MIN_PASSWORD_LENGTH = 6
INVALID_LOGIN_MESSAGE = "Invalid email or password"

UserListener = Callable[[User | None], None]


def hash_password(password: str, salt: str) -> str:
    """Salted PBKDF2-SHA256 digest of a password."""
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 100_000)
    return digest.hex()


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


class AuthenticationManager:
    """Manages local accounts stored in a JSON file.

    The file holds every credential record plus the last logged-in user,
    which is restored on construction. Operations return
    ``(success, error_message)`` and also keep the message in
    ``error_message``.
    """

    def __init__(self, credentials_path: Path, event_log: JSONLLogger | None = None) -> None:
        self.credentials_path = credentials_path
        self.event_log = event_log or get_logger()
        self.current_user: User | None = None
        self.error_message: str | None = None
        self._listeners: list[UserListener] = []
        self.check_authentication_status()

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def add_listener(self, listener: UserListener) -> None:
        """Subscribe to current-user changes."""
        self._listeners.append(listener)

    def check_authentication_status(self) -> None:
        """Restore the last logged-in user from disk."""
        data = self._load()
        current = data.get("current_user")
        if current:
            try:
                self.current_user = User.from_dict(current)
            except TypeError:
                logger.warning("Ignoring malformed current user record")

    def sign_up(self, name: str, email: str, password: str) -> tuple[bool, str | None]:
        """Create an account and log it in."""
        self.error_message = None
        trimmed_name = name.strip()
        trimmed_email = email.strip().lower()

        if not trimmed_name:
            return self._fail("Name cannot be empty")
        if not is_valid_email(trimmed_email):
            return self._fail("Please enter a valid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            return self._fail(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self._find_credentials(trimmed_email) is not None:
            return self._fail("An account with this email already exists")

        user = User(name=trimmed_name, email=trimmed_email)
        salt = secrets.token_hex(16)
        credentials = UserCredentials(
            email=trimmed_email,
            password_hash=hash_password(password, salt),
            salt=salt,
            user=user,
        )

        data = self._load()
        data.setdefault("credentials", []).append(credentials.to_dict())
        data["current_user"] = user.to_dict()
        try:
            self._save(data)
        except OSError as e:
            logger.warning("Could not store credentials: %s", e)
            return self._fail("Failed to create account. Please try again.")

        self.event_log.log_auth("sign_up", True, owner_id=user.id)
        self._set_current_user(user)
        return True, None

    def login(self, email: str, password: str) -> tuple[bool, str | None]:
        """Log in with an existing account."""
        self.error_message = None
        trimmed_email = email.strip().lower()

        if not trimmed_email:
            return self._fail("Email cannot be empty")
        if not password:
            return self._fail("Password cannot be empty")

        credentials = self._find_credentials(trimmed_email)
        if credentials is None or not hmac.compare_digest(
            credentials.password_hash, hash_password(password, credentials.salt)
        ):
            self.event_log.log_auth("login", False)
            return self._fail(INVALID_LOGIN_MESSAGE)

        data = self._load()
        data["current_user"] = credentials.user.to_dict()
        try:
            self._save(data)
        except OSError as e:
            # Login still succeeds; only auto-login on next start is lost.
            logger.warning("Could not persist current user: %s", e)

        self.event_log.log_auth("login", True, owner_id=credentials.user.id)
        self._set_current_user(credentials.user)
        return True, None

    def logout(self) -> None:
        """Forget the current user."""
        data = self._load()
        data["current_user"] = None
        try:
            self._save(data)
        except OSError as e:
            logger.warning("Could not clear current user: %s", e)
        self.event_log.log_auth("logout", True)
        self._set_current_user(None)

    def _fail(self, message: str) -> tuple[bool, str | None]:
        self.error_message = message
        return False, message

    def _set_current_user(self, user: User | None) -> None:
        self.current_user = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("current-user listener failed")

    def _find_credentials(self, email: str) -> UserCredentials | None:
        for record in self._load().get("credentials", []):
            try:
                credentials = UserCredentials.from_dict(record)
            except (KeyError, TypeError):
                continue
            if credentials.email == email:
                return credentials
        return None

    def _load(self) -> dict:
        if not self.credentials_path.exists():
            return {}
        try:
            with open(self.credentials_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read credentials: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        self.credentials_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.credentials_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
