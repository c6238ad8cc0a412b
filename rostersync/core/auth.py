"""API key registry for Roster Sync.

Users register with an email and password and receive an API key. The key
identifies which roster partition a request reads and writes. This is a
capability check, not a hardened authentication system.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
from typing import Dict, Mapping, Optional

from uuid6 import uuid7

from .models import UserAccount
from .timestamp_utils import current_timestamp
from .validation import validate_email, validate_password

logger = logging.getLogger(__name__)

__all__ = [
    "AuthError",
    "MissingCredentialError",
    "UnauthorizedError",
    "UserRegistry",
    "extract_api_key",
    "API_KEY_HEADER",
    "API_KEY_PREFIX",
]

API_KEY_HEADER = "X-API-Key"
API_KEY_PREFIX = "rsk_"


class AuthError(Exception):
    """Base class for credential failures (HTTP 401)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MissingCredentialError(AuthError):
    """No API key was presented."""

    def __init__(self, message: str = "API key required") -> None:
        super().__init__(message)


class UnauthorizedError(AuthError):
    """The presented credential does not match a known identity."""

    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(message)


def extract_api_key(headers: Mapping[str, str]) -> Optional[str]:
    """Read the API key from request headers.

    Checks X-API-Key first, then an "Authorization: Bearer <key>" header.

    Returns:
        The key, or None if no key was sent
    """
    key = headers.get(API_KEY_HEADER)
    if key and key.strip():
        return key.strip()

    auth = headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def _hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


class UserRegistry:
    """In-memory store of registered users keyed by email and API key."""

    def __init__(self) -> None:
        self._by_email: Dict[str, UserAccount] = {}
        self._by_key: Dict[str, UserAccount] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._by_email)

    def register(self, email: str, password: str) -> UserAccount:
        """Register a user, or return the existing account.

        Registering the same email and password again returns the same API
        key.

        Raises:
            ValidationError: If email or password is malformed
            UnauthorizedError: If the email exists with a different password
        """
        email = validate_email(email)
        password = validate_password(password)

        with self._lock:
            existing = self._by_email.get(email)
            if existing is not None:
                candidate = _hash_password(password, existing.salt)
                if not hmac.compare_digest(candidate, existing.password_hash):
                    logger.warning(f"Registration rejected for {email}: password mismatch")
                    raise UnauthorizedError("Invalid credentials")
                return existing

            salt = secrets.token_hex(16)
            account = UserAccount(
                user_id=uuid7().hex,
                email=email,
                password_hash=_hash_password(password, salt),
                salt=salt,
                api_key=f"{API_KEY_PREFIX}{uuid7().hex}",
                created_at=current_timestamp(),
            )
            self._by_email[email] = account
            self._by_key[account.api_key] = account

        logger.info(f"Registered user {account.user_id} ({email})")
        return account

    def authenticate(self, api_key: Optional[str]) -> UserAccount:
        """Resolve an API key to its account.

        Raises:
            MissingCredentialError: If api_key is None or empty
            UnauthorizedError: If api_key is unknown
        """
        if not api_key:
            raise MissingCredentialError()
        account = self._by_key.get(api_key)
        if account is None:
            raise UnauthorizedError()
        return account
