"""
Sessions and sign-in.

Identity is carried by an explicit ``Session`` object that callers pass to the
dashboard service. A session is created by ``AuthService.sign_in`` and ends
at ``sign_out`` or when ``expires_at`` passes.

Password verification belongs to an external identity provider, modelled by
the ``CredentialProvider`` protocol. ``InMemoryCredentialProvider`` is a
PBKDF2-backed stand-in for tests and local runs.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from sales_dashboard.analytics.timezone import Clock, utc_now
from sales_dashboard.config import get_settings
from sales_dashboard.domain.models import User, UserRole
from sales_dashboard.errors import InvalidCredentialsError, SessionExpiredError
from sales_dashboard.infrastructure.store import RecordStore
from sales_dashboard.utils.logging import get_logger

log = get_logger(__name__)

PBKDF2_ITERATIONS = 200_000


@runtime_checkable
class CredentialProvider(Protocol):
    def verify(self, email: str, password: str) -> bool:
        """Return True only if the email/password pair is valid."""
        ...


class InMemoryCredentialProvider:
    """Salted PBKDF2-SHA256 hashes keyed by lower-cased email."""

    def __init__(self, iterations: int = PBKDF2_ITERATIONS) -> None:
        self.iterations = iterations
        self._hashes: Dict[str, Tuple[bytes, bytes]] = {}

    def _hash(self, password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, self.iterations)

    def register(self, email: str, password: str) -> None:
        salt = os.urandom(16)
        self._hashes[email.lower()] = (salt, self._hash(password, salt))

    def verify(self, email: str, password: str) -> bool:
        entry = self._hashes.get(email.lower())
        if entry is None:
            # hash anyway so unknown emails cost the same as wrong passwords
            self._hash(password, b"\x00" * 16)
            return False
        salt, expected = entry
        return hmac.compare_digest(self._hash(password, salt), expected)


@dataclass
class Session:
    """Authenticated identity for one signed-in user."""

    user: User
    issued_at: datetime
    expires_at: datetime
    last_export_at: Optional[datetime] = None
    signed_out: bool = field(default=False)

    @property
    def is_admin(self) -> bool:
        return self.user.is_admin

    def is_active(self, now: datetime) -> bool:
        return not self.signed_out and now < self.expires_at

    def record_export(self, when: datetime) -> None:
        self.last_export_at = when

    def exported_within(self, window: timedelta, now: datetime) -> bool:
        return self.last_export_at is not None and now - self.last_export_at <= window


def default_name(email: str) -> str:
    return email.split("@", 1)[0]


class AuthService:
    """
    Signs users in against the credential provider and resolves their role
    from the record store.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        store: RecordStore,
        clock: Optional[Clock] = None,
        session_ttl: Optional[timedelta] = None,
    ) -> None:
        self.provider = provider
        self.store = store
        self._clock = clock or utc_now
        if session_ttl is None:
            session_ttl = timedelta(minutes=get_settings().session_ttl_minutes)
        self.session_ttl = session_ttl

    def sign_in(self, email: str, password: str) -> Session:
        """
        Verify credentials and open a session.

        Unknown email and wrong password raise the same
        ``InvalidCredentialsError``. A verified email without a user record
        gets a new ``agent`` user named after the email's local part.
        """
        email = email.strip()
        if not email or not password or not self.provider.verify(email, password):
            log.info("[SIGN-IN REJECTED]")
            raise InvalidCredentialsError()

        user = self.store.get_user_by_email(email)
        if user is None:
            user = self.store.create_user(
                email=email, name=default_name(email), role=UserRole.AGENT
            )
            log.info("[USER PROVISIONED]", extra={"user_id": user.id, "role": user.role.value})

        now = self._clock()
        session = Session(user=user, issued_at=now, expires_at=now + self.session_ttl)
        log.info("[SIGN-IN]", extra={"user_id": user.id, "role": user.role.value})
        return session

    def require(self, session: Optional[Session]) -> Session:
        """Return the session if it is still usable, else raise."""
        if session is None or not session.is_active(self._clock()):
            raise SessionExpiredError("Session expired; sign in again")
        return session

    def sign_out(self, session: Session) -> None:
        session.signed_out = True
        log.info("[SIGN-OUT]", extra={"user_id": session.user.id})


__all__ = [
    "AuthService",
    "CredentialProvider",
    "InMemoryCredentialProvider",
    "Session",
    "default_name",
]
