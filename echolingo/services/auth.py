"""Authentication service layer: login and the in-memory session registry."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from loguru import logger

from echolingo.config import settings
from echolingo.core.security import create_session_token, verify_password
from echolingo.schemas.records import UserRecord
from echolingo.services.store import JsonStore
from echolingo.utils.exceptions import AuthenticationError, PermissionDeniedError


@dataclass
class SessionRecord:
    token: str
    account: str
    expires_at: float


class SessionRegistry:
    """Bearer sessions with a sliding expiry, kept in process memory."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL_HOURS * 3600
        self.clock = clock
        self._sessions: Dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def issue(self, account: str) -> str:
        token = create_session_token()
        self._sessions[token] = SessionRecord(
            token=token, account=account, expires_at=self.clock() + self.ttl_seconds
        )
        return token

    def get(self, token: str) -> Optional[SessionRecord]:
        return self._sessions.get(token)

    def touch(self, session: SessionRecord) -> None:
        session.expires_at = self.clock() + self.ttl_seconds

    def is_expired(self, session: SessionRecord) -> bool:
        return session.expires_at <= self.clock()

    def revoke(self, token: str) -> None:
        self._sessions.pop(token, None)

    def revoke_account(self, account: str) -> int:
        """Drop every session of ``account``; returns how many were removed."""
        tokens = [token for token, session in self._sessions.items() if session.account == account]
        for token in tokens:
            del self._sessions[token]
        return len(tokens)

    def prune(self) -> int:
        now = self.clock()
        expired = [token for token, session in self._sessions.items() if session.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.debug("Pruned expired sessions", count=len(expired))
        return len(expired)


class AuthService:
    """Encapsulates credential checks and bearer-token resolution."""

    def __init__(self, store: JsonStore, sessions: SessionRegistry):
        self.store = store
        self.sessions = sessions

    def login(self, account: str, password: str) -> tuple[str, UserRecord]:
        """Validate credentials and open a session."""

        account = (account or "").strip()
        user = self.store.get_user(account)
        if user is None or not verify_password((password or "").strip(), user.password):
            raise AuthenticationError("Invalid account or password")
        if not user.active:
            raise PermissionDeniedError("This account is disabled, contact an administrator")

        token = self.sessions.issue(account)
        logger.info("User logged in", account=account)
        return token, user

    def logout(self, token: Optional[str]) -> None:
        if token:
            self.sessions.revoke(token)

    def authenticate(self, token: Optional[str]) -> UserRecord:
        """Resolve a bearer token to its account, extending the session."""

        if not token:
            raise AuthenticationError("missing token")

        session = self.sessions.get(token)
        if session is None:
            raise AuthenticationError("invalid session")

        if self.sessions.is_expired(session):
            self.sessions.revoke(token)
            raise AuthenticationError("session expired")

        user = self.store.get_user(session.account)
        if user is None:
            self.sessions.revoke(token)
            raise AuthenticationError("user not found")
        if not user.active:
            self.sessions.revoke(token)
            raise PermissionDeniedError("account disabled")

        self.sessions.touch(session)
        return user

    @staticmethod
    def require_admin(user: UserRecord) -> UserRecord:
        if user.role != "admin":
            raise PermissionDeniedError("admin only")
        return user
