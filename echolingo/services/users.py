"""Service layer for account administration and learner data."""
from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from echolingo.core.sanitizer import sanitize_user_data
from echolingo.core.security import is_valid_account, is_valid_password
from echolingo.core.seed import create_initial_user_data
from echolingo.schemas.admin import UserSummary
from echolingo.schemas.records import UserRecord
from echolingo.services.auth import SessionRegistry
from echolingo.services.store import DEFAULT_ADMIN_ACCOUNT, JsonStore
from echolingo.utils.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    InvalidRequestError,
)
from echolingo.utils.timestamps import format_timestamp, utc_now


class UserService:
    """Encapsulates account and data operations against the JSON store."""

    def __init__(self, store: JsonStore, sessions: SessionRegistry):
        self.store = store
        self.sessions = sessions

    def get(self, account: str) -> UserRecord:
        """Return an account or raise ``AccountNotFoundError``."""

        user = self.store.get_user((account or "").strip())
        if user is None:
            raise AccountNotFoundError("user not found")
        return user

    # ------------------------------------------------------------- admin

    def list_users(self) -> list[UserSummary]:
        users = sorted(self.store.database.users.values(), key=lambda user: user.account)
        return [
            UserSummary(
                account=user.account,
                active=user.active,
                name=user.name,
                role=user.role,
                created_at=user.created_at,
                updated_at=user.updated_at,
                vocabulary_count=len(user.data.vocabulary),
                sentence_count=len(user.data.sentences),
            )
            for user in users
        ]

    async def create_user(
        self,
        account: str,
        password: str,
        *,
        name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> UserRecord:
        account = (account or "").strip()
        password = (password or "").strip()

        if not is_valid_account(account):
            raise InvalidRequestError("account must be 3-32 letters, digits, '_' or '-'")
        if not is_valid_password(password):
            raise InvalidRequestError("password must be at least 4 characters")
        if self.store.get_user(account) is not None:
            raise AccountExistsError("account already exists")

        now = format_timestamp()
        user = UserRecord(
            account=account,
            password=password,
            active=True,
            role="admin" if role == "admin" else "user",
            name=(name or "").strip() or account,
            created_at=now,
            updated_at=now,
            data=create_initial_user_data(),
        )
        self.store.database.users[account] = user
        await self.store.persist()
        logger.info("Account created", account=account, role=user.role)
        return user

    async def delete_user(self, target: str, *, acting_account: str) -> None:
        user = self.get(target)
        if user.account == acting_account:
            raise InvalidRequestError("cannot delete the account you are signed in with")
        if user.account == DEFAULT_ADMIN_ACCOUNT:
            raise InvalidRequestError("cannot delete the default admin account")

        del self.store.database.users[user.account]
        self.sessions.revoke_account(user.account)
        await self.store.persist()
        logger.info("Account deleted", account=user.account, by=acting_account)

    async def change_password(self, target: str, password: str) -> None:
        user = self.get(target)
        password = (password or "").strip()
        if not is_valid_password(password):
            raise InvalidRequestError("password must be at least 4 characters")

        user.password = password
        user.updated_at = format_timestamp()
        await self.store.persist()
        logger.info("Password changed", account=user.account)

    async def set_status(self, target: str, active: bool, *, acting_account: str) -> None:
        user = self.get(target)
        if not active and user.account == DEFAULT_ADMIN_ACCOUNT:
            raise InvalidRequestError("cannot disable the default admin account")
        if not active and user.account == acting_account:
            raise InvalidRequestError("cannot disable the account you are signed in with")

        user.active = active
        user.updated_at = format_timestamp()
        await self.store.persist()

        if not active:
            revoked = self.sessions.revoke_account(user.account)
            logger.info("Account disabled", account=user.account, revoked_sessions=revoked)

    # -------------------------------------------------------------- data

    async def replace_data(self, account: str, raw: Any) -> UserRecord:
        """Sanitize and store a full data record for ``account``."""

        user = self.get(account)
        now = format_timestamp()
        source = dict(raw) if isinstance(raw, dict) else {}
        source["updatedAt"] = now
        user.data = sanitize_user_data(source)
        user.updated_at = now
        await self.store.persist()
        return user

    def export_data(self, account: str) -> tuple[str, dict[str, Any]]:
        """Return ``(file name, payload)`` for a downloadable backup."""

        user = self.get(account)
        now = utc_now()
        file_name = f"lingua-{user.account}-backup-{now.date().isoformat()}.json"
        payload = {
            "exportedAt": format_timestamp(now),
            "account": user.account,
            "name": user.name,
            "data": user.data.model_dump(by_alias=True),
        }
        return file_name, payload

    async def import_data(self, account: str, body: Any) -> UserRecord:
        """Accept ``{"data": {...}}`` (an export file) or a bare record."""

        raw = body.get("data") if isinstance(body, dict) and "data" in body else body
        user = await self.replace_data(account, raw)
        logger.info(
            "User data imported",
            account=user.account,
            vocabulary=len(user.data.vocabulary),
            sentences=len(user.data.sentences),
        )
        return user
