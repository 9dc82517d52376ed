"""JSON-file database with serialized writes and daily backups."""
from __future__ import annotations

import asyncio
import datetime as dt
import json
import os
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from echolingo.config import settings
from echolingo.core.sanitizer import parse_iso_or, sanitize_user_data
from echolingo.core.seed import create_initial_user_data, is_placeholder_seed
from echolingo.schemas.admin import BackupFile
from echolingo.schemas.records import AppDatabase, DatabaseMeta, UserRecord
from echolingo.utils.exceptions import StoreError
from echolingo.utils.timestamps import format_timestamp, utc_now

DEFAULT_ADMIN_ACCOUNT = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"
DEFAULT_USER_PASSWORD = "0000"
LEGACY_ACCOUNT_PREFIX = "user-"


def default_password_for(account: str) -> str:
    return DEFAULT_ADMIN_PASSWORD if account == DEFAULT_ADMIN_ACCOUNT else DEFAULT_USER_PASSWORD


def create_default_admin(now: Optional[str] = None) -> UserRecord:
    timestamp = now or format_timestamp()
    return UserRecord(
        account=DEFAULT_ADMIN_ACCOUNT,
        password=DEFAULT_ADMIN_PASSWORD,
        active=True,
        role="admin",
        name="System Admin",
        created_at=timestamp,
        updated_at=timestamp,
        data=create_initial_user_data(),
    )


def create_default_database() -> AppDatabase:
    return AppDatabase(
        meta=DatabaseMeta(last_backup_date=None),
        users={DEFAULT_ADMIN_ACCOUNT: create_default_admin()},
    )


def ensure_default_admin(users: dict[str, UserRecord]) -> None:
    """Guarantee an active ``admin`` account with a usable password."""

    admin = users.get(DEFAULT_ADMIN_ACCOUNT)
    if admin is None:
        users[DEFAULT_ADMIN_ACCOUNT] = create_default_admin()
        return
    admin.role = "admin"
    admin.active = True
    if not admin.password.strip():
        admin.password = DEFAULT_ADMIN_PASSWORD


def _text(value: Any) -> str:
    return "" if value is None or isinstance(value, (dict, list)) else str(value).strip()


def normalize_database(raw: Any) -> AppDatabase:
    """Repair an arbitrary parsed ``app-db.json`` document.

    Non-object entries, blank accounts and legacy ``user-*`` accounts are
    dropped; every kept account gets sanitized data.
    """

    if not isinstance(raw, dict):
        return create_default_database()

    users: dict[str, UserRecord] = {}
    source_users = raw.get("users")
    if isinstance(source_users, dict):
        for key, value in source_users.items():
            if not isinstance(value, dict):
                continue

            account = _text(value.get("account") if value.get("account") is not None else key)
            if not account or account.startswith(LEGACY_ACCOUNT_PREFIX):
                continue

            now = format_timestamp()
            password = _text(value.get("password")) or default_password_for(account)

            data = sanitize_user_data(value.get("data"))
            if is_placeholder_seed(data):
                data = create_initial_user_data()

            users[account] = UserRecord(
                account=account,
                password=password,
                active=value.get("active") is not False,
                role="admin" if value.get("role") == "admin" else "user",
                name=_text(value.get("name")) or account,
                created_at=parse_iso_or(value.get("createdAt"), now),
                updated_at=parse_iso_or(value.get("updatedAt"), now),
                data=data,
            )

    ensure_default_admin(users)

    meta = raw.get("meta") if isinstance(raw.get("meta"), dict) else {}
    last_backup = meta.get("lastBackupDate")
    return AppDatabase(
        meta=DatabaseMeta(last_backup_date=last_backup if isinstance(last_backup, str) else None),
        users=users,
    )


def serialize_database(database: AppDatabase) -> str:
    return json.dumps(database.model_dump(by_alias=True), ensure_ascii=False, indent=2)


class JsonStore:
    """Owns the in-memory database and its on-disk copy."""

    DB_FILE = "app-db.json"
    BACKUP_DIR = "backups"

    def __init__(
        self,
        data_dir: Path | str | None = None,
        *,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self.data_dir = Path(data_dir if data_dir is not None else settings.DATA_DIR)
        self.db_path = self.data_dir / self.DB_FILE
        self.backup_dir = self.data_dir / self.BACKUP_DIR
        self.clock = clock
        self.database: AppDatabase = create_default_database()
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------ io

    def _ensure_dirs(self) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    def _read_raw(self) -> Any:
        return json.loads(self.db_path.read_text(encoding="utf-8"))

    @staticmethod
    def _write_atomic(path: Path, payload: str) -> None:
        tmp_path = path.with_name(f"{path.name}.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)

    # ------------------------------------------------------------ lifecycle

    async def load(self) -> AppDatabase:
        """Read, repair and rewrite the database; fall back to a fresh one."""

        await asyncio.to_thread(self._ensure_dirs)
        try:
            raw = await asyncio.to_thread(self._read_raw)
            database = normalize_database(raw)
        except (OSError, ValueError) as exc:
            logger.warning("Database unreadable, starting fresh", path=str(self.db_path), error=str(exc))
            database = create_default_database()

        self.database = database
        await self.persist()
        await self.ensure_daily_backup()
        logger.info("Database loaded", path=str(self.db_path), users=len(database.users))
        return database

    async def persist(self) -> bool:
        """Write the current database; failures are logged, never raised."""

        payload = serialize_database(self.database)
        async with self._write_lock:
            try:
                await asyncio.to_thread(self._ensure_dirs)
                await asyncio.to_thread(self._write_atomic, self.db_path, payload)
            except OSError as exc:
                logger.error("Database write failed", path=str(self.db_path), error=str(exc))
                return False
        return True

    async def ensure_daily_backup(self, force: bool = False) -> Optional[Path]:
        """Write today's backup once per day, or a manual one when ``force``."""

        now = self.clock()
        today = now.date().isoformat()
        if not force and self.database.meta.last_backup_date == today:
            return None

        stamp = format_timestamp(now).replace(":", "-").replace(".", "-")
        file_name = f"db-backup-manual-{stamp}.json" if force else f"db-backup-{today}.json"
        target = self.backup_dir / file_name
        payload = serialize_database(self.database)

        async with self._write_lock:
            try:
                await asyncio.to_thread(self._ensure_dirs)
                await asyncio.to_thread(self._write_atomic, target, payload)
            except OSError as exc:
                logger.error("Backup write failed", path=str(target), error=str(exc))
                raise StoreError("Backup failed", {"path": str(target)}) from exc

        self.database.meta.last_backup_date = today
        await self.persist()
        logger.info("Backup written", file=file_name, manual=force)
        return target

    async def list_backups(self) -> list[BackupFile]:
        """Backup files, newest first."""

        def scan() -> list[BackupFile]:
            self._ensure_dirs()
            files = []
            for entry in self.backup_dir.iterdir():
                if not entry.is_file() or entry.suffix != ".json":
                    continue
                stats = entry.stat()
                files.append(
                    BackupFile(
                        file_name=entry.name,
                        size=stats.st_size,
                        mtime=format_timestamp(
                            dt.datetime.fromtimestamp(stats.st_mtime, tz=dt.timezone.utc)
                        ),
                    )
                )
            files.sort(key=lambda item: item.mtime, reverse=True)
            return files

        return await asyncio.to_thread(scan)

    # -------------------------------------------------------------- lookups

    def get_user(self, account: str) -> Optional[UserRecord]:
        return self.database.users.get(account)


__all__ = [
    "JsonStore",
    "normalize_database",
    "create_default_database",
    "ensure_default_admin",
    "default_password_for",
    "serialize_database",
]
