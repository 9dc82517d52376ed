"""Tests for the JSON store."""
from __future__ import annotations

import json

import pytest

from echolingo.services.store import JsonStore, normalize_database
from tests.conftest import FIXED_NOW


def _store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data", clock=lambda: FIXED_NOW)


@pytest.mark.asyncio
async def test_fresh_load_creates_admin_and_backup(tmp_path) -> None:
    store = _store(tmp_path)

    database = await store.load()

    admin = database.users["admin"]
    assert admin.role == "admin"
    assert admin.password == "admin"
    assert len(admin.data.vocabulary) == 30
    assert len(admin.data.sentences) == 12
    assert store.db_path.exists()
    assert (store.backup_dir / "db-backup-2024-05-01.json").exists()
    assert database.meta.last_backup_date == "2024-05-01"

    on_disk = json.loads(store.db_path.read_text(encoding="utf-8"))
    assert on_disk["users"]["admin"]["data"]["englishWords"][0]["id"] == "en-seed-1"
    assert on_disk["meta"]["lastBackupDate"] == "2024-05-01"


@pytest.mark.asyncio
async def test_corrupt_file_starts_fresh(tmp_path) -> None:
    store = _store(tmp_path)
    store.data_dir.mkdir(parents=True)
    store.db_path.write_text("{not json", encoding="utf-8")

    database = await store.load()

    assert list(database.users) == ["admin"]


def test_normalize_repairs_accounts() -> None:
    database = normalize_database(
        {
            "users": {
                "alice": {"name": "", "data": {"englishWords": [{"word": "apple"}]}},
                "user-legacy": {"account": "user-legacy", "password": "x"},
                "blank": {"account": "  "},
                "junk": "not a user",
                "admin": {"account": "admin", "role": "user", "active": False, "password": " "},
            },
            "meta": {"lastBackupDate": 5},
        }
    )

    assert sorted(database.users) == ["admin", "alice"]
    alice = database.users["alice"]
    assert alice.password == "0000"
    assert alice.name == "alice"
    assert alice.role == "user"
    assert [item.word for item in alice.data.vocabulary] == ["apple"]

    admin = database.users["admin"]
    assert (admin.role, admin.active, admin.password) == ("admin", True, "admin")
    assert database.meta.last_backup_date is None


def test_normalize_replaces_placeholder_seed() -> None:
    filler = [{"word": f"sampleword{index}", "meaningZh": "x"} for index in range(25)]
    database = normalize_database({"users": {"bob": {"data": {"englishWords": filler}}}})

    assert database.users["bob"].data.vocabulary[0].id == "en-seed-1"


@pytest.mark.parametrize("raw", [None, [], "text"])
def test_normalize_non_object_gives_default(raw) -> None:
    assert list(normalize_database(raw).users) == ["admin"]


@pytest.mark.asyncio
async def test_daily_backup_written_once_and_manual_on_demand(tmp_path) -> None:
    store = _store(tmp_path)
    await store.load()

    assert await store.ensure_daily_backup() is None

    manual = await store.ensure_daily_backup(force=True)
    assert manual is not None
    assert manual.name == "db-backup-manual-2024-05-01T12-00-00-000Z.json"

    backups = await store.list_backups()
    assert {backup.file_name for backup in backups} == {
        "db-backup-2024-05-01.json",
        "db-backup-manual-2024-05-01T12-00-00-000Z.json",
    }
    assert all(backup.size > 0 for backup in backups)


@pytest.mark.asyncio
async def test_reload_keeps_users(tmp_path) -> None:
    store = _store(tmp_path)
    await store.load()
    store.database.users["admin"].name = "Keeper"
    await store.persist()

    reloaded = await _store(tmp_path).load()

    assert reloaded.users["admin"].name == "Keeper"
