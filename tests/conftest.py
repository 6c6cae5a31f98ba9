from __future__ import annotations

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.identity import BotIdentity
from fakes import BOT_ID, FakePlatform


@pytest.fixture
def storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "automod.sqlite3"))
    storage.init_db()
    return storage


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def identity() -> BotIdentity:
    return BotIdentity(person_id=BOT_ID)
