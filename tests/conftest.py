"""Shared fixtures: a throwaway JSON store and a session directory on top of it."""

from pathlib import Path

import pytest
import pytest_asyncio

from sniperlm.config import Settings
from sniperlm.db import JsonStore
from sniperlm.session import SessionDirectory


@pytest.fixture
def store(tmp_path: Path) -> JsonStore:
    return JsonStore(str(tmp_path / "db.json"))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        free_uses=3,
        referrals_for_bonus=5,
        bonus_uses=3,
        default_timeframe="H1",
        default_style="swing",
        default_risk="medium",
        admin_ids=[1],
    )


@pytest_asyncio.fixture
async def sessions(store: JsonStore, settings: Settings):
    directory = SessionDirectory(store, settings)
    yield directory
    await directory.close()
