"""Shared fixtures: a throwaway sqlite database and a fake HTTP client."""

from __future__ import annotations

import asyncio

import pytest
from databases import Database

from tests.helpers import FakeHTTP
from vela.services import session as sessions
from vela.utils.database import create_tables


@pytest.fixture
def fake_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'vela-test.db'}")
    await database.connect()
    await create_tables(database)
    yield database
    await database.disconnect()


@pytest.fixture(autouse=True)
async def drain_session_sweeps():
    yield
    pending = [task for task in sessions._background_tasks if not task.done()]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
