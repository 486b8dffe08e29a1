"""Shared pytest wiring: give each test module a fresh database engine.

Modules set DATABASE_URL at import and some delete their DB file on teardown,
so the engine cached in draftsync.db must not leak across modules.
"""

import pytest

import draftsync.db as db


@pytest.fixture(autouse=True, scope="module")
def _reset_db_engine():
    yield
    with db._init_lock:
        if db._engine is not None:
            db._engine.dispose()
        db._engine = None
        db._SessionLocal = None
