"""
Pytest configuration for test database setup.
"""
import os

import pytest

# Must be set before anything imports api.config or main
os.environ["USE_TEST_DB"] = "1"
os.environ.setdefault("RATE_LIMIT", "100000/minute")
# Background bot loops stay asleep during API tests; loop tests drive them directly
os.environ.setdefault("BOT_DELAY_SECONDS", "30")


def _remove_db_files(db_path):
    for suffix in ("", "-wal", "-shm"):
        path = db_path.with_name(db_path.name + suffix)
        if path.exists():
            path.unlink()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Delete the test database after the session."""
    from api.config import get_database_path

    yield

    from api.database import close_all_connections
    close_all_connections()
    _remove_db_files(get_database_path())


@pytest.fixture(autouse=True)
def reset_test_db():
    """Start every test with an empty database."""
    from api.config import get_database_path
    from api.database import close_all_connections, init_db

    close_all_connections()
    _remove_db_files(get_database_path())
    init_db()
    yield
