"""
Runtime configuration read from the environment (and a .env file if present).
"""
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_CORS_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def get_environment() -> str:
    return os.getenv("ENVIRONMENT", "development")


def use_test_db() -> bool:
    return os.getenv("USE_TEST_DB", "").lower() in ("1", "true", "yes")


def get_database_path() -> Path:
    """SQLite file; the test database wins when USE_TEST_DB is set."""
    if use_test_db():
        return PROJECT_ROOT / "settlers_test.db"
    return Path(os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "settlers.db")))


def get_bot_delay_seconds() -> float:
    return float(os.getenv("BOT_DELAY_SECONDS", "1.0"))


def get_max_bot_actions() -> int:
    return int(os.getenv("MAX_BOT_ACTIONS", "500"))


def get_cors_origins() -> List[str]:
    cors_origins_str = os.getenv("CORS_ORIGINS", "")
    if not cors_origins_str:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]


def get_sentry_dsn() -> str:
    return os.getenv("SENTRY_DSN", "")


def get_rate_limit() -> str:
    return os.getenv("RATE_LIMIT", "120/minute")
