# reading_tracker/config.py
"""Runtime settings, overridable through environment variables."""
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/clicks.db")
APP_ENV = os.getenv("APP_ENV", "production")
API_PORT = int(os.getenv("API_PORT", "3002"))
API_BASE_URL = os.getenv("API_BASE_URL", f"http://127.0.0.1:{API_PORT}")

# Tag search result cap
SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", "20"))


def is_development() -> bool:
    return os.getenv("APP_ENV", APP_ENV) == "development"
