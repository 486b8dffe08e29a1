"""Configuration and settings."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"
MOCK_INBOX_PATH = DATA_DIR / "inbox.json"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

APP_ENV = os.getenv("APP_ENV", "development").lower()
IS_PRODUCTION = APP_ENV == "production"

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'draftsync.sqlite'}")

# Logging
LOG_DIR = OUTPUT_DIR / "logs"
LOG_FILE = LOG_DIR / "app.jsonl"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERBOSE_LOGGING = os.getenv("VERBOSE_LOGGING", "false").lower() == "true"

LOG_DIR.mkdir(parents=True, exist_ok=True)

# OpenTelemetry
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "false").lower() == "true"
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv(
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "http://localhost:4318/v1/traces",
)
OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "draftsync")

# Google OAuth / Gmail
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_TOKEN_URI = os.getenv("GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token")
GMAIL_SCOPES = [
    "https://mail.google.com/",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Mailbox sync
SYNC_PAGE_SIZE = int(os.getenv("SYNC_PAGE_SIZE", "25"))
THREAD_LIST_LIMIT = int(os.getenv("THREAD_LIST_LIMIT", "25"))

# Background poller (online users are re-synced on a fixed interval)
BACKGROUND_SYNC_ENABLED = os.getenv("BACKGROUND_SYNC_ENABLED", "true").lower() == "true"
BACKGROUND_SYNC_INTERVAL_SECONDS = float(os.getenv("BACKGROUND_SYNC_INTERVAL_SECONDS", "30"))
# A user counts as online if seen within this window.
PRESENCE_WINDOW_SECONDS = int(os.getenv("PRESENCE_WINDOW_SECONDS", "300"))

# Suggested-reply cache
REDIS_URL = os.getenv("REDIS_URL", "")
SUGGESTED_REPLY_TTL_SECONDS = int(os.getenv("SUGGESTED_REPLY_TTL_SECONDS", "3600"))

# Secrets
TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Draft generation
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
DRAFT_MODEL = os.getenv("DRAFT_MODEL", "openai:gpt-4o-mini")

# HTTP API
API_PORT = int(os.getenv("API_PORT", "8000"))
