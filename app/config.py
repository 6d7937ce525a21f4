import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Server database (SQLite for local development, any SQLAlchemy URL in production)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./euro_dent.db")

# Frontend origins allowed to call the API with credentials
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")

# Remote API the offline client replays queued operations against
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
API_PREFIX = os.getenv("API_PREFIX", "/api")
WS_URL = os.getenv("WS_URL", "ws://localhost:8000/ws")

# Session cookie forwarded on every replayed request (credentials: include)
API_SESSION_COOKIE_NAME = os.getenv("API_SESSION_COOKIE_NAME", "connect.sid")
API_SESSION_COOKIE = os.getenv("API_SESSION_COOKIE")

# Local durable store
OFFLINE_DATABASE_URL = os.getenv("OFFLINE_DATABASE_URL", "sqlite:///./euro_dent_offline.db")
# Bump when the local tables change; an outdated local database must be rebuilt
LOCAL_SCHEMA_VERSION = 1

# Sync engine
SYNC_REQUEST_TIMEOUT = float(os.getenv("SYNC_REQUEST_TIMEOUT", "15"))
SYNC_INTERVAL_SECONDS = float(os.getenv("SYNC_INTERVAL_SECONDS", "60"))

# Connectivity probe
CONNECTIVITY_CHECK_INTERVAL = float(os.getenv("CONNECTIVITY_CHECK_INTERVAL", "15"))
CONNECTIVITY_CHECK_TIMEOUT = float(os.getenv("CONNECTIVITY_CHECK_TIMEOUT", "3"))

# Realtime channel reconnect policy
WS_MAX_RECONNECT_ATTEMPTS = int(os.getenv("WS_MAX_RECONNECT_ATTEMPTS", "5"))
WS_RECONNECT_BASE_DELAY = float(os.getenv("WS_RECONNECT_BASE_DELAY", "3"))
WS_RECONNECT_MAX_DELAY = float(os.getenv("WS_RECONNECT_MAX_DELAY", "60"))

# Force-reset "submitting" UI state if a write never reports back
SUBMIT_SAFETY_TIMEOUT = float(os.getenv("SUBMIT_SAFETY_TIMEOUT", "10"))
