import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Backend Sync storage (SQLAlchemy URL)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fieldsales.db")
# Set SYNC_ENABLED=false to run the engine purely in memory
SYNC_ENABLED = os.getenv("SYNC_ENABLED", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Proximity alert monitor
MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "60"))
ALERT_WINDOW_MINUTES = int(os.getenv("ALERT_WINDOW_MINUTES", "30"))

# Prospecting progress target shown next to each client (display only)
PROSPECTING_TARGET = int(os.getenv("PROSPECTING_TARGET", "3"))

# Optional webhook that receives every alert as {"title": ..., "body": ...}
ALERT_WEBHOOK_URL = os.getenv("ALERT_WEBHOOK_URL")
ALERT_WEBHOOK_TIMEOUT = float(os.getenv("ALERT_WEBHOOK_TIMEOUT", "5"))

# IANA timezone for the wall clock (e.g. "Africa/Maputo"); server local time when unset
APP_TIMEZONE = os.getenv("APP_TIMEZONE")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")
