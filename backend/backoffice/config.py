# backend/backoffice/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///backoffice.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Sale statuses outside the known table count as stock-holding unless disabled
    UNKNOWN_STATUS_AFFECTS_STOCK = _env_bool("UNKNOWN_STATUS_AFFECTS_STOCK", True)

    # Transactional executor: whole-operation retries on transient DB failures
    RECONCILE_MAX_ATTEMPTS = int(os.environ.get("RECONCILE_MAX_ATTEMPTS", "3"))
    RECONCILE_BACKOFF_SECONDS = float(os.environ.get("RECONCILE_BACKOFF_SECONDS", "0.1"))
