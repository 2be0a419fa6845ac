# backend/posbackend/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session lifetime (opaque bearer tokens, see session_service)
    SESSION_ABSOLUTE_TIMEOUT_HOURS = _env_int("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)
    SESSION_IDLE_TIMEOUT_HOURS = _env_int("SESSION_IDLE_TIMEOUT_HOURS", 12)

    # Exchange-rate provider used by POST /api/v1/currency-rates/sync
    CURRENCY_API_URL = os.environ.get(
        "CURRENCY_API_URL",
        "https://api.exchangerate-api.com/v4/latest/GBP",
    )
    CURRENCY_API_TIMEOUT = float(os.environ.get("CURRENCY_API_TIMEOUT", "10"))

    ORDER_LIST_DEFAULT_LIMIT = _env_int("ORDER_LIST_DEFAULT_LIMIT", 100)
    ORDER_LIST_MAX_LIMIT = _env_int("ORDER_LIST_MAX_LIMIT", 1000)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ).split(",")
        if origin.strip()
    ]
