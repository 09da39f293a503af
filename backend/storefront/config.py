# backend/storefront/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Products at or below this many units are "Low Stock"
    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 50)

    # Party balance labels (paise)
    BALANCE_WARNING_CENTS = _int_env("BALANCE_WARNING_CENTS", 7_500_000)
    BALANCE_ALERT_CENTS = _int_env("BALANCE_ALERT_CENTS", 10_000_000)

    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)
    SESSION_ABSOLUTE_HOURS = _int_env("SESSION_ABSOLUTE_HOURS", 24)
    SESSION_IDLE_HOURS = _int_env("SESSION_IDLE_HOURS", 2)

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
