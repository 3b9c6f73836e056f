# backend/pantry/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pantry.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pantry.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Comma-separated browser origins allowed to call the API (kiosk and vendor UIs)
    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        ).split(",")
        if origin.strip()
    }

    # Trusted header set by the authenticating gateway in front of the API
    IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-Pantry-Employee")

    # When false, order/debit/history are written in staged savepoints and
    # a failed debit or history append is queued for reconciliation instead
    # of rolling back the order.
    CHECKOUT_ATOMIC = _env_bool("CHECKOUT_ATOMIC", True)
    CHECKOUT_RETRY_ATTEMPTS = int(os.environ.get("CHECKOUT_RETRY_ATTEMPTS", "3"))

    PIN_MAX_FAILED_ATTEMPTS = int(os.environ.get("PIN_MAX_FAILED_ATTEMPTS", "5"))
    PIN_LOCKOUT_WINDOW_MINUTES = int(os.environ.get("PIN_LOCKOUT_WINDOW_MINUTES", "15"))
    PIN_LOCKOUT_MINUTES = int(os.environ.get("PIN_LOCKOUT_MINUTES", "15"))
    PIN_HASH_ROUNDS = int(os.environ.get("PIN_HASH_ROUNDS", "12"))

    # Budget amounts are minor units (paise): 10000 == 100.00
    DEFAULT_MONTHLY_LIMIT_CENTS = int(os.environ.get("DEFAULT_MONTHLY_LIMIT_CENTS", "10000"))
    MAX_MONTHLY_LIMIT_CENTS = int(os.environ.get("MAX_MONTHLY_LIMIT_CENTS", "1000000"))
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "₹")

    # Purchase confirmation mail; no MAIL_SERVER means log-only delivery
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "pantry@localhost")
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "5"))
