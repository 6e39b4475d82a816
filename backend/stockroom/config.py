# backend/stockroom/config.py
from __future__ import annotations
import os
from decimal import Decimal


def _parse_invite_codes(raw: str | None) -> frozenset[str]:
    """Comma separated codes, compared case-insensitively."""
    if not raw:
        return frozenset()
    return frozenset(code.strip().upper() for code in raw.split(",") if code.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Registration is open when no invite code is configured
    INVITE_CODES = _parse_invite_codes(
        os.environ.get("INVITE_CODES") or os.environ.get("INVITE_CODE")
    )

    # EUR -> MAD rate used when a shipment does not carry its own
    DEFAULT_EXCHANGE_RATE = Decimal(os.environ.get("DEFAULT_EXCHANGE_RATE", "10.85"))

    # Plastic + carton + stickers, per order
    DEFAULT_PACKAGING_COST_CENTS = int(os.environ.get("DEFAULT_PACKAGING_COST_CENTS", "800"))

    DEFAULT_REORDER_LEVEL = 3
    IMPORT_REORDER_LEVEL = 5

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    }
