# backend/stockworks/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockworks.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockworks.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor for the admin reset password
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Deleting a production run gives the consumed materials back to stock.
    # False keeps the legacy behavior (only product stock is reversed).
    PRODUCTION_DELETE_RESTORES_MATERIALS = _env_flag("PRODUCTION_DELETE_RESTORES_MATERIALS", True)

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "SAR")

    # Phrase the API caller must echo back before a tenant data reset
    RESET_CONFIRMATION_PHRASE = "DELETE ALL DATA"
