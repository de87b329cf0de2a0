# backend/tradebook/config.py
from __future__ import annotations
import os


def _origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tradebook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tradebook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales invoices fall due this many days after the invoice date unless set
    DEFAULT_DUE_DAYS = int(os.environ.get("DEFAULT_DUE_DAYS", "10"))

    # Auto-generated commission on container statements (percent of gross sale)
    CONTAINER_COMMISSION_PERCENT = float(os.environ.get("CONTAINER_COMMISSION_PERCENT", "5"))

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    CORS_ALLOWED_ORIGINS = _origins(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))
