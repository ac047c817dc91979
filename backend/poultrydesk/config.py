# backend/poultrydesk/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/poultrydesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///poultrydesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Generated PDFs and chart images; None means <instance_path>/reports
    REPORTS_OUTPUT_DIR = os.environ.get("REPORTS_OUTPUT_DIR")

    # External HTML -> PDF renderer (weasyprint CLI), bounded by a timeout
    PDF_RENDERER_BIN = os.environ.get("PDF_RENDERER_BIN", "weasyprint")
    PDF_RENDER_TIMEOUT_SECONDS = int(os.environ.get("PDF_RENDER_TIMEOUT_SECONDS", "60"))

    # First day of the "current week" period
    WEEK_STARTS_ON = os.environ.get("WEEK_STARTS_ON", "sunday")

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    LOW_STOCK_NOTIFICATIONS = _env_bool("LOW_STOCK_NOTIFICATIONS", True)

    # Days ahead of a scheduled dose that the owner is reminded
    VACCINATION_REMINDER_DAYS = int(os.environ.get("VACCINATION_REMINDER_DAYS", "3"))
