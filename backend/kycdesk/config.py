from __future__ import annotations

import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _csv(raw: str | None) -> list[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


def current_env() -> str:
    return (os.getenv("KYCDESK_ENV", "dev") or "dev").strip().lower()


def is_production(env: str | None = None) -> bool:
    return (env or current_env()) in ("prod", "production")


class Config:
    # Base directory of the backend (one level above this `kycdesk` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, "instance")

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    _default_sqlite_path = os.path.join(INSTANCE_DIR, "kycdesk.db").replace("\\", "/")
    _db_url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL") or ""
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url) if _db_url else f"sqlite:///{_default_sqlite_path}"

    # CORS: comma-separated origins for the back-office UI
    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS"))

    # Uploaded KYC documents
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER") or os.path.join(BACKEND_DIR, "uploads")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(10 * 1024 * 1024)))

    # Risk scoring
    HIGH_RISK_COUNTRIES = _csv(os.getenv("HIGH_RISK_COUNTRIES")) or ["AF", "IQ", "SY", "YE", "LY", "SD"]

    # Screening lists
    WATCHLIST_FILE = os.getenv("WATCHLIST_FILE", "")
    WATCHLIST_URL = os.getenv("WATCHLIST_URL", "")

    # Developers may act on any tenant via X-Company-Id
    DEVELOPER_EMAILS = _csv(os.getenv("DEVELOPER_EMAILS"))
    DEVELOPER_EMAIL_DOMAINS = _csv(os.getenv("DEVELOPER_EMAIL_DOMAINS"))

    JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", str(60 * 60 * 24 * 7)))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-0123456789"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WATCHLIST_FILE = ""
    WATCHLIST_URL = ""
