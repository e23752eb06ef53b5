"""
Application configuration — environment-aware settings.

All environment variables are read here; a local .env file is loaded first.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv()


def _flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    SCHOOL_NAME = os.environ.get("SCHOOL_NAME", "Nepal Central High School")
    SCHOOL_ADDRESS = os.environ.get("SCHOOL_ADDRESS", "Narephat, Kathmandu")

    # Storage: "memory" (default) or "sqlite"
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "memory")
    DATABASE = os.environ.get("DATABASE", str(BASE_DIR / "preprimary.db"))

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # CSRF: non-JSON writes (forms, multipart uploads) need an X-CSRFToken header
    WTF_CSRF_ENABLED = True
    WTF_CSRF_CHECK_DEFAULT = False

    # Uploads: whole request capped a little above the photo limit
    MAX_PHOTO_BYTES = int(os.environ.get("MAX_PHOTO_BYTES", str(1024 * 1024)))
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024
    UPLOAD_DIR = os.environ.get("UPLOAD_DIR", str(BASE_DIR / "uploads"))

    # Image host (Cloudinary)
    CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET", "")

    # Report photos are only downloaded from URLs starting with one of these
    PHOTO_URL_PREFIXES = tuple(
        p.strip() for p in os.environ.get("PHOTO_URL_PREFIXES", "https://res.cloudinary.com/").split(",") if p.strip()
    )

    # AI provider (DeepSeek, OpenAI-compatible API)
    DEEPSEEK_API_KEY = os.environ.get("DEEPSEEK_API_KEY", "")
    DEEPSEEK_BASE_URL = os.environ.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com/v1")
    DEEPSEEK_MODEL = os.environ.get("DEEPSEEK_MODEL", "deepseek-chat")

    # Upper bound for any outbound call (AI, image host, photo fetch)
    EXTERNAL_TIMEOUT_SECONDS = float(os.environ.get("EXTERNAL_TIMEOUT_SECONDS", "5"))

    # Seeding
    SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "true")
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@school.com")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "lkg123")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (in-memory unless a storage URI is given)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "") or "memory://"


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True
    SEED_DEMO_DATA = _flag("SEED_DEMO_DATA", "false")

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.ADMIN_PASSWORD == "lkg123":
            warnings.warn("ADMIN_PASSWORD is the demo default; change it before seeding.")

        if not cls.DEEPSEEK_API_KEY:
            warnings.warn("DEEPSEEK_API_KEY is not set; AI suggestions will use canned fallbacks.")

        if not (cls.CLOUDINARY_CLOUD_NAME and cls.CLOUDINARY_API_KEY and cls.CLOUDINARY_API_SECRET):
            warnings.warn("Cloudinary credentials are not set; photos will be stored locally.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SECRET_KEY = "test-secret-key"
    STORAGE_BACKEND = "memory"
    SEED_DEMO_DATA = False
    DEEPSEEK_API_KEY = ""
    CLOUDINARY_CLOUD_NAME = ""
    CLOUDINARY_API_KEY = ""
    CLOUDINARY_API_SECRET = ""
    RATELIMIT_ENABLED = False


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
