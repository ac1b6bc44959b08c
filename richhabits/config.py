"""
Rich Habits OS
Configuration classes for the Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'richhabits_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name, default="true"):
    return os.getenv(name, default).lower() not in ("false", "0", "no", "off")


def _normalise_db_url(raw):
    # Hosted Postgres providers hand out postgres:// but SQLAlchemy 2.0 requires postgresql://
    return raw.replace("postgres://", "postgresql://", 1) if raw else raw


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    APP_NAME = "Rich Habits OS"
    APP_VERSION = os.getenv("APP_VERSION", "1.0.0")

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Redis (rate-limit storage + health probe)
    REDIS_URL = os.getenv("REDIS_URL", "")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Session cookie
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # CSRF (X-CSRF-Token header on mutating /api/ requests)
    CSRF_ENABLED = _env_flag("CSRF_ENABLED")

    # Permissions
    PERMISSIONS_AUTO_SEED = _env_flag("PERMISSIONS_AUTO_SEED")
    PERMISSIONS_STATIC_FALLBACK = _env_flag("PERMISSIONS_STATIC_FALLBACK")

    # Object storage (S3-compatible; presigned direct-upload URLs via boto3).
    # Credentials come from the standard AWS chain (env, profile, instance role).
    OBJECT_STORAGE_BUCKET = os.getenv("OBJECT_STORAGE_BUCKET", "richhabits-uploads")
    OBJECT_STORAGE_REGION = os.getenv("OBJECT_STORAGE_REGION", "us-east-1")
    OBJECT_STORAGE_ENDPOINT = os.getenv("OBJECT_STORAGE_ENDPOINT", "")
    UPLOAD_URL_TTL = int(os.getenv("UPLOAD_URL_TTL", "900"))

    # License acceptance
    LICENSE_VERSION = os.getenv("LICENSE_VERSION", "1.0")

    # Per-user application config defaults
    DEFAULT_FEATURE_FLAGS = {
        "enableRoleHome": True,
        "enableNewNavigation": False,
        "salesMapEnabled": True,
    }


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalise_db_url(os.getenv("DATABASE_URL", "")) or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    # Tests that exercise CSRF switch it back on explicitly
    CSRF_ENABLED = False
    # Tests seed explicitly so "missing row" scenarios stay reachable
    PERMISSIONS_AUTO_SEED = False
    SECRET_KEY = "test-secret-key"
    BCRYPT_LOG_ROUNDS = 4
    REDIS_URL = ""


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _normalise_db_url(os.getenv("DATABASE_URL", "")) or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production
    SESSION_COOKIE_SECURE = True

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
