"""
Environment-aware configuration.
Token settings (header, prefix, secrets, lifetimes) are externalized here and
turned into a utils.security.JwtSettings by create_app().
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev-access-secret-change-me-0123456789abcdef"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me-0123456789abcdef"


def _csv(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "http://localhost:3000,https://example.com"))

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth.db")

    # jwt configuration
    AUTH_HEADER = os.getenv("AUTH_HEADER", "Authorization")
    BEARER_PREFIX = os.getenv("BEARER_PREFIX", "Bearer ")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_SECRET = os.getenv("ACCESS_SECRET", DEV_ACCESS_SECRET)
    ACCESS_LIFETIME_MS = int(os.getenv("ACCESS_LIFETIME_MS", str(10 * 60 * 1000)))
    REFRESH_SECRET = os.getenv("REFRESH_SECRET", DEV_REFRESH_SECRET)
    REFRESH_LIFETIME_MS = int(os.getenv("REFRESH_LIFETIME_MS", str(30 * 24 * 60 * 60 * 1000)))

    # roles
    DEFAULT_ROLE = os.getenv("DEFAULT_ROLE", "ROLE_USER")
    SEED_ROLES = _csv(os.getenv("SEED_ROLES", "ROLE_USER,ROLE_ADMIN"))

    # argon2 cost parameters
    PASSWORD_HASH_TIME_COST = int(os.getenv("PASSWORD_HASH_TIME_COST", "3"))
    PASSWORD_HASH_MEMORY_COST = int(os.getenv("PASSWORD_HASH_MEMORY_COST", "65536"))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))
    PASSWORD_MAX_LENGTH = int(os.getenv("PASSWORD_MAX_LENGTH", "128"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True


class TestingConfig(BaseConfig):
    APP_ENV = "test"
    TESTING = True
    PROPAGATE_EXCEPTIONS = False
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")
    ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
    REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012345678"
    ACCESS_LIFETIME_MS = 60 * 1000
    REFRESH_LIFETIME_MS = 60 * 60 * 1000
    # cheap hashing keeps the suite fast
    PASSWORD_HASH_TIME_COST = 1
    PASSWORD_HASH_MEMORY_COST = 8192


class ProductionConfig(BaseConfig):
    APP_ENV = "prod"
    DEBUG = False


def validate_config(config) -> None:
    """Refuse to run production with the development secrets."""
    if config.get("APP_ENV") not in ("prod", "production"):
        return
    if config["ACCESS_SECRET"] == DEV_ACCESS_SECRET or config["REFRESH_SECRET"] == DEV_REFRESH_SECRET:
        raise RuntimeError("ACCESS_SECRET and REFRESH_SECRET must be set in production")
    if config["ACCESS_SECRET"] == config["REFRESH_SECRET"]:
        raise RuntimeError("ACCESS_SECRET and REFRESH_SECRET must differ")


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
