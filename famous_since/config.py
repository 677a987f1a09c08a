import os
from datetime import timedelta
from pathlib import Path
from typing import Type

from dotenv import load_dotenv
from flask import Flask

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(path)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

PROJECT_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=PROJECT_DIR / ".env")

MIN_SECRET_LENGTH = 32


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value and value.strip().isdigit() else default


class Config:
    """Settings shared by every environment. Values come from the process env / ``.env``."""
    SECRET_KEY: str | None = os.getenv("APP_SECRET", "")

    # Stripe's hosted pages redirect back to us, so Strict would drop the cart.
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)
    REMEMBER_COOKIE_DURATION = timedelta(days=14)

    LOG_LEVEL = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    LOG_FORMAT = os.getenv("LOG_FORMAT", DEFAULT_LOG_FORMAT)
    LOG_DATEFMT = os.getenv("LOG_DATEFMT", DEFAULT_LOG_DATEFMT)
    LOG_FILE = os.getenv("LOG_FILE")

    DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{PROJECT_DIR / 'instance' / 'famous_since.db'}")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    BASE_URL = os.getenv("BASE_URL", "http://localhost:5000")

    # Payments
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_PUBLIC_KEY = os.getenv("STRIPE_PUBLIC_KEY", "")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    HOSTING_PRICE_ID = os.getenv("HOSTING_PRICE_ID", "price_1RisNgDc80868KCRn2gWQR02")
    PLATFORM_FEE_PERCENT = _env_int("PLATFORM_FEE_PERCENT", 2)

    # Image storage and mockups
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
    MOCKUP_FONT_PATH = os.getenv("MOCKUP_FONT_PATH", "")
    IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    @staticmethod
    def init_app(app: Flask) -> None:
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    HOST = "127.0.0.1"
    PORT = _env_int("PORT", 5000)

    @staticmethod
    def init_app(app: Flask) -> None:
        missing = [key for key in ("STRIPE_SECRET_KEY", "CLOUDINARY_CLOUD_NAME") if not app.config.get(key)]
        if missing:
            print(f"Development mode: {', '.join(missing)} not set, checkout/uploads will fail")
        if len(app.secret_key or "") < MIN_SECRET_LENGTH:  # type: ignore[arg-type]
            print("Development mode: APP_SECRET is short, sessions are not safe outside this machine")


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True
    HOST = "0.0.0.0"
    PORT = _env_int("PORT", 5000)

    REQUIRED = ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "CLOUDINARY_API_SECRET")

    @classmethod
    def init_app(cls, app: Flask) -> None:
        if len(app.secret_key or "") < MIN_SECRET_LENGTH:  # type: ignore[arg-type]
            raise ValueError(f"APP_SECRET must be at least {MIN_SECRET_LENGTH} characters in production")
        missing = [key for key in cls.REQUIRED if not app.config.get(key)]
        if missing:
            raise ValueError(f"Missing production settings: {', '.join(missing)}")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret"
    WTF_CSRF_ENABLED = False
    DATABASE_URI = "sqlite:///:memory:"
    REDIS_URL = "redis://localhost:6379/15"
    LOG_FILE = None
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test"
    CLOUDINARY_CLOUD_NAME = "famous-test"
    CLOUDINARY_API_KEY = "key"
    CLOUDINARY_API_SECRET = "secret"


config_by_name: dict[str, Type[Config]] = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
