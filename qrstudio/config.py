import os
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv()


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


def _domain_from(base_url: str) -> str:
    parsed = urlparse(base_url)
    return parsed.netloc or base_url


class Config:
    SECRET_KEY = _require_env("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = _require_env("DATABASE_URL")
    BASE_URL = _require_env("BASE_URL").rstrip("/")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Host embedded in dynamic scan URLs
    APP_DOMAIN = os.getenv("APP_DOMAIN") or _domain_from(BASE_URL)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Redis is optional; without it the scan resolver reads the database every time
    REDIS_URL = os.getenv("REDIS_URL")
    REDIS_TTL = int(os.getenv("REDIS_TTL", 3600))

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
    GEMINI_TIMEOUT = int(os.getenv("GEMINI_TIMEOUT", 30))

    CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY")
    CLERK_API_URL = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1")
    CLERK_WEBHOOK_SECRET = os.getenv("CLERK_WEBHOOK_SECRET")
    CLERK_JWKS_URL = os.getenv("CLERK_JWKS_URL")

    MAX_LOGO_BYTES = int(os.getenv("MAX_LOGO_BYTES", 2 * 1024 * 1024))
    BLOCKED_DOMAINS = [d.strip().lower() for d in os.getenv("BLOCKED_DOMAINS", "").split(",") if d.strip()]
