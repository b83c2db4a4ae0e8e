import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]
YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"


class Settings(BaseModel):
    youtube_api_key: str | None = None
    youtube_api_base_url: str = YOUTUBE_API_BASE_URL
    request_timeout_seconds: float = 15.0
    cache_ttl_seconds: int = 10 * 60  # 10 minutes
    cors_allowed_origins: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    cors_allow_credentials: bool = True
    log_level: str = "INFO"
    port: int = 3000


def parse_cors_origins(raw: str | None) -> tuple[list[str], bool]:
    raw = (raw or "").strip()
    if not raw:
        return list(DEFAULT_CORS_ORIGINS), True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return list(DEFAULT_CORS_ORIGINS), True
    return origins, True


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def load_settings() -> Settings:
    """
    Read settings from the environment (and backend/.env when present).
    A missing YOUTUBE_API_KEY is not an error here; search requests report it.
    """
    load_dotenv()
    origins, allow_credentials = parse_cors_origins(os.getenv("CORS_ALLOWED_ORIGINS"))
    return Settings(
        youtube_api_key=(os.getenv("YOUTUBE_API_KEY") or "").strip() or None,
        youtube_api_base_url=os.getenv("YOUTUBE_API_BASE_URL") or YOUTUBE_API_BASE_URL,
        request_timeout_seconds=_float_env("YOUTUBE_REQUEST_TIMEOUT", 15.0),
        cache_ttl_seconds=_int_env("CACHE_TTL_SECONDS", 10 * 60),
        cors_allowed_origins=origins,
        cors_allow_credentials=allow_credentials,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        port=_int_env("PORT", 3000),
    )
