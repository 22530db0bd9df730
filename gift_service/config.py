"""
Configuration settings for Storage Gift Service
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Farcaster Storage Gift Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8005

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Neynar API
    NEYNAR_API_KEY: str = ""
    NEYNAR_BASE_URL: str = "https://api.neynar.com/v2/farcaster"
    NEYNAR_TIMEOUT: float = 10.0

    # Social graph (public trial keys are rate limited above 100)
    FOLLOWING_LIMIT: int = 100

    # Usage fetching
    USAGE_FETCH_STRATEGY: str = "pool"  # "pool" or "batch"
    USAGE_BATCH_SIZE: int = 15
    USAGE_CONCURRENCY: int = 15
    USAGE_FETCH_TIMEOUT: float = 5.0  # seconds, 0 disables the deadline

    # Usage cache
    USAGE_CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    USAGE_CACHE_MAX_ENTRIES: int = 10000
    USAGE_CACHE_TTL: int = 3600  # seconds, 0 keeps entries until evicted

    # Redis (only used by the redis cache backend)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 2
    REDIS_PASSWORD: str = ""

    # Pagination cursor signing
    CURSOR_SECRET_KEY: str = "your-secret-key-change-this-in-production"
    CURSOR_ALGORITHM: str = "HS256"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 1
    MAX_PAGE_SIZE: int = 10
    MAX_PAGES: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
