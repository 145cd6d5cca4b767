from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # App
    APP_NAME: str = "LANDING API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./landing.db"

    # JWT (admin endpoints)
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Privacy
    IP_HASH_SALT: str = ""

    # Custom domains
    MAIN_DOMAIN: str = ""
    DOMAIN_LOOKUP_TIMEOUT: float = 2.0

    # Rate limiting : "memory" | "redis"
    RATE_LIMIT_BACKEND: str = "memory"
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    RATE_LIMIT_SWEEP_SECONDS: int = 60   # 0 = sweep désactivé

    # Analytics
    ANALYTICS_TIMEZONE: str = "UTC"

    # Resend
    RESEND_API_KEY: str = ""
    MAIL_FROM: str = "Landing <noreply@landing.app>"
    NOTIFICATION_EMAIL: str = "admin@landing.app"

    # Front
    BASE_URL: str = "http://localhost:8000"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()
