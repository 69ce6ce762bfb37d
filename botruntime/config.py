"""Application configuration."""
from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"
    secret_key: str = "dev-secret-change-in-production"
    debug: bool = True

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "botruntime"
    postgres_user: str = "botruntime"
    postgres_password: str = "changeme"
    database_url: str = ""  # overrides POSTGRES_* when set
    db_pool_size: int = 5
    db_max_overflow: int = 10

    redis_host: str = "localhost"
    redis_port: int = 6379

    token_encryption_key: str = ""  # min 32 chars, falls back to secret_key

    telegram_api_base: str = "https://api.telegram.org"
    telegram_timeout_seconds: int = 20

    conversation_ttl_minutes: int = 30
    conversation_lock_enabled: bool = False
    conversation_lock_timeout_seconds: int = 10

    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_gateway_api_key: str = ""
    ai_model: str = "google/gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash-exp"
    ai_timeout_seconds: int = 30
    ai_history_limit: int = 10

    api_integration_timeout_seconds: int = 15


@lru_cache
def get_settings() -> Settings:
    return Settings()
