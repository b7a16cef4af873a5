from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Splitline"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8790
    log_level: str = "INFO"

    database_url: str = "sqlite:///./splitline.db"

    default_guarantee_days: int = 90
    default_page_size: int = 25
    max_page_size: int = 100
    identity_header: str = "X-Identity-User-Id"

    event_publisher: str = "memory"
    event_webhook_url: str = ""
    event_webhook_timeout_sec: int = 5

    cors_origins: str = "http://127.0.0.1:8790"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("event_publisher")
    @classmethod
    def validate_event_publisher(cls, value: str) -> str:
        allowed = {"memory", "log", "webhook"}
        if value not in allowed:
            raise ValueError(f"event_publisher must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
