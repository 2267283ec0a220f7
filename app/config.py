from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    service_name: str = Field(default="todo-service", alias="SERVICE_NAME")
    auth_url: str = Field(default="http://auth:8080/auth", alias="AUTH_URL")
    redis_url: str = Field(default="redis://redis:6379", alias="REDIS_URL")
    todo_key_pattern: str = Field(default="todo:*", alias="TODO_KEY_PATTERN")
    slow_delay_ms: int = Field(default=1000, alias="SLOW_DELAY_MS")
    seed_default_items: bool = Field(default=True, alias="SEED_DEFAULT_ITEMS")

    otlp_endpoint: str = Field(default="", alias="OTEL_EXPORTER_OTLP_ENDPOINT")
    metric_export_interval_ms: int = Field(default=5000, alias="METRIC_EXPORT_INTERVAL_MS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def slow_delay_seconds(self) -> float:
        return self.slow_delay_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
