from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Observability (OpenTelemetry)
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_service_name: str = Field(default="llm-engine-agents", validation_alias="OTEL_SERVICE_NAME")
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None, validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT"
    )

    # LLM platforms
    vllm_base_url: str | None = Field(default=None, validation_alias="VLLM_API_URL")
    llm_ping_timeout_seconds: float = Field(default=10.0, validation_alias="LLM_PING_TIMEOUT_SECONDS")

    # Conversation history
    default_history_count: int = Field(default=10, validation_alias="DEFAULT_HISTORY_COUNT")

    # Transcript
    transcript_channel: str = Field(default="transcript", validation_alias="TRANSCRIPT_CHANNEL")
    transcript_retention_period: str = Field(
        default="3 months", validation_alias="TRANSCRIPT_RETENTION_PERIOD"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
