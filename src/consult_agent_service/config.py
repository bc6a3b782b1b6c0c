"""Runtime configuration for the consult agent service."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the consult agent service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Azure AI Foundry agent service
    azure_ai_endpoint: str | None = Field(default=None, alias="AZURE_AI_ENDPOINT")
    azure_ai_agent_id: str | None = Field(default=None, alias="AZURE_AI_AGENT_ID")
    # Chat falls back to the extraction agent when not set
    azure_ai_chat_agent_id: str | None = Field(default=None, alias="AZURE_AI_CHAT_AGENT_ID")
    azure_ai_api_version: str = Field(default="2025-05-01", alias="AZURE_AI_API_VERSION")

    # Credentials
    azure_ai_token_scope: str = Field(default="https://ai.azure.com/.default", alias="AZURE_AI_TOKEN_SCOPE")
    # Dev only: fixed bearer token, skips azure-identity entirely
    azure_ai_static_token: str | None = Field(default=None, alias="AZURE_AI_STATIC_TOKEN")
    azure_ai_token_timeout_seconds: float = Field(default=10.0, alias="AZURE_AI_TOKEN_TIMEOUT_SECONDS", gt=0)

    # Run orchestration (shared by the chat and extraction workflows)
    agent_http_timeout_seconds: float = Field(default=30.0, alias="AGENT_HTTP_TIMEOUT_SECONDS", gt=0)
    agent_poll_interval_seconds: float = Field(default=1.0, alias="AGENT_POLL_INTERVAL_SECONDS", gt=0)
    agent_max_poll_attempts: int = Field(default=60, alias="AGENT_MAX_POLL_ATTEMPTS", ge=1)
    agent_setup_allowance_seconds: float = Field(default=30.0, alias="AGENT_SETUP_ALLOWANCE_SECONDS", ge=0)
    agent_max_request_seconds: float = Field(default=300.0, alias="AGENT_MAX_REQUEST_SECONDS", gt=0)
    agent_cancel_on_timeout: bool = Field(default=True, alias="AGENT_CANCEL_ON_TIMEOUT")
    agent_message_page_size: int = Field(default=20, alias="AGENT_MESSAGE_PAGE_SIZE", ge=1, le=100)

    # FastAPI
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8083, alias="APP_PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def effective_chat_agent_id(self) -> str | None:
        return self.azure_ai_chat_agent_id or self.azure_ai_agent_id

    @property
    def cors_allow_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings so multiple imports share a single instance."""

    return Settings()  # type: ignore[call-arg]
