from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Direct provider access (responses dialect).
    openai_base_url: str = Field(
        "https://api.openai.com/v1",
        alias="OPENAI_BASE_URL",
        description="Base URL for direct provider calls",
    )
    realtime_url: str = Field(
        "wss://api.openai.com/v1/realtime?intent=transcription",
        alias="REALTIME_URL",
    )

    # Relay access through a virtual-key proxy (chat-completions dialect).
    relay_base_url: str = Field(
        "https://api.portkey.ai/v1",
        alias="RELAY_BASE_URL",
    )
    relay_realtime_url: str = Field(
        "wss://api.portkey.ai/v1/realtime?intent=transcription",
        alias="RELAY_REALTIME_URL",
    )
    relay_api_key: str = Field(
        "",
        alias="RELAY_API_KEY",
        description="Account key of the relay itself; the virtual key is per user",
    )
    relay_label: str = Field("Portkey", alias="RELAY_LABEL")
    relay_provider_id: str = Field(
        "openai-glass",
        alias="RELAY_PROVIDER_ID",
        description="Provider id whose requests are routed through the relay",
    )

    transcription_model: str = Field(
        "gpt-4o-mini-transcribe", alias="TRANSCRIPTION_MODEL"
    )

    # Only the connect phase is bounded; streams may stay open as long as
    # the provider keeps them open.
    upstream_timeout: float = Field(600.0, alias="UPSTREAM_TIMEOUT")

    default_temperature: float = Field(0.7, alias="ASK_TEMPERATURE")
    voice_draft_max_age_seconds: float = Field(
        600.0,
        alias="VOICE_DRAFT_MAX_AGE_SECONDS",
        description="Voice drafts older than this are not used as prompts",
    )

    log_level: str = Field(
        "INFO",
        alias="LOG_LEVEL",
        description="Application log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_timezone: Optional[str] = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="Timezone name for log timestamps, e.g. 'Europe/Berlin'. Defaults to system local time.",
    )
    log_dir: str = Field("logs", alias="LOG_DIR")


settings = Settings()  # Reads from environment if available
