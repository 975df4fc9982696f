"""
Application configuration management
"""

from functools import lru_cache
from typing import Optional, Tuple, Type

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

RC_FILE = ".aicodereviewrc"


class Settings(BaseSettings):
    """Application settings with environment variable, rc file and .env support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=RC_FILE,
        json_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    log_level: str = Field("INFO", description="Root logging level")

    # DeepSeek Configuration
    deepseek_api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "deepseek_api_key", "next_public_deepseek_api_key"
        ),
        description="DeepSeek API key (NEXT_PUBLIC_DEEPSEEK_API_KEY is accepted for compatibility)",
    )
    deepseek_base_url: str = Field("https://api.deepseek.com/v1")
    deepseek_model: str = Field("deepseek-chat")
    ai_temperature: float = Field(0.2, ge=0.0, le=2.0)
    ai_max_tokens: int = Field(2048, gt=0)

    # Review pipeline
    request_timeout: float = Field(
        40.0, gt=0, description="Per-request timeout in seconds"
    )
    chunk_size: int = Field(3000, gt=0, description="Target characters per chunk")
    ai_retries: int = Field(3, ge=0, description="Retries after the first attempt")
    retry_base_delay: float = Field(1.0, gt=0)
    retry_max_delay: float = Field(10.0, gt=0)
    max_concurrent_chunks: int = Field(
        8, ge=0, description="Chunks reviewed at once, 0 disables the cap"
    )

    # HTTP connection pool
    max_connections: int = Field(100, gt=0)
    max_keepalive_connections: int = Field(20, gt=0)
    keepalive_expiry: float = Field(30.0, gt=0)

    @field_validator("deepseek_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate DeepSeek URL format"""
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                "DeepSeek base URL must include protocol (http:// or https://)"
            )
        # Remove trailing slash for consistency
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level name"""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Process environment wins over the rc file, which wins over .env
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls),
            dotenv_settings,
        )

    def __repr__(self) -> str:
        """Secure representation that doesn't expose secrets"""
        return (
            f"<{self.__class__.__name__} deepseek_base_url={self.deepseek_base_url} "
            f"deepseek_model={self.deepseek_model}>"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get or create the process-wide settings instance"""
    return Settings()
