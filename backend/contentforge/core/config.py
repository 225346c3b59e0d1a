"""
Configuration settings for ContentForge
"""
from typing import List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Project Info
    PROJECT_NAME: str = "ContentForge API"
    VERSION: str = "1.0.0"
    APP_ENV: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # API Settings
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default="http://localhost:3000,http://localhost:5173,http://localhost"
    )

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        elif isinstance(v, list):
            return v
        return ["http://localhost:3000", "http://localhost"]

    # LLM API (OpenAI-compatible chat completions)
    LLM_API_KEY: str = Field(...)
    LLM_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta/openai"
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_TIMEOUT: float = Field(default=120.0)
    LLM_TEMPERATURE: float = Field(default=0.7)
    LLM_MAX_TOKENS: int = Field(default=8192)
    LLM_CIRCUIT_FAILURE_THRESHOLD: int = Field(default=5)
    LLM_CIRCUIT_RECOVERY_SECONDS: float = Field(default=30.0)
    GENERATION_TIMEOUT: float = Field(default=180.0)
    SEO_DRAFT_MAX_CHARS: int = Field(default=5000)

    @field_validator('LLM_TIMEOUT', 'GENERATION_TIMEOUT')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be strictly positive"""
        if v <= 0:
            raise ValueError("Timeouts must be greater than zero")
        return v

    # Remote backend (SQLAlchemy URL + credential); both blank means local-only
    BACKEND_URL: Optional[str] = Field(default=None)
    BACKEND_KEY: Optional[str] = Field(default=None)
    BACKEND_AUTO_CREATE_SCHEMA: bool = Field(default=True)

    # Local fallback store
    LOCAL_STORE_PATH: str = Field(default="./contentforge_store.json")
    LOCAL_STORE_NAMESPACE: str = "contentforge_projects_v1"
    SETTINGS_NAMESPACE: str = "contentforge_backend_v1"

    # Save retries for the optimistic update protocol
    SAVE_RETRIES: int = Field(default=2, ge=0)
    SAVE_RETRY_BACKOFF: float = Field(default=0.5, ge=0)

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    STRUCTURED_LOGGING_ENABLED: bool = Field(default=False)

    # Observability
    OBSERVABILITY_ENABLED: bool = Field(default=True)
    METRICS_ENABLED: bool = Field(default=True)
    METRICS_PATH: str = "/metrics"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create settings instance
settings = Settings()  # type: ignore[call-arg]
