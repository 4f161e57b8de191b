"""
Configuration management with environment variable support
"""
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with validation"""

    # Application
    APP_NAME: str = "ATS Bridge"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # API
    API_V1_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1
    RELOAD: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: List[str] = ["*"]
    CORS_HEADERS: List[str] = ["*"]

    # Rate Limiting (every analyze/rectify call is a paid model call)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 30
    RATE_LIMIT_PERIOD: int = 60  # seconds

    # Resume upload
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_RESUME_EXTENSIONS: List[str] = [".pdf", ".txt", ".md", ".docx"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json, text
    LOG_FILE: Optional[str] = None

    # Delegate model
    AI_PROVIDER: str = "gemini"  # gemini, openai, anthropic
    LLM_TEMPERATURE: Optional[float] = None

    # Google Gemini API (Google AI Studio API key)
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-3-pro-preview"
    GEMINI_THINKING_BUDGET: Optional[int] = 8000  # None disables the thinking config

    # OpenAI Configuration
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4.1-mini"

    # Anthropic Configuration
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def log_path(self) -> Optional[Path]:
        if not self.LOG_FILE:
            return None
        return Path(self.LOG_FILE)

    @property
    def active_model_name(self) -> str:
        """Model name for the configured provider"""
        provider = self.AI_PROVIDER.lower()
        if provider == "openai":
            return self.OPENAI_MODEL
        elif provider == "anthropic":
            return self.ANTHROPIC_MODEL
        return self.GEMINI_MODEL

    @property
    def active_credential_name(self) -> str:
        """Environment variable holding the credential for the configured provider"""
        provider = self.AI_PROVIDER.lower()
        if provider == "openai":
            return "OPENAI_API_KEY"
        elif provider == "anthropic":
            return "ANTHROPIC_API_KEY"
        return "GOOGLE_API_KEY"

    @property
    def active_credential(self) -> Optional[str]:
        """Credential for the configured provider, or None when unset/blank"""
        value = getattr(self, self.active_credential_name)
        if value is None or not value.strip():
            return None
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Convenience accessors
settings = get_settings()
