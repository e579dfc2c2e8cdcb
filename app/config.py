"""
Configuration management for PediBrief.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "PediBrief"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "*"

    # ==========================================================================
    # Gemini Configuration
    # ==========================================================================
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 120.0

    # Summary generation
    summary_temperature: float = 0.3
    summary_top_k: int = 40
    summary_top_p: float = 0.95
    summary_max_output_tokens: int = 8192

    # Answer grading
    grading_temperature: float = 0.2
    grading_top_k: int = 40
    grading_top_p: float = 0.95
    grading_max_output_tokens: int = 256

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 30

    # ==========================================================================
    # Gmail (doctor notification)
    # ==========================================================================
    gmail_client_id: str = ""
    gmail_client_secret: str = ""
    gmail_refresh_token: str = ""
    gmail_user_email: str = ""
    gmail_redirect_uri: str = "http://localhost:3000/oauth2callback"
    gmail_token_uri: str = "https://oauth2.googleapis.com/token"

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def gemini_configured(self) -> bool:
        """Whether a Gemini API key is available."""
        return bool(self.gemini_api_key)

    @property
    def gmail_configured(self) -> bool:
        """Whether the Gmail OAuth2 credentials are complete."""
        return all([
            self.gmail_client_id,
            self.gmail_client_secret,
            self.gmail_refresh_token,
        ])

    @property
    def cors_origin_list(self) -> list[str]:
        """List of allowed CORS origins."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
