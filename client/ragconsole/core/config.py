"""
Configuration module using Pydantic Settings.

Loads the backend endpoint, transport limits, and session persistence
location from environment variables. Supports .env files for local use.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Console settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RAGCONSOLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend
    backend_base_url: str = "http://localhost:8080/api"
    request_timeout_seconds: float = 60.0
    session_header: str = "X-Session-ID"

    # Session persistence
    session_file: Path = Path.home() / ".ragconsole" / "session.json"

    # Uploads
    max_upload_bytes: int = MAX_UPLOAD_BYTES

    # Telemetry
    service_name: str = "rag-console"
    telemetry_console_export: bool = False

    # App
    log_level: str = "INFO"

    @property
    def base_url(self) -> str:
        """Backend base URL without a trailing slash."""
        return self.backend_base_url.rstrip("/")


def get_settings() -> Settings:
    """Factory for a settings instance."""
    return Settings()
