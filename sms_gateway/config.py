from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Message store location - required
    DATABASE_URL: str

    # Logging Configuration - required
    LOG_LEVEL: str

    # Capabilities the host has already granted, comma-separated
    # (e.g. "android.permission.READ_SMS")
    GRANTED_PERMISSIONS: str = ""

    # Attach a foreground context on startup so permission prompts can be shown
    INTERACTIVE_CONTEXT: bool = False

    # Create the store tables on startup (development and tests only)
    INIT_SCHEMA: bool = False

    @property
    def granted_permissions(self) -> list[str]:
        return [p.strip() for p in self.GRANTED_PERMISSIONS.split(",") if p.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
