"""
Configuration settings for Vizfolio
"""
import os
import logging
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

# Configure basic logger for config module
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Supabase (auth, PostgREST, storage)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")

    # Table names
    PROFILES_TABLE: str = "profiles"
    PROJECTS_TABLE: str = "projects"
    SKILLS_TABLE: str = "skills"

    # Storage buckets and upload ceilings (bytes)
    AVATAR_BUCKET: str = os.getenv("AVATAR_BUCKET", "avatars")
    PROJECT_IMAGE_BUCKET: str = os.getenv("PROJECT_IMAGE_BUCKET", "project-images")
    AVATAR_MAX_BYTES: int = 5 * 1024 * 1024
    PROJECT_IMAGE_MAX_BYTES: int = 10 * 1024 * 1024

    # AI generation - the key only ever lives on the proxy service
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    # "live" calls Gemini, "simulated" answers from role templates
    AI_GENERATION_MODE: str = os.getenv("AI_GENERATION_MODE", "live")
    AI_PROXY_URL: str = os.getenv("AI_PROXY_URL", "http://localhost:8001")
    AI_RATE_LIMIT: str = os.getenv("AI_RATE_LIMIT", "10/minute")

    # Generation Settings
    MAX_TOKENS: int = 2048
    TEMPERATURE: float = 0.7
    SIMULATED_DELAY_MIN: float = 0.5  # seconds
    SIMULATED_DELAY_MAX: float = 1.5

    # Public portfolio
    PUBLIC_SITE_URL: str = os.getenv("PUBLIC_SITE_URL", "https://vizfolio.com")
    DEFAULT_THEME: str = "minimal"

    # Monitoring
    SENTRY_DSN: Optional[str] = os.getenv("SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "development")
    SENTRY_TRACES_SAMPLE_RATE: float = float(
        os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")
    )

    # CORS - comma-separated list of allowed origins
    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000"
    )

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()


def validate_required_config(current: Optional[Settings] = None) -> bool:
    """Validate required configuration on startup"""
    current = current or settings
    errors = []

    if not current.SUPABASE_URL or not current.SUPABASE_ANON_KEY:
        errors.append("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")

    if current.AI_GENERATION_MODE not in ("live", "simulated"):
        errors.append(
            f"AI_GENERATION_MODE must be 'live' or 'simulated', got '{current.AI_GENERATION_MODE}'"
        )
    elif current.AI_GENERATION_MODE == "live" and not current.GEMINI_API_KEY:
        errors.append("GEMINI_API_KEY must be configured when AI_GENERATION_MODE is 'live'")

    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        if current.ENVIRONMENT == "production":
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")

    return len(errors) == 0
