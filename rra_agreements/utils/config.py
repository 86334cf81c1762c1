"""Configuration management using pydantic-settings"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    log_level: str = Field(default="INFO", description="Logging level")

    # Supabase settings
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(default=None, description="Supabase anon key")
    supabase_service_key: Optional[str] = Field(default=None, description="Supabase service role key")
    agreements_bucket: str = Field(
        default="generated-agreements",
        description="Supabase Storage bucket for generated agreement PDFs",
    )

    # Wizard settings
    autosave_delay_seconds: float = Field(
        default=2.0, description="Quiet period before a form change is auto-saved"
    )
    wizard_session_ttl_minutes: int = Field(default=30, description="Idle wizard session lifetime")
    wizard_max_sessions: int = Field(default=1000, description="Max wizard sessions held in memory")

    # Document output
    output_dir: str = Field(default="./data/agreements", description="Local directory for generated PDFs")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def get_settings() -> Settings:
    """Get application settings"""
    return Settings()
