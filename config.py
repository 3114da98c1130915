"""
Engine configuration.

Environment-based settings using Pydantic Settings (prefix ``CARDIORENAL_``).
Settings only tune presentation and calibration choices; they never change the
published model coefficients.
"""
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine settings loaded from environment variables or a local .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CARDIORENAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_contributing_factors: int = Field(default=5, ge=1, le=20, description="Top-N cap for ranked factors")
    score2_default_region: Literal["low", "moderate", "high", "very_high"] = Field(
        default="moderate", description="SCORE2 risk region used when the caller does not pick one"
    )
    kfre_calibration: Literal["non_north_american", "north_american"] = Field(
        default="non_north_american", description="Baseline survival set for the Kidney Failure Risk Equation"
    )
    default_language: Literal["en-US", "pt-BR"] = "en-US"


@lru_cache()
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()
