"""Configuration management for the layer planner."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LAYERPLAN_",
        extra="ignore",
    )

    # Adaptive slicing
    cusp_value: float = Field(
        default=0.2,
        gt=0,
        description="Maximum distance from an extrusion corner to the chordal line (mm)",
    )

    # Slicing parameters
    min_layer_height_floor: float = Field(
        default=0.05,
        gt=0,
        description="Lower bound applied to every layer height (mm)",
    )

    # Profile editing
    adjust_z_step: float = Field(
        default=0.1,
        gt=0,
        description="Resampling resolution inside an edited band (mm)",
    )

    log_level: str = Field(default="INFO", description="Log level for the command line")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(settings: Optional[Settings]) -> None:
    """Override global settings. Passing None resets to environment defaults."""
    global _settings
    _settings = settings
