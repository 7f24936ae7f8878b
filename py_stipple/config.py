"""Configuration management."""

import os
from pathlib import Path
from typing import Literal

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env for local runs, without overriding values already in the environment
BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from STIPPLE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STIPPLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(default="json", description="Log renderer")

    # Relaxation defaults
    default_stipples: int = Field(default=2000, gt=0, description="Number of stipple sites")
    default_iterations: int = Field(default=20, gt=0, description="Lloyd iterations to run")
    default_supersampling: int = Field(default=1, ge=1, description="Ownership grid upscale factor")
    default_blend: float = Field(default=1.0, gt=0.0, le=1.0, description="Centroid blend factor alpha")
    weight_floor: float = Field(default=0.0, ge=0.0, lt=1.0, description="Lowest weight a pixel can carry")

    # Backends
    rasterizer: Literal["cone", "brute_force", "kdtree"] = Field(
        default="kdtree", description="Ownership rasterizer backend"
    )
    transport: Literal["none", "multi_channel", "nibble"] = Field(
        default="multi_channel", description="Centroid transport packing"
    )
    reduction: Literal["scatter", "scan"] = Field(default="scatter", description="Row reduction strategy")
    workers: int = Field(default=1, ge=1, description="Worker threads for row-band rasterization")

    # Presentation
    default_scale: float = Field(default=4.0, gt=0.0, description="Output canvas scale")
    visibility_threshold: float = Field(default=10.0, ge=0.0, description="Minimum 0-255 weight to draw")
    base_radius: float = Field(default=1.0, gt=0.0, description="Disk radius in site units")


settings = Settings()
