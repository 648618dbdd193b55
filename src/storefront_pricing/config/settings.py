"""
Centralized settings for the storefront pricing tool.

Values are read from PRICING_* environment variables (or a .env file) with
sensible defaults, e.g. PRICING_DEFAULT_ENDING, PRICING_DEFAULT_BLOCK_SIZE,
PRICING_WRITE_BATCH_SIZE, PRICING_EXPORT_DIR.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path = Field(default_factory=get_project_root)
    export_dir: Optional[Path] = None  # derived from project_root if not provided

    # Pricing defaults applied when a request leaves them out
    default_ending: Literal["0.95", "0.99", "no-cents"] = "0.95"
    default_block_size: PositiveInt = 5

    # Write pacing for the caller that issues remote updates
    write_batch_size: PositiveInt = 40
    write_pause_ms: PositiveInt = 350

    # Preview API
    api_host: str = "0.0.0.0"
    api_port: PositiveInt = 8000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PRICING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_ending", "log_level", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    def init_post_load(self) -> None:
        """Finalize derived fields."""
        if self.export_dir is None:
            self.export_dir = self.project_root / 'exports'


@lru_cache
def get_settings() -> Settings:
    """Get the global settings instance."""
    settings = Settings()
    settings.init_post_load()
    return settings
