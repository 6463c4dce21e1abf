"""Command-line configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from NFPCHECK_* environment variables or a .env file."""

    data_path: Path | None = None
    """Directory whose YAML tables replace the packaged ones."""

    log_level: str = "INFO"
    default_package_area: float = 100.0

    model_config = SettingsConfigDict(
        env_prefix="NFPCHECK_",
        env_file=".env",
        extra="ignore",
    )
