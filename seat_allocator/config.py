from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SEAT_ALLOCATOR_",
        env_file=PROJECT_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///./seat_allocator.db"

    # Runtime
    environment: str = "development"
    log_level: str | None = None

    # Allocation
    default_strategy: str = "alternate"
    insert_batch_size: int = Field(default=500, ge=1)
    export_dir: Path = PROJECT_DIR / "exports"

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, v: str) -> str:
        return (v or "development").strip().lower()

    @field_validator("default_strategy")
    @classmethod
    def _validate_default_strategy(cls, v: str) -> str:
        # imported here so config stays importable on its own
        from seat_allocator.mixing import MixStrategy

        return MixStrategy.parse(v).value


settings = Settings()
