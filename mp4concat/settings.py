#!/usr/bin/env python3
"""
Unified configuration system using Pydantic v2
Provides type-safe, validated settings with environment variable support
"""
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SORT_MODES = ("normal", "reverse")
SORT_ALIASES = {"asc": "normal", "ascending": "normal", "desc": "reverse", "descending": "reverse"}
NAME_MODES = ("full", "first-last")


class ConcatSettings(BaseModel):
    """Defaults for a concat run (overridden by CLI flags)"""
    source_path: Path = Field(default=Path("."))
    filter: str = Field(default=r"\.mp4$")
    sort: str = Field(default="reverse")
    num_of_concat_files: int = Field(default=0, ge=0)
    output_path: Path = Field(default=Path("concat.mp4"))
    delete_after_concat: bool = Field(default=False)
    name_mode: str = Field(default="full")
    extension: str = Field(default=".mp4")

    @field_validator("sort")
    def validate_sort(cls, v):
        v = v.strip().lower()
        v = SORT_ALIASES.get(v, v)
        if v not in SORT_MODES:
            raise ValueError(f"sort must be one of {SORT_MODES}, got {v!r}")
        return v

    @field_validator("name_mode")
    def validate_name_mode(cls, v):
        v = v.lower()
        if v not in NAME_MODES:
            raise ValueError(f"name_mode must be one of {NAME_MODES}, got {v!r}")
        return v

    @field_validator("extension")
    def validate_extension(cls, v):
        """Ensure the extension starts with a dot"""
        return v if v.startswith(".") else f".{v}"


class FFmpegSettings(BaseModel):
    """External tool configuration"""
    binary: str = Field(default="ffmpeg")
    timeout_seconds: int = Field(default=1800, gt=0)
    loglevel: str = Field(default="error")
    monitor_interval_seconds: float = Field(default=1.0, gt=0)
    max_memory_mb: int = Field(default=2048, gt=0)
    grace_period_seconds: int = Field(default=10, ge=0)


class LoggingSettings(BaseModel):
    """Logging configuration"""
    level: str = Field(default="INFO")
    use_json_format: bool = Field(default=False)
    file_path: Optional[Path] = Field(default=None)
    max_file_size_mb: int = Field(default=10, gt=0)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("level")
    def validate_level(cls, v):
        return v.upper()


class Settings(BaseSettings):
    """Main settings class combining all configuration sections"""
    model_config = SettingsConfigDict(
        env_prefix="MP4CONCAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="mp4concat")
    app_version: str = Field(default="1.0.0")

    concat: ConcatSettings = Field(default_factory=ConcatSettings)
    ffmpeg: FFmpegSettings = Field(default_factory=FFmpegSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration as a JSON-friendly dictionary"""
        return self.model_dump(mode="json")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
