import logging
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    project_dir: Path = Path("./data")
    time_gap_seconds: int = 10
    focus_step_threshold: int = 150
    ordering: Literal["filename", "timestamp"] = "filename"
    exiftool_path: str = "exiftool"
    # Olympus / OM System maker note; not part of the standard EXIF set
    focus_tag: str = "MakerNotes:FocusStepCount"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FBG_",
        env_file_encoding="utf-8",
    )

    @field_validator("time_gap_seconds", "focus_step_threshold")
    @classmethod
    def threshold_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("grouping thresholds must not be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def photos_dir(self) -> Path:
        return self.project_dir / "photos"

    @property
    def cache_dir(self) -> Path:
        return self.project_dir / ".cache"

    @property
    def catalog_path(self) -> Path:
        return self.project_dir / "catalog.json"

    @property
    def report_path(self) -> Path:
        return self.cache_dir / "grouping_report.json"
