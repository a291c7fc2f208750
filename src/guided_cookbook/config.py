from __future__ import annotations
import logging
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GUIDED_COOKBOOK_", env_file=".env", extra="ignore")

    data_dir: Path = Path.home() / ".guided_cookbook"
    tick_interval_seconds: float = 1.0
    log_level: str = "WARNING"

    @field_validator("tick_interval_seconds", mode="after")
    @classmethod
    def require_positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("GUIDED_COOKBOOK_TICK_INTERVAL_SECONDS must be greater than 0")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def require_known_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level
