"""Configuration models and YAML loader for job and resume ingestion."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobingest.db"


class AIConfig(BaseModel):
    """AI extraction provider settings."""

    provider: str = "anthropic"
    model: str | None = None
    max_content_chars: int = Field(default=60_000, ge=1000)
    max_tokens: int = Field(default=4096, ge=256)

    @field_validator("provider")
    @classmethod
    def provider_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "ai.provider must not be empty"
            raise ValueError(msg)
        return v.strip().lower()


class BrowserConfig(BaseModel):
    """Browser fetcher configuration."""

    headless: bool = True
    timeout_ms: int = Field(default=30000, ge=1000)
    user_agent: str | None = None


class ResumeConfig(BaseModel):
    """Resume upload limits."""

    max_file_bytes: int = Field(default=10 * 1024 * 1024, ge=1)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    resume: ResumeConfig = Field(default_factory=ResumeConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
