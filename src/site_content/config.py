"""
Service Configuration

Settings are read once at startup from the environment (or a local `.env`
file) and never re-read. A missing or invalid value is fatal: the process must
not start serving without a content source.
"""

from __future__ import annotations

import re
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .content.sync import SyncConfig


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class ConfigurationError(RuntimeError):
    """Raised when the service settings are missing or malformed."""


# ---------------------------------------------------------------------
# Duration Parsing
# ---------------------------------------------------------------------

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a Go-style duration string such as "5m", "30s" or "1h30m".

    A bare number is read as seconds.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    seconds = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")

    return timedelta(seconds=seconds)


# ---------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------

class Settings(BaseSettings):
    content_repo_url: str
    content_repo_branch: str = "main"
    content_dir: Path = Path("/data/content")

    sync_interval: timedelta = timedelta(minutes=5)
    git_auth_token: Optional[SecretStr] = None
    git_timeout: timedelta = timedelta(seconds=120)

    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @field_validator("content_repo_url", "content_repo_branch")
    @classmethod
    def _require_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("sync_interval", "git_timeout", mode="before")
    @classmethod
    def _parse_duration(cls, v):
        if isinstance(v, str) and not v.strip().upper().startswith("P"):
            return parse_duration(v)
        return v

    @field_validator("sync_interval", "git_timeout")
    @classmethod
    def _require_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("must be a positive duration")
        return v

    @field_validator("git_auth_token")
    @classmethod
    def _blank_token_is_none(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        if v is not None and not v.get_secret_value().strip():
            return None
        return v

    def sync_config(self) -> SyncConfig:
        """Build the mirror settings consumed by the content pipeline."""
        token = self.git_auth_token.get_secret_value() if self.git_auth_token else None
        return SyncConfig(
            repo_url=self.content_repo_url,
            branch=self.content_repo_branch,
            directory=self.content_dir,
            interval=self.sync_interval,
            auth_token=token,
            timeout=self.git_timeout.total_seconds(),
        )


@lru_cache
def get_settings() -> Settings:
    """
    Load and validate settings once per process.

    Raises
    ------
    ConfigurationError
        If a required setting is missing or any value is invalid.
    """
    try:
        return Settings()
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from exc
