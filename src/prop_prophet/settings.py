"""Application settings for prop-prophet."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prop_prophet.runtime_config import current_runtime_config
from prop_prophet.time_utils import DEFAULT_TIMEZONE


class Settings(BaseSettings):
    """Runtime settings for the ledger and feed adapters."""

    model_config = SettingsConfigDict(
        env_prefix="PROP_PROPHET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    data_dir: str = "data"
    timezone: str = DEFAULT_TIMEZONE
    commit_pre_tip_minutes: int = Field(default=40, ge=0)
    commit_post_tip_minutes: int = Field(default=5, ge=0)
    feeds_timeout_s: float = Field(default=12.0, gt=0)
    feeds_retries: int = Field(default=3, ge=1)
    ease_url: str = ""

    @property
    def feed_cache_dir(self) -> Path:
        return Path(self.data_dir) / "feeds"

    @classmethod
    def from_runtime(cls, *, data_dir: Path | None = None) -> "Settings":
        """Construct settings from runtime config; `PROP_PROPHET_*` env vars still win."""
        runtime = current_runtime_config().with_data_dir(data_dir)
        values = {
            "data_dir": str(runtime.data_dir),
            "timezone": runtime.timezone,
            "commit_pre_tip_minutes": runtime.commit_pre_tip_minutes,
            "commit_post_tip_minutes": runtime.commit_post_tip_minutes,
            "feeds_timeout_s": runtime.feeds_timeout_s,
            "feeds_retries": runtime.feeds_retries,
            "ease_url": runtime.ease_url,
        }
        overrides = {
            key: value
            for key, value in values.items()
            if not os.environ.get(f"PROP_PROPHET_{key.upper()}", "").strip()
            or (key == "data_dir" and data_dir is not None)
        }
        return cls(**overrides)
