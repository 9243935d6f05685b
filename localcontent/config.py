"""
localcontent/config.py -- Settings, content directory resolution and logging.

The content directory is taken from, in order:

    1. an explicit path passed by the caller,
    2. the ``LOCALCONTENT_DIR`` environment variable,
    3. ``<platformdirs user data dir>/content``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from platformdirs import user_data_dir
from pydantic import BaseModel, Field

_APP_NAME = "localcontent"
_APP_AUTHOR = "localcontent"

ENV_CONTENT_DIR = "LOCALCONTENT_DIR"
ENV_LOG_LEVEL = "LOCALCONTENT_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    return user_data_dir(_APP_NAME, _APP_AUTHOR)


def resolve_content_dir(explicit=None) -> Path:
    """Return the content directory as an absolute path (not created)."""
    if explicit:
        return Path(explicit).expanduser().resolve()
    env_value = os.environ.get(ENV_CONTENT_DIR)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return Path(get_user_data_dir()) / "content"


class ContentSettings(BaseModel):
    """Runtime settings for a ``LocalContent`` instance."""

    content_dir: Path
    default_limit: int = Field(default=1000, ge=0)
    include_workers: int = Field(default=8, ge=1)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, content_dir=None, **overrides) -> "ContentSettings":
        values = {
            "content_dir": resolve_content_dir(content_dir),
            "log_level": os.environ.get(ENV_LOG_LEVEL, "INFO"),
        }
        values.update(overrides)
        return cls(**values)


def setup_logging(level: str | int = "INFO") -> None:
    """Configure root logging the same way for every embedding process."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")
