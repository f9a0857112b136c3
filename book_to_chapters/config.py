"""Runtime settings, read from the environment or a .env file."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

ENV_PREFIX = "BOOK_CHAPTERS_"


@dataclass(frozen=True)
class Settings:
    batch_size: int = 10
    batch_delay: float = 0.1
    progress_interval: float = 0.1
    page_format: str = "a4"
    max_filename_length: int = 200
    log_level: str = "WARNING"


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default).strip() or default


def load_settings() -> Settings:
    """Load settings from BOOK_CHAPTERS_* environment variables (and .env)."""
    load_dotenv()
    defaults = Settings()
    try:
        batch_size = int(_env("BATCH_SIZE", str(defaults.batch_size)))
        batch_delay = float(_env("BATCH_DELAY", str(defaults.batch_delay)))
        progress_interval = float(_env("PROGRESS_INTERVAL", str(defaults.progress_interval)))
        max_filename_length = int(_env("MAX_FILENAME", str(defaults.max_filename_length)))
    except ValueError as e:
        raise ValueError(f"Invalid {ENV_PREFIX}* setting: {e}") from e

    if batch_size < 1:
        raise ValueError(f"{ENV_PREFIX}BATCH_SIZE must be at least 1, got {batch_size}")

    return Settings(
        batch_size=batch_size,
        batch_delay=max(0.0, batch_delay),
        progress_interval=max(0.0, progress_interval),
        page_format=_env("PAGE_FORMAT", defaults.page_format).lower(),
        max_filename_length=max_filename_length,
        log_level=_env("LOG_LEVEL", defaults.log_level).upper(),
    )
