"""Application configuration."""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files.

    Priority: environment variables > .env > defaults
    """

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"), env_file_encoding="utf-8", extra="ignore"
    )

    # Canvas
    canvas_size: int = 512  # square canvas edge in pixels

    # Sandbox
    execution_timeout: float = 30.0  # wall-clock seconds per execution
    max_execution_steps: int = 2_000_000  # traced line events per execution
    max_code_chars: int = 50_000  # reject longer submissions outright
    max_error_chars: int = 1000  # truncate error messages returned to callers

    # Agent runs
    max_run_attempts: int = 10  # harness calls per run

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/code_canvas.db"
    database_echo: bool = False

    # Logging
    log_json: bool = False
    log_level: str = "INFO"


settings = Settings()
