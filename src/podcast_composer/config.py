"""Composer configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class ComposerConfig(BaseSettings):
    """All composer configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- API --
    api_base_url: str = "http://localhost:5055"
    api_password: str = ""
    request_timeout: float = 300.0

    # -- Aggregation --
    max_parallel_context_builds: int = 0  # 0 = unbounded
    context_indent: int = 2
    notebook_header_template: str = "{name}"

    # -- Lookup --
    lookup_threshold: int = 80

    # -- Behavior --
    verbose: bool = False
    log_level: str = "INFO"
    log_dir: Path = Path.home() / ".local" / "state" / "podcast-composer"

    def notebook_header(self, name: str) -> str:
        """Render the header line that precedes a notebook's context block."""
        return self.notebook_header_template.format(name=name)

    @property
    def console_level(self) -> str:
        """stderr sink level; ``verbose`` forces DEBUG over ``log_level``."""
        return "DEBUG" if self.verbose else self.log_level.upper()

    @property
    def log_file(self) -> Path:
        return self.log_dir / "composer.log"

    def setup_logging(self) -> None:
        """Route composer logs to stderr and a rotating file in ``log_dir``.

        Records logged without a bound ``stage`` get an empty one so the
        shared format never fails.
        """
        logger.remove()
        logger.configure(extra={"stage": ""})

        fmt = "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | {extra[stage]:<10} | {message}"
        logger.add(sys.stderr, format=fmt, level=self.console_level)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_file),
            format=fmt,
            level="DEBUG",
            rotation="5 MB",
            retention=5,
        )
        logger.bind(stage="config").debug(
            f"Logging to stderr at {self.console_level} and {self.log_file}"
        )
