"""Logging configuration."""

import logging
import sys

from pydantic import BaseModel, field_validator

NOISY_LOGGERS = ("anthropic", "httpx", "httpcore", "uvicorn.access")


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = NOISY_LOGGERS
    quiet_level: str = "WARNING"

    @field_validator("level", "quiet_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not isinstance(logging.getLevelName(normalized), int):
            raise ValueError(f"Unknown log level: {value}")
        return normalized


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger once for the whole process."""
    config = config or LogConfig()

    logging.basicConfig(
        level=config.level,
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(config.quiet_level)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Optional level override; otherwise the root configuration applies

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level.upper())
    return logger
