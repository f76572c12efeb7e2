from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from uvicorn.config import LOG_LEVELS
import logging

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ServerConfig(BaseModel):
    """Startup configuration handed to logging setup and the serving loop"""
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=0, le=65535)
    log_level: str = "DEBUG"
    log_format: str = DEFAULT_LOG_FORMAT
    graceful_timeout: Optional[float] = Field(default=None, ge=0)

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        # Must be a level both uvicorn and the root logger understand
        if value.lower() not in LOG_LEVELS:
            raise ValueError(
                f"unknown log level: {value} (expected one of {', '.join(LOG_LEVELS)})"
            )
        return value.upper()


def configure_logging(config: ServerConfig) -> None:
    """Install the process-wide log handler from an explicit config"""
    logging.basicConfig(
        level=config.log_level,
        format=config.log_format,
        force=True,
    )
