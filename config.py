"""
Application Configuration

Settings are read from environment variables (or a local .env file) with
pydantic-settings. MONGODB_URI and DB_NAME are required; everything else has
a working default.
"""

import logging
import sys
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the RideBite API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    mongodb_uri: str = Field(..., description="MongoDB connection string")
    db_name: str = Field(..., description="MongoDB database name")
    mongo_server_selection_timeout_ms: int = Field(
        default=5000,
        description="How long to wait for a reachable server on connect",
    )

    # Server
    app_name: str = "RideBite API"
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = ["*"]

    # Observability
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Driver heartbeat and topology chatter
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    return logging.getLogger("ridebite")
