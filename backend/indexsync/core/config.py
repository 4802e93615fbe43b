"""Runtime settings for index synchronization.

Values are read from the process environment once at import time and exposed
through the ``settings`` singleton.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator


class Settings(BaseModel):
    """Environment-backed settings.

    Run-specific options (collections, partial updates) are not settings; they are
    passed to the orchestrator as ``SyncOptions``.
    """

    LOG_LEVEL: str = Field("INFO", description="Root level for the indexsync logger")

    # Default credentials, used when the hook options omit them
    ALGOLIA_APP_ID: Optional[str] = Field(None, description="Algolia application id")
    ALGOLIA_API_KEY: Optional[str] = Field(None, description="Algolia admin API key")

    DEFAULT_CHUNK_SIZE: int = Field(1000, gt=0, description="Records per upsert operation")
    SHADOW_INDEX_SUFFIX: str = Field("_tmp", min_length=1)

    HTTP_TIMEOUT: float = Field(30.0, gt=0, description="Per request timeout in seconds")
    HTTP_MAX_RETRIES: int = Field(4, ge=1, description="Attempts for transient HTTP failures")

    TASK_POLL_INTERVAL: float = Field(0.5, gt=0, description="Seconds between task polls")
    TASK_WAIT_TIMEOUT: float = Field(300.0, gt=0, description="Max seconds to await a task")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Upper-case the level name so ``debug`` and ``DEBUG`` both work."""
        return value.upper()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables named after the fields."""
        environ = os.environ if environ is None else environ
        values = {name: environ[name] for name in cls.model_fields if environ.get(name)}
        return cls(**values)


settings = Settings.from_env()
