"""
Application Configuration using Pydantic Settings

Loads configuration defaults from environment variables. Command-line flags
override these per run (see `slammer.main`).
"""

import re
from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ========================================================================
    # Run Defaults (overridden by CLI flags)
    # ========================================================================
    SLAMMER_PAUSE: str = "1s"
    SLAMMER_DRIVER: str = "mysql"
    SLAMMER_WORKERS: int = 1
    SLAMMER_DEBUG: bool = False
    SLAMMER_CONNECTION_STRING: str = ""

    # Consecutive non-EOF read failures tolerated before the input stream is
    # treated as exhausted.
    SLAMMER_MAX_READ_ERRORS: int = 5

    # ========================================================================
    # Driver Timeouts (seconds)
    # ========================================================================
    POSTGRES_COMMAND_TIMEOUT: float = 60.0
    MYSQL_CONNECT_TIMEOUT: int = 10
    SNOWFLAKE_CONNECT_LOGIN_TIMEOUT: int = 15
    SNOWFLAKE_CONNECT_NETWORK_TIMEOUT: int = 300

    # ========================================================================
    # Logging Settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(levelprefix)s %(asctime)s - [worker=%(worker_id)s] %(message)s"


_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> timedelta:
    """
    Parse a Go-style duration string ("250ms", "1.5s", "1m30s", "0").

    Raises:
        ValueError: if the string is empty, malformed or negative.
    """
    value = str(text).strip()
    if value in ("0", "+0"):
        return timedelta(0)
    if value.startswith("-"):
        raise ValueError(f"duration must not be negative: {text!r}")
    if value.startswith("+"):
        value = value[1:]
    if not value:
        raise ValueError("duration is empty")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        pos = match.end()
    if pos != len(value):
        raise ValueError(f"invalid duration: {text!r}")
    return timedelta(seconds=total)


# Create global settings instance
settings = Settings()
