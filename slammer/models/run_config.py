"""
Run Configuration Model

Immutable description of one load run, built once at startup and passed
explicitly to the dispatcher and workers.
"""

from datetime import timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from slammer.config import parse_duration
from slammer.exceptions import ConfigError


# Messages keyed by field name; mirror the CLI option that sets the field.
_FIELD_MESSAGES = {
    "connection_string": "You must provide a connection string using the -c option",
    "pause": "You must provide a proper duration value with -p",
    "workers": "You must provide a worker count > 0 with -w",
    "max_read_errors": "You must provide a read error limit > 0 with --max-read-errors",
    "output_format": "Report format must be 'text' or 'json' (--format)",
}


class RunConfig(BaseModel):
    """Configuration for a single run."""

    model_config = ConfigDict(frozen=True)

    connection_string: str = Field(..., min_length=1, description="Driver DSN")
    driver: str = Field("mysql", description="Database driver identifier")
    pause: timedelta = Field(
        timedelta(seconds=1), description="Pause after each successful statement"
    )
    workers: int = Field(1, gt=0, description="Number of concurrent workers")
    debug: bool = Field(False, description="Log statement and read errors")
    max_read_errors: int = Field(
        5, ge=1, description="Consecutive input read failures tolerated"
    )
    output_format: Literal["text", "json"] = Field("text", description="Report format")

    @field_validator("connection_string", mode="before")
    @classmethod
    def _strip_connection_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("driver", mode="before")
    @classmethod
    def _normalize_driver(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("pause", mode="before")
    @classmethod
    def _parse_pause(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_duration(v)
        if isinstance(v, timedelta) and v < timedelta(0):
            raise ValueError("pause must not be negative")
        return v

    @property
    def pause_seconds(self) -> float:
        return self.pause.total_seconds()


def build_run_config(**values: Any) -> RunConfig:
    """
    Validate raw option values into a RunConfig.

    Raises:
        ConfigError: with one message per invalid option, in field order.
    """
    try:
        return RunConfig(**values)
    except ValidationError as exc:
        messages: list[str] = []
        for err in exc.errors():
            loc = err.get("loc") or ("",)
            field = str(loc[0])
            message = _FIELD_MESSAGES.get(field, f"{field}: {err.get('msg')}")
            if message not in messages:
                messages.append(message)
        raise ConfigError("; ".join(messages)) from exc
