"""Configuration for the scheduling engine."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from practice_scheduling.exceptions import ConfigurationError
from practice_scheduling.models.entities import BufferPolicy

# Load environment variables from .env file
load_dotenv()

DEFAULT_GRANULARITY_MINUTES = 15
DEFAULT_BUFFER_POLICY = BufferPolicy.BOTH
DEFAULT_TIMEZONE = "UTC"
# "Never ending" series are expanded one year ahead at weekly frequency
DEFAULT_RECURRENCE_MAX_COUNT = 52
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class SchedulingSettings:
    """Tunable engine parameters."""
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES
    buffer_policy: BufferPolicy = DEFAULT_BUFFER_POLICY
    default_timezone: str = DEFAULT_TIMEZONE
    recurrence_max_count: int = DEFAULT_RECURRENCE_MAX_COUNT
    log_level: str = DEFAULT_LOG_LEVEL


def _get_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {value}")
    return value


def _get_buffer_policy(name: str, default: BufferPolicy) -> BufferPolicy:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return BufferPolicy(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in BufferPolicy)
        raise ConfigurationError(f"{name} must be one of {allowed}, got {raw!r}")


def get_settings() -> SchedulingSettings:
    """
    Build settings from the environment.

    Reads:
        SCHEDULING_GRANULARITY_MINUTES: step between candidate slot starts
        SCHEDULING_BUFFER_POLICY: before / after / both / none
        SCHEDULING_DEFAULT_TIMEZONE: zone for workers without one
        SCHEDULING_RECURRENCE_MAX_COUNT: safety bound for open-ended series
        SCHEDULING_LOG_LEVEL: level passed to configure_logging

    Raises:
        ConfigurationError: if a value cannot be parsed
    """
    return SchedulingSettings(
        granularity_minutes=_get_positive_int(
            "SCHEDULING_GRANULARITY_MINUTES", DEFAULT_GRANULARITY_MINUTES
        ),
        buffer_policy=_get_buffer_policy("SCHEDULING_BUFFER_POLICY", DEFAULT_BUFFER_POLICY),
        default_timezone=os.getenv("SCHEDULING_DEFAULT_TIMEZONE") or DEFAULT_TIMEZONE,
        recurrence_max_count=_get_positive_int(
            "SCHEDULING_RECURRENCE_MAX_COUNT", DEFAULT_RECURRENCE_MAX_COUNT
        ),
        log_level=(os.getenv("SCHEDULING_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for applications embedding the engine."""
    if level is None:
        level = get_settings().log_level
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
