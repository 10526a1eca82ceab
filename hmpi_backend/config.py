# Environment-driven settings and logging setup
import os
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from .errors import ConfigurationError


class InputPolicy(str, Enum):
    """What to do with a negative, NaN or non-numeric concentration"""
    REJECT = 'reject'
    CLAMP = 'clamp'


@dataclass(frozen=True)
class Settings:
    log_level: str = 'INFO'
    input_policy: InputPolicy = InputPolicy.REJECT
    leaderboard_limit: int = 10
    trend_days: int = 30


def parse_policy(value) -> InputPolicy:
    if isinstance(value, InputPolicy):
        return value
    try:
        return InputPolicy(str(value).strip().lower())
    except ValueError:
        choices = ', '.join(p.value for p in InputPolicy)
        raise ConfigurationError(f"Unknown input policy {value!r} (expected one of: {choices})") from None


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once; call get_settings.cache_clear() to reload"""
    return Settings(
        log_level=(os.environ.get('HMPI_LOG_LEVEL') or 'INFO').upper(),
        input_policy=parse_policy(os.environ.get('HMPI_INPUT_POLICY') or InputPolicy.REJECT.value),
        leaderboard_limit=_int_env('HMPI_LEADERBOARD_LIMIT', 10),
        trend_days=_int_env('HMPI_TREND_DAYS', 30),
    )


def configure_logging(level: str = None) -> None:
    level_name = (level or get_settings().log_level).upper()
    numeric = logging.getLevelName(level_name)
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level {level_name!r}")
    logging.basicConfig(level=numeric)
