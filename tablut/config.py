"""Server settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .engine import DEFAULT_DEPTH


@dataclass
class Settings:
    """Settings for the game server.

    Environment variables:
        TABLUT_SEARCH_DEPTH: default engine depth for new games
        TABLUT_MOVE_LIMIT: default per-side move limit (unset = no limit)
        TABLUT_AI_WORKERS: threads available for engine searches
        TABLUT_LOG_LEVEL: logging level name
    """

    search_depth: int = DEFAULT_DEPTH
    move_limit: Optional[int] = None
    ai_workers: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ENVIRON (defaults to os.environ).

        Raises:
            ValueError: if a variable is present but not a valid value
        """
        env = os.environ if environ is None else environ
        settings = cls(
            search_depth=_read_int(env, "TABLUT_SEARCH_DEPTH", DEFAULT_DEPTH),
            move_limit=_read_int(env, "TABLUT_MOVE_LIMIT", None),
            ai_workers=_read_int(env, "TABLUT_AI_WORKERS", 4),
            log_level=env.get("TABLUT_LOG_LEVEL", "INFO").upper(),
        )
        if settings.search_depth < 1:
            raise ValueError("TABLUT_SEARCH_DEPTH must be at least 1")
        if settings.move_limit is not None and settings.move_limit < 1:
            raise ValueError("TABLUT_MOVE_LIMIT must be at least 1")
        if settings.ai_workers < 1:
            raise ValueError("TABLUT_AI_WORKERS must be at least 1")
        return settings


def _read_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
