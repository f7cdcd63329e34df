"""Environment flag helpers."""

from __future__ import annotations

from typing import Optional

__all__ = ["DEBUG_ENV_FLAG", "env_flag_enabled"]

DEBUG_ENV_FLAG = "DELTAFRAME_DEBUG"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def env_flag_enabled(value: Optional[str]) -> bool:
    """Return True when an environment value spells an enabled flag."""

    if value is None:
        return False
    return value.strip().lower() in _TRUTHY
