# settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

BUILDER_ENV = "JOBRUNNER_BUILDER"
PLUGINS_ENV = "JOBRUNNER_PLUGINS"
LOG_LEVEL_ENV = "JOBRUNNER_LOG_LEVEL"

DEFAULT_BUILDER = "local"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup and passed to each runner."""
    builder: str = DEFAULT_BUILDER
    plugins: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ
        plugins = tuple(
            p.strip() for p in env.get(PLUGINS_ENV, "").split(",") if p.strip()
        )
        return cls(
            builder=env.get(BUILDER_ENV, DEFAULT_BUILDER),
            plugins=plugins,
            log_level=env.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper(),
        )
