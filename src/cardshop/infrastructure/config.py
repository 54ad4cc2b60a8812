"""Runtime settings read from the environment.

Variables:
    CARDSHOP_DATA_DIR               JSON store directory (default ./data)
    CARDSHOP_DATABASE_URL           SQLAlchemy URL; selects the SQL store
    CARDSHOP_STALE_WINDOW_SECONDS   reservation staleness window (default 60)
    CARDSHOP_REQUIRE_RESERVATIONS   refuse to start without reservation
                                    tracking (default false)
    CARDSHOP_LOG_LEVEL              logging level name (default WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping

from cardshop.domain.exceptions import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    database_url: str | None = None
    stale_window: timedelta = timedelta(seconds=60)
    require_reservations: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            data_dir=Path(env.get("CARDSHOP_DATA_DIR", "data")),
            database_url=env.get("CARDSHOP_DATABASE_URL") or None,
            stale_window=timedelta(
                seconds=_parse_seconds(env.get("CARDSHOP_STALE_WINDOW_SECONDS", "60"))
            ),
            require_reservations=_parse_bool(
                "CARDSHOP_REQUIRE_RESERVATIONS",
                env.get("CARDSHOP_REQUIRE_RESERVATIONS", ""),
            ),
            log_level=_parse_level(env.get("CARDSHOP_LOG_LEVEL", "WARNING")),
        )


def _parse_seconds(raw: str) -> int:
    try:
        seconds = int(raw)
    except ValueError:
        raise ConfigurationError(
            f"CARDSHOP_STALE_WINDOW_SECONDS must be an integer, got {raw!r}"
        )
    if seconds < 0:
        raise ConfigurationError("CARDSHOP_STALE_WINDOW_SECONDS cannot be negative")
    return seconds


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_level(raw: str) -> str:
    level = raw.strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown log level {raw!r}")
    return level
