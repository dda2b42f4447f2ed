from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


_CONFIG_DIR_ENV = "NETDATA_USER_CONFIG_DIR"
_CONFIG_FILE_ENV = "HS110_CONFIG_FILE"
_WORKER_COUNT_ENV = "HS110_POLL_WORKERS"
_RESOLVE_TIMEOUT_ENV = "HS110_RESOLVE_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_CONFIG_DIR = "/usr/local/etc/netdata"
DEFAULT_CONFIG_FILE = "hs110.conf"
DEFAULT_PERIOD = 1

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    config_dir: Path
    config_file: str
    poll_workers: Optional[int]
    resolve_timeout: Optional[float]
    log_level: str

    @property
    def config_path(self) -> Path:
        candidate = Path(self.config_file)
        if candidate.is_absolute():
            return candidate
        return self.config_dir / candidate


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_config_dir() -> Path:
    value = os.getenv(_CONFIG_DIR_ENV)
    if value is None or not value.strip():
        logger.warning(
            "`%s` environment variable is not defined, using `%s`",
            _CONFIG_DIR_ENV,
            DEFAULT_CONFIG_DIR,
        )
        return Path(DEFAULT_CONFIG_DIR)
    return Path(value.strip())


def _read_worker_count() -> Optional[int]:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        parsed = int(candidate)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _read_resolve_timeout() -> Optional[float]:
    value = os.getenv(_RESOLVE_TIMEOUT_ENV)
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        parsed = float(candidate)
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def read_log_level(default: str = "INFO") -> str:
    """``LOG_LEVEL`` from the environment, readable before ``get_settings`` runs."""
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def parse_period(raw: Optional[str]) -> int:
    """Interpret the polling period (Netdata ``update_every``) in seconds.

    A missing, unparseable or non-positive value never aborts startup: it is
    replaced with ``DEFAULT_PERIOD`` and a warning is logged.
    """
    if raw is None or not raw.strip():
        logger.warning(
            "Period has not been specified, using %s sec period", DEFAULT_PERIOD
        )
        return DEFAULT_PERIOD
    try:
        parsed = int(raw.strip())
    except ValueError:
        logger.warning(
            "Unable to parse specified period %r, using %s sec period",
            raw,
            DEFAULT_PERIOD,
        )
        return DEFAULT_PERIOD
    if parsed <= 0:
        logger.warning(
            "Period must be positive (got %s), using %s sec period",
            parsed,
            DEFAULT_PERIOD,
        )
        return DEFAULT_PERIOD
    return parsed


def poll_deadline(period: float) -> float:
    """Per-device deadline: half the period, so a round of timeouts still fits."""
    return period / 2


@lru_cache
def get_settings() -> Settings:
    return Settings(
        config_dir=_read_config_dir(),
        config_file=_read_str_env(_CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE),
        poll_workers=_read_worker_count(),
        resolve_timeout=_read_resolve_timeout(),
        log_level=read_log_level(),
    )
