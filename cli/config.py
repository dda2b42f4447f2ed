from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from models.schemas import CollectorConfig

logger = logging.getLogger(__name__)


def load_device_config(path: Path) -> CollectorConfig:
    """Read the YAML device list (``hosts: [...]``)."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Reading config file `%s`", path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file {path} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping with a `hosts` list.")

    try:
        return CollectorConfig.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValueError(f"Config file {path} is invalid: {problems}") from exc
