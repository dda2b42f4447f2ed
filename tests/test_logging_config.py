from __future__ import annotations

import logging
from typing import Any, Dict, List

import logging_config
from logging_config import ContextualFormatter, configure_logging
from settings import get_settings


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.processor",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Field is not available in emeter readings, skipping sample",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_in_order() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s | %(name)s | %(message)s")

    line = formatter.format(
        _record(field="total_wh", device="10.0.0.1", unrelated="ignored", reason="field_missing")
    )

    assert line == (
        "WARNING | services.processor | Field is not available in emeter readings, skipping sample"
        " | device=10.0.0.1 field=total_wh reason=field_missing"
    )


def test_formatter_skips_empty_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record(device=None)) == (
        "Field is not available in emeter readings, skipping sample"
    )


def test_configure_logging_runs_before_settings_are_loaded(monkeypatch, tmp_path) -> None:
    applied: List[Dict[str, Any]] = []
    monkeypatch.setattr(logging_config, "dictConfig", applied.append)
    monkeypatch.setattr(logging_config, "_configured", False)
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("NETDATA_USER_CONFIG_DIR", str(tmp_path / "absent"))
    get_settings.cache_clear()

    try:
        configure_logging()
        assert get_settings.cache_info().currsize == 0
    finally:
        get_settings.cache_clear()

    assert applied[0]["root"]["level"] == "DEBUG"
    assert applied[0]["handlers"]["default"]["stream"] == "ext://sys.stderr"
    assert "chart" not in applied[0]["formatters"]["contextual"]["extra_keys"]
