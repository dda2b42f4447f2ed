from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional

import typer

from cli.config import load_device_config
from cli.render import render_round
from logging_config import configure_logging
from services.catalog import build_default_catalog
from services.collector import build_collector
from services.poller import ConcurrentPoller
from services.processor import RoundProcessor
from services.registry import build_registry
from services.scheduler import IntervalScheduler
from settings import Settings, get_settings, parse_period
from sink.netdata import SinkError

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    settings: Settings
    config_path: Path


app = typer.Typer(
    help="Netdata collector for TP-Link HS110 smart plugs.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _load_hosts(state: CLIState) -> List[str]:
    try:
        config = load_device_config(state.config_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Unable to load device config: %s", exc)
        raise typer.Exit(code=1) from exc
    if not config.hosts:
        logger.error("At least one host has to be specified in the config")
        raise typer.Exit(code=1)
    return config.hosts


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Device list (defaults to $NETDATA_USER_CONFIG_DIR/hs110.conf).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)
    settings = get_settings()
    ctx.obj = CLIState(settings=settings, config_path=config or settings.config_path)


@app.command("run")
def run_command(
    ctx: typer.Context,
    period: Optional[str] = typer.Argument(
        None,
        help="Seconds between rounds (Netdata update_every); invalid values fall back to 1.",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        min=1,
        help="Cap on concurrent device polls (default: one per device).",
    ),
    rounds: Optional[int] = typer.Option(None, "--rounds", min=1, hidden=True),
) -> None:
    """Poll the configured devices forever, writing the Netdata plugin protocol to stdout."""
    state = _get_state(ctx)
    period_seconds = parse_period(period)
    hosts = _load_hosts(state)
    settings = state.settings if workers is None else replace(state.settings, poll_workers=workers)

    try:
        collector = build_collector(hosts, period_seconds, settings=settings)
    except ValueError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    try:
        try:
            collector.declare(update_every=period_seconds)
        except SinkError as exc:
            logger.error("Unable to declare charts: %s", exc)
            raise typer.Exit(code=1) from exc

        scheduler = IntervalScheduler(period_seconds, collector.run_round)
        try:
            scheduler.run(max_rounds=rounds)
        except SinkError as exc:
            logger.error("Plugin output is no longer writable, stopping: %s", exc)
            raise typer.Exit(code=1) from exc
    finally:
        collector.close()


@app.command("probe")
def probe_command(
    ctx: typer.Context,
    timeout: float = typer.Option(
        2.0,
        "--timeout",
        min=0.1,
        help="Per-device deadline in seconds.",
    ),
) -> None:
    """Poll every configured device once and print what each one reports."""
    state = _get_state(ctx)
    hosts = _load_hosts(state)
    try:
        devices = build_registry(hosts, state.settings.resolve_timeout or timeout)
    except ValueError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    catalog = build_default_catalog()
    poller = ConcurrentPoller(workers=state.settings.poll_workers)
    try:
        results = poller.poll_all(devices, timeout)
    finally:
        poller.shutdown()
    outcome = RoundProcessor(catalog).normalize(results)
    render_round(outcome, devices, catalog)


def plugin_main() -> None:
    """``hs110.plugin <update_every>`` as launched by Netdata."""
    app(args=["run", *sys.argv[1:]], prog_name="hs110.plugin")
