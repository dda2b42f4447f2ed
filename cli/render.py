from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from models.records import Device
from services.catalog import MetricCatalog
from services.processor import RoundResult


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]], indent: str = "") -> None:
    for key, value in pairs:
        typer.echo(f"{indent}{key}: {value}")


def render_round(
    outcome: RoundResult,
    devices: Sequence[Device],
    catalog: MetricCatalog,
) -> None:
    echo_heading("Devices")
    failed = set(outcome.failed_devices)
    values = {(sample.chart_id, sample.dimension_id): sample.value for sample in outcome.samples}
    for device in devices:
        status = "failed" if device.address in failed else "ok"
        typer.echo(f"{device.display_name} [{status}]")
        if device.address in failed:
            continue
        pairs = []
        for definition in catalog:
            key = (definition.chart_id, device.dimension_id(definition.chart_name))
            value = values.get(key, "n/a")
            pairs.append((f"{definition.chart_name} ({definition.unit_label})", value))
        echo_key_values(pairs, indent="  ")

    typer.echo()
    echo_heading("Issues")
    if outcome.issues:
        for issue in outcome.issues:
            subject = f"{issue.device} {issue.field}" if issue.field else issue.device
            typer.echo(f"  - {issue.kind.value}: {subject}: {issue.reason}")
    else:
        typer.echo("No issues recorded.")
