"""Normalization of one round of poll results into sink-ready samples."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from models.records import Device, PollResult, Sample, SeriesDefinition
from models.schemas import IssueKind, RoundIssue
from services.catalog import MetricCatalog

logger = logging.getLogger(__name__)


@dataclass
class RoundResult:
    """Everything one round produced: samples for the sink plus the issues seen."""

    samples: List[Sample] = field(default_factory=list)
    issues: List[RoundIssue] = field(default_factory=list)
    device_count: int = 0

    @property
    def failed_devices(self) -> List[str]:
        return [issue.device for issue in self.issues if issue.kind == IssueKind.device_failed]

    def samples_for(self, chart_id: str) -> List[Sample]:
        return [sample for sample in self.samples if sample.chart_id == chart_id]


def _as_number(raw: Any) -> Optional[float | int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return raw if math.isfinite(raw) else None
    return None


def scale(raw: float | int, divisor: int) -> int:
    """Divide by the catalog divisor, truncating toward zero."""
    if isinstance(raw, int):
        quotient = abs(raw) // divisor
        return quotient if raw >= 0 else -quotient
    return math.trunc(raw / divisor)


class RoundProcessor:
    """Turns poll results into samples; never raises for device or field problems."""

    def __init__(self, catalog: MetricCatalog) -> None:
        self.catalog = catalog

    def normalize(self, results: Iterable[PollResult]) -> RoundResult:
        outcome = RoundResult()
        for result in results:
            outcome.device_count += 1
            device = result.device
            if not result.ok:
                reason = result.error.reason if result.error else "no reading returned"
                logger.warning(
                    "Unable to obtain emeter values from device",
                    extra={"device": device.address, "alias": device.alias, "reason": reason},
                )
                outcome.issues.append(
                    RoundIssue(
                        kind=IssueKind.device_failed,
                        device=device.address,
                        reason=reason,
                    )
                )
                continue

            assert result.reading is not None
            for definition in self.catalog:
                sample = self._sample(device, definition, result.reading.fields, outcome)
                if sample is not None:
                    outcome.samples.append(sample)
        return outcome

    def _sample(
        self,
        device: Device,
        definition: SeriesDefinition,
        fields: dict,
        outcome: RoundResult,
    ) -> Optional[Sample]:
        name = definition.source_field
        dimension_id = device.dimension_id(definition.chart_name)

        if name not in fields:
            logger.warning(
                "Field is not available in emeter readings, skipping sample",
                extra={
                    "device": device.address,
                    "alias": device.alias,
                    "field": name,
                    "reason": IssueKind.field_missing.value,
                },
            )
            outcome.issues.append(
                RoundIssue(
                    kind=IssueKind.field_missing,
                    device=device.address,
                    field=name,
                    reason="field missing from reading",
                )
            )
            return None

        raw = fields[name]
        number = _as_number(raw)
        if number is None:
            # A zero keeps the dimension populated; the issue marks it as a parse failure.
            logger.warning(
                "Unable to parse field value, emitting 0",
                extra={
                    "device": device.address,
                    "alias": device.alias,
                    "field": name,
                    "value": repr(raw),
                    "reason": IssueKind.field_unparseable.value,
                },
            )
            outcome.issues.append(
                RoundIssue(
                    kind=IssueKind.field_unparseable,
                    device=device.address,
                    field=name,
                    reason=f"non-numeric value {raw!r}",
                )
            )
            return Sample(chart_id=definition.chart_id, dimension_id=dimension_id, value=0)

        return Sample(
            chart_id=definition.chart_id,
            dimension_id=dimension_id,
            value=scale(number, self.catalog.divisor_for(name)),
        )
