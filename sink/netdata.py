"""Netdata external-plugin protocol writer."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO, Tuple


class SinkError(Exception):
    """The sink rejected a write or could not deliver it."""


@dataclass
class _ChartState:
    dimensions: set[str] = field(default_factory=set)
    pending: List[Tuple[str, int]] = field(default_factory=list)


def _quote(value: str) -> str:
    return '"' + value.replace('"', "'") + '"'


class NetdataSink:
    """Declare-then-feed-then-commit writer for the plugin text protocol.

    Not thread-safe: all writes happen from the round-processing thread.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._charts: Dict[str, _ChartState] = {}

    def declare_chart(
        self,
        chart_id: str,
        name: str,
        title: str,
        units: str,
        family: str,
        context: str,
        chart_type: str,
        priority: int,
        update_every: int,
    ) -> None:
        line = " ".join(
            [
                "CHART",
                chart_id,
                _quote(name),
                _quote(title),
                _quote(units),
                _quote(family),
                _quote(context),
                chart_type,
                str(priority),
                str(update_every),
            ]
        )
        self._write([line])
        self._charts.setdefault(chart_id, _ChartState())

    def declare_dimension(
        self,
        chart_id: str,
        dimension_id: str,
        display_name: str,
        algorithm: str = "absolute",
        multiplier: int = 1,
        divisor: int = 1,
    ) -> None:
        state = self._chart(chart_id)
        line = " ".join(
            [
                "DIMENSION",
                dimension_id,
                _quote(display_name),
                algorithm,
                str(multiplier),
                str(divisor),
            ]
        )
        self._write([line])
        state.dimensions.add(dimension_id)

    def feed(self, chart_id: str, dimension_id: str, value: int) -> None:
        state = self._chart(chart_id)
        if dimension_id not in state.dimensions:
            raise SinkError(f"dimension {dimension_id!r} was not declared on {chart_id!r}")
        state.pending.append((dimension_id, int(value)))

    def commit(self, chart_id: str) -> None:
        """Flush the chart's buffered values as one sample."""
        state = self._chart(chart_id)
        lines = [f"BEGIN {chart_id}"]
        lines.extend(f"SET {dimension_id} = {value}" for dimension_id, value in state.pending)
        lines.append("END")
        state.pending.clear()
        self._write(lines)

    def _chart(self, chart_id: str) -> _ChartState:
        state = self._charts.get(chart_id)
        if state is None:
            raise SinkError(f"chart {chart_id!r} was not declared")
        return state

    def _write(self, lines: List[str]) -> None:
        try:
            self._stream.write("\n".join(lines) + "\n")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            raise SinkError(f"unable to write to plugin output: {exc}") from exc
