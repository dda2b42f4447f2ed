"""Domain models shared across services."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

UNKNOWN_ALIAS = "<unknown>"

_SEPARATOR_RUN = re.compile(r"[^0-9A-Za-z]+")


class DeviceClient(Protocol):
    """Wire-level access to one metering device."""

    def query(self, timeout: float) -> Mapping[str, Any]: ...

    def resolve_alias(self, timeout: float) -> str: ...


def dimension_prefix_for(address: str) -> str:
    """Derive a series-safe prefix, e.g. ``192.168.1.10`` -> ``192_168_1_10``."""
    return _SEPARATOR_RUN.sub("_", address).strip("_")


@dataclass(frozen=True)
class Device:
    """A polled unit; the alias is resolved once, at construction."""

    address: str
    alias: str
    dimension_prefix: str
    client: DeviceClient

    @property
    def display_name(self) -> str:
        return f"{self.alias} ({self.address})"

    def dimension_id(self, chart_name: str) -> str:
        return f"{self.dimension_prefix}_{chart_name}"


@dataclass(frozen=True, slots=True)
class SeriesDefinition:
    """Static mapping of one raw device field onto one chart."""

    chart_id: str
    chart_name: str
    chart_title: str
    unit_label: str
    family: str
    context: str
    series_type: str
    priority: int
    source_field: str
    scale_divisor: int


@dataclass(frozen=True, slots=True)
class Reading:
    """Raw field -> value mapping returned by one device for one round."""

    fields: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class PollError:
    kind: str
    reason: str


@dataclass(frozen=True, slots=True)
class PollResult:
    """Outcome of polling one device: exactly one of reading/error is set."""

    device: Device
    reading: Optional[Reading] = None
    error: Optional[PollError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.reading is not None


@dataclass(frozen=True, slots=True)
class Sample:
    """One normalized value ready for the sink."""

    chart_id: str
    dimension_id: str
    value: int
