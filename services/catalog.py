"""Static catalog mapping raw emeter fields onto Netdata charts."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, Iterable, Iterator, Mapping, Sequence, Tuple

from models.records import SeriesDefinition

CHART_TYPE_PREFIX = "Smartplugs"

# Field names ending in a milli-prefixed unit (``_mw``, ``_mv``, ``_ma``).
_MILLI_UNIT = re.compile(r"_m[a-z]+$")

ChartRow = Tuple[str, str, str, str, str, str, int, str]

# (chart id, chart name, title, units, family, chart type, priority, source field)
_CHARTS: Tuple[ChartRow, ...] = (
    ("power", "Power", "Power", "watts", "power", "area", 90000, "power_mw"),
    ("voltage", "Voltage", "Voltage", "volts", "voltage", "line", 90010, "voltage_mv"),
    ("current", "Current", "Current", "amps", "current", "line", 90020, "current_ma"),
    (
        "total-consumption",
        "Total",
        "Total consumption",
        "watt-hours",
        "consumption",
        "line",
        90030,
        "total_wh",
    ),
)


def divisor_from_unit(field_name: str) -> int:
    return 1000 if _MILLI_UNIT.search(field_name) else 1


class MetricCatalog:
    """Ordered, read-only set of series definitions.

    Iteration order is the registration order of charts and dimensions.
    Divisors are computed once, when the catalog is built.
    """

    def __init__(self, definitions: Iterable[SeriesDefinition]) -> None:
        self._definitions: Tuple[SeriesDefinition, ...] = tuple(definitions)
        divisors: Dict[str, int] = {}
        for definition in self._definitions:
            divisors[definition.source_field] = definition.scale_divisor
        self._divisors: Mapping[str, int] = divisors

    def __iter__(self) -> Iterator[SeriesDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def definitions(self) -> Sequence[SeriesDefinition]:
        return self._definitions

    def divisor_for(self, field_name: str) -> int:
        try:
            return self._divisors[field_name]
        except KeyError:
            raise KeyError(f"Field {field_name!r} is not part of the metric catalog.") from None

    @classmethod
    def from_rows(cls, rows: Iterable[ChartRow]) -> "MetricCatalog":
        definitions = []
        for chart_id, name, title, units, family, chart_type, priority, source_field in rows:
            definitions.append(
                SeriesDefinition(
                    chart_id=f"{CHART_TYPE_PREFIX}.{chart_id}",
                    chart_name=name,
                    chart_title=title,
                    unit_label=units,
                    family=family,
                    context=f"smartplugpower.{name.lower()}",
                    series_type=chart_type,
                    priority=priority,
                    source_field=source_field,
                    scale_divisor=divisor_from_unit(source_field),
                )
            )
        return cls(definitions)


@lru_cache
def build_default_catalog() -> MetricCatalog:
    return MetricCatalog.from_rows(_CHARTS)
