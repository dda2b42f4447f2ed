"""Wiring of one collection round: poll, normalize, feed, commit."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from models.records import Device
from services.catalog import MetricCatalog, build_default_catalog
from services.poller import ConcurrentPoller
from services.processor import RoundProcessor, RoundResult
from services.registry import ClientFactory, build_registry
from settings import Settings, get_settings, poll_deadline
from sink.netdata import NetdataSink

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
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
    ) -> None: ...

    def declare_dimension(
        self,
        chart_id: str,
        dimension_id: str,
        display_name: str,
        algorithm: str = ...,
        multiplier: int = ...,
        divisor: int = ...,
    ) -> None: ...

    def feed(self, chart_id: str, dimension_id: str, value: int) -> None: ...

    def commit(self, chart_id: str) -> None: ...


class Collector:
    """Owns the per-round pipeline; the device set and catalog are read-only."""

    def __init__(
        self,
        devices: Sequence[Device],
        catalog: MetricCatalog,
        poller: ConcurrentPoller,
        processor: RoundProcessor,
        sink: MetricsSink,
        deadline: float,
    ) -> None:
        self.devices = tuple(devices)
        self.catalog = catalog
        self.poller = poller
        self.processor = processor
        self.sink = sink
        self.deadline = deadline
        self.rounds = 0

    def declare(self, update_every: int) -> None:
        """Register every chart and per-device dimension, in catalog order.

        Values are already divided by the processor, so dimensions use a
        divisor of 1.
        """
        for definition in self.catalog:
            self.sink.declare_chart(
                chart_id=definition.chart_id,
                name=definition.chart_name,
                title=definition.chart_title,
                units=definition.unit_label,
                family=definition.family,
                context=definition.context,
                chart_type=definition.series_type,
                priority=definition.priority,
                update_every=update_every,
            )
            for device in self.devices:
                self.sink.declare_dimension(
                    chart_id=definition.chart_id,
                    dimension_id=device.dimension_id(definition.chart_name),
                    display_name=device.display_name,
                    algorithm="absolute",
                    multiplier=1,
                    divisor=1,
                )

    def collect(self) -> RoundResult:
        """Poll and normalize without touching the sink."""
        results = self.poller.poll_all(self.devices, self.deadline)
        return self.processor.normalize(results)

    def run_round(self) -> RoundResult:
        outcome = self.collect()
        for definition in self.catalog:
            for sample in outcome.samples_for(definition.chart_id):
                self.sink.feed(sample.chart_id, sample.dimension_id, sample.value)
            self.sink.commit(definition.chart_id)

        self.rounds += 1
        logger.debug(
            "Round committed",
            extra={
                "round": self.rounds,
                "sample_count": len(outcome.samples),
                "failed_devices": len(outcome.failed_devices) or None,
            },
        )
        return outcome

    def close(self) -> None:
        self.poller.shutdown()


def build_collector(
    addresses: Sequence[str],
    period: int,
    settings: Optional[Settings] = None,
    sink: Optional[MetricsSink] = None,
    client_factory: Optional[ClientFactory] = None,
) -> Collector:
    """Factory that wires the collector with HS110 clients and a stdout sink."""
    settings = settings or get_settings()
    deadline = poll_deadline(period)
    resolve_timeout = settings.resolve_timeout or deadline
    if client_factory is None:
        devices = build_registry(addresses, resolve_timeout)
    else:
        devices = build_registry(addresses, resolve_timeout, client_factory=client_factory)
    catalog = build_default_catalog()
    return Collector(
        devices=devices,
        catalog=catalog,
        poller=ConcurrentPoller(workers=settings.poll_workers),
        processor=RoundProcessor(catalog),
        sink=sink if sink is not None else NetdataSink(),
        deadline=deadline,
    )
