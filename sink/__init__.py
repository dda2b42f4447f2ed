"""Metric sinks receiving chart declarations and per-round values."""

from sink.netdata import NetdataSink, SinkError

__all__ = ["NetdataSink", "SinkError"]
