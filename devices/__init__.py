"""Clients for the metering devices polled by the collector."""

from devices.hs110 import (
    DeviceError,
    DeviceProtocolError,
    DeviceTimeout,
    HS110Client,
)

__all__ = ["DeviceError", "DeviceProtocolError", "DeviceTimeout", "HS110Client"]
