from __future__ import annotations

import logging
from typing import Any, Dict, List

import pytest

from devices.hs110 import DeviceTimeout
from models.records import UNKNOWN_ALIAS, dimension_prefix_for
from services.registry import build_registry


class AliasClient:
    aliases: Dict[str, str] = {"10.0.0.1": "Fridge", "10.0.0.2": "Heater"}

    def __init__(self, address: str) -> None:
        self.address = address
        self.timeouts: List[float] = []

    def resolve_alias(self, timeout: float) -> str:
        self.timeouts.append(timeout)
        if self.address not in self.aliases:
            raise DeviceTimeout(f"no response from {self.address}")
        return self.aliases[self.address]

    def query(self, timeout: float) -> Dict[str, Any]:
        return {}


def test_registry_preserves_order_and_resolves_aliases() -> None:
    devices = build_registry(["10.0.0.2", "10.0.0.1"], resolve_timeout=0.5, client_factory=AliasClient)

    assert [device.address for device in devices] == ["10.0.0.2", "10.0.0.1"]
    assert [device.alias for device in devices] == ["Heater", "Fridge"]
    assert devices[0].dimension_prefix == "10_0_0_2"
    assert devices[0].display_name == "Heater (10.0.0.2)"
    assert devices[0].client.timeouts == [0.5]


def test_unresolvable_alias_falls_back_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="services.registry"):
        devices = build_registry(["10.0.0.9"], resolve_timeout=0.1, client_factory=AliasClient)

    assert devices[0].alias == UNKNOWN_ALIAS
    records = [record for record in caplog.records if record.name == "services.registry"]
    assert any(getattr(record, "device", None) == "10.0.0.9" for record in records)


def test_alias_resolution_crash_does_not_abort_startup() -> None:
    class BrokenClient(AliasClient):
        def resolve_alias(self, timeout: float) -> str:
            raise RuntimeError("firmware bug")

    devices = build_registry(["10.0.0.1"], resolve_timeout=0.1, client_factory=BrokenClient)

    assert devices[0].alias == UNKNOWN_ALIAS


def test_empty_address_list_is_fatal() -> None:
    with pytest.raises(ValueError, match="At least one host"):
        build_registry([], resolve_timeout=0.1, client_factory=AliasClient)


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("192.168.1.10", "192_168_1_10"),
        ("plug-kitchen.lan", "plug_kitchen_lan"),
        ("fe80::1", "fe80_1"),
    ],
)
def test_dimension_prefix_normalizes_separators(address: str, expected: str) -> None:
    assert dimension_prefix_for(address) == expected


def test_colliding_dimension_prefixes_are_fatal() -> None:
    with pytest.raises(ValueError, match="same dimension id 'plug_local'"):
        build_registry(["plug.local", "plug-local"], resolve_timeout=0.1, client_factory=AliasClient)
