"""Startup construction of the polled device set."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence

from devices.hs110 import HS110Client
from models.records import UNKNOWN_ALIAS, Device, DeviceClient, dimension_prefix_for

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], DeviceClient]


def build_registry(
    addresses: Sequence[str],
    resolve_timeout: float,
    client_factory: ClientFactory = HS110Client,
) -> List[Device]:
    """Create one ``Device`` per address, in order.

    Alias resolution is best effort: an unreachable device is still polled,
    under the ``UNKNOWN_ALIAS`` name. Two hosts whose dimension ids would
    collide (``plug.local`` and ``plug-local``) are rejected.
    """
    if not addresses:
        raise ValueError("At least one host has to be specified in the config.")

    devices: List[Device] = []
    prefixes: Dict[str, str] = {}
    for address in addresses:
        prefix = dimension_prefix_for(address)
        if prefix in prefixes:
            raise ValueError(
                f"Hosts {prefixes[prefix]!r} and {address!r} map to the same dimension id {prefix!r}."
            )
        prefixes[prefix] = address
        client = client_factory(address)
        try:
            alias = client.resolve_alias(resolve_timeout)
        except Exception as exc:  # noqa: BLE001 - the alias is cosmetic
            logger.warning(
                "Unable to resolve device alias, using fallback",
                extra={"device": address, "alias": UNKNOWN_ALIAS, "reason": str(exc)},
            )
            alias = UNKNOWN_ALIAS
        devices.append(
            Device(
                address=address,
                alias=alias,
                dimension_prefix=prefix,
                client=client,
            )
        )

    logger.info(
        "The following devices are going to be polled: %s",
        ", ".join(device.display_name for device in devices),
    )
    return devices
