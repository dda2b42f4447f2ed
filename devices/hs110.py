"""TP-Link HS110 smart plug client.

The plug speaks JSON over TCP, obfuscated with an "autokey" XOR cipher and
framed by a 4-byte big-endian length prefix.
"""

from __future__ import annotations

import json
import socket
import struct
import time
from typing import Any, Dict

DEFAULT_PORT = 9999

_INITIAL_KEY = 171
_HEADER = struct.Struct(">I")
_MAX_FRAME = 64 * 1024

EMETER_REALTIME = {"emeter": {"get_realtime": {}}}
SYSINFO = {"system": {"get_sysinfo": {}}}

# Hardware v1 reports base units; v2+ reports the milli-unit fields below.
_V1_FIELDS = {
    "power": ("power_mw", 1000),
    "voltage": ("voltage_mv", 1000),
    "current": ("current_ma", 1000),
    "total": ("total_wh", 1000),
}


class DeviceError(Exception):
    """The device could not be queried."""


class DeviceTimeout(DeviceError):
    """The device did not answer within the allotted time."""


class DeviceProtocolError(DeviceError):
    """The device answered with something that is not a valid response."""


def encrypt(text: str) -> bytes:
    key = _INITIAL_KEY
    payload = bytearray()
    for byte in text.encode("utf-8"):
        key ^= byte
        payload.append(key)
    return _HEADER.pack(len(payload)) + bytes(payload)


def decrypt(payload: bytes) -> str:
    key = _INITIAL_KEY
    plain = bytearray()
    for byte in payload:
        plain.append(key ^ byte)
        key = byte
    return plain.decode("utf-8")


def _recv_exact(sock: socket.socket, size: int, expires: float) -> bytes:
    chunks = bytearray()
    while len(chunks) < size:
        remaining = expires - time.monotonic()
        if remaining <= 0:
            raise socket.timeout("deadline exceeded")
        sock.settimeout(remaining)
        chunk = sock.recv(size - len(chunks))
        if not chunk:
            raise DeviceProtocolError(
                f"connection closed after {len(chunks)} of {size} bytes"
            )
        chunks.extend(chunk)
    return bytes(chunks)


def _upgrade_v1_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    for legacy, (name, factor) in _V1_FIELDS.items():
        if name in fields or legacy not in fields:
            continue
        value = fields[legacy]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            fields[name] = round(value * factor)
    return fields

class HS110Client:
    """Stateless per-call client; every request opens its own connection."""

    def __init__(self, address: str, port: int = DEFAULT_PORT) -> None:
        self.address = address
        self.port = port

    def __repr__(self) -> str:
        return f"HS110Client({self.address!r}, port={self.port})"

    def request(self, command: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        expires = time.monotonic() + timeout
        try:
            with socket.create_connection((self.address, self.port), timeout=timeout) as sock:
                sock.settimeout(max(expires - time.monotonic(), 0.001))
                sock.sendall(encrypt(json.dumps(command)))
                (length,) = _HEADER.unpack(_recv_exact(sock, _HEADER.size, expires))
                if length > _MAX_FRAME:
                    raise DeviceProtocolError(f"response frame too large ({length} bytes)")
                body = _recv_exact(sock, length, expires)
        except socket.timeout as exc:
            raise DeviceTimeout(f"no response from {self.address} within {timeout}s") from exc
        except DeviceError:
            raise
        except OSError as exc:
            raise DeviceError(f"connection to {self.address} failed: {exc}") from exc

        try:
            response = json.loads(decrypt(body))
        except (UnicodeDecodeError, ValueError) as exc:
            raise DeviceProtocolError(f"undecodable response from {self.address}") from exc
        if not isinstance(response, dict):
            raise DeviceProtocolError(f"unexpected response from {self.address}: {response!r}")
        return response

    def query(self, timeout: float) -> Dict[str, Any]:
        """Return the realtime energy-meter readings (``power_mw``, ``voltage_mv``, ...)."""
        response = self.request(EMETER_REALTIME, timeout)
        realtime = self._section(response, "emeter", "get_realtime")
        fields = {key: value for key, value in realtime.items() if key != "err_code"}
        return _upgrade_v1_fields(fields)

    def resolve_alias(self, timeout: float) -> str:
        response = self.request(SYSINFO, timeout)
        sysinfo = self._section(response, "system", "get_sysinfo")
        alias = sysinfo.get("alias")
        if not isinstance(alias, str) or not alias:
            raise DeviceProtocolError(f"{self.address} did not report an alias")
        return alias

    def _section(self, response: Dict[str, Any], module: str, method: str) -> Dict[str, Any]:
        module_body = response.get(module)
        section = module_body.get(method) if isinstance(module_body, dict) else None
        if not isinstance(section, dict):
            raise DeviceProtocolError(f"{self.address} response lacks {module}.{method}")
        err_code = section.get("err_code", 0)
        if err_code != 0:
            message = section.get("err_msg", "unknown error")
            raise DeviceError(f"{self.address} returned err_code {err_code}: {message}")
        return section
