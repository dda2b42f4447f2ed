"""Concurrent, per-device isolated polling of the device set."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from typing import Dict, List, Optional, Sequence

from devices.hs110 import DeviceError, DeviceTimeout
from models.records import Device, PollError, PollResult, Reading

logger = logging.getLogger(__name__)

FAILURE_TIMEOUT = "timeout"
FAILURE_DEVICE = "device_error"
FAILURE_MALFORMED = "malformed_response"
FAILURE_CRASH = "task_crashed"


def poll_device(device: Device, deadline: float) -> PollResult:
    """Query one device, turning every device-level failure into a ``PollError``."""
    try:
        fields = device.client.query(deadline)
    except DeviceTimeout as exc:
        return PollResult(device=device, error=PollError(kind=FAILURE_TIMEOUT, reason=str(exc)))
    except DeviceError as exc:
        return PollResult(device=device, error=PollError(kind=FAILURE_DEVICE, reason=str(exc)))

    if not isinstance(fields, Mapping):
        return PollResult(
            device=device,
            error=PollError(
                kind=FAILURE_MALFORMED,
                reason=f"expected a field mapping, got {type(fields).__name__}",
            ),
        )
    return PollResult(device=device, reading=Reading(fields=dict(fields)))


class ConcurrentPoller:
    """Fans one poll per device out to a worker pool and joins every result.

    Each device gets its own ``deadline``; the client enforces it on the wire
    and the join enforces it again, so a unit that never returns is abandoned
    and reported as a timeout instead of holding up the round.
    """

    def __init__(self, workers: Optional[int] = None, join_grace: float = 0.25) -> None:
        self._workers = workers
        self._join_grace = join_grace
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_size = 0
        self._executor_lock = Lock()
        # Units abandoned at a join that may still occupy a worker thread.
        self._abandoned: List[Future[PollResult]] = []

    def poll_all(self, devices: Sequence[Device], deadline: float) -> List[PollResult]:
        if not devices:
            return []

        executor, size = self._ensure_executor(len(devices))
        futures: Dict[Future[PollResult], int] = {
            executor.submit(poll_device, device, deadline): index
            for index, device in enumerate(devices)
        }

        # Capped pools run devices in waves; every wave gets a full deadline.
        waves = math.ceil(len(devices) / size)
        done, pending = wait(futures, timeout=deadline * waves + self._join_grace)

        slots: List[Optional[PollResult]] = [None] * len(devices)
        for future in done:
            index = futures[future]
            slots[index] = self._collect(future, devices[index])
        for future in pending:
            if not future.cancel():
                with self._executor_lock:
                    self._abandoned.append(future)
            index = futures[future]
            slots[index] = PollResult(
                device=devices[index],
                error=PollError(
                    kind=FAILURE_TIMEOUT,
                    reason=f"poll abandoned after {deadline}s deadline",
                ),
            )
        return [result for result in slots if result is not None]

    def shutdown(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
                self._executor_size = 0
            self._abandoned = []

    def _collect(self, future: Future[PollResult], device: Device) -> PollResult:
        try:
            return future.result()
        except Exception as exc:  # noqa: BLE001 - a crashed unit only fails its own slot
            logger.error(
                "Poll task failed to complete",
                exc_info=exc,
                extra={"device": device.address, "alias": device.alias, "reason": repr(exc)},
            )
            return PollResult(
                device=device,
                error=PollError(kind=FAILURE_CRASH, reason=f"poll task crashed: {exc!r}"),
            )

    def _ensure_executor(self, device_count: int) -> tuple[ThreadPoolExecutor, int]:
        size = min(self._workers, device_count) if self._workers else device_count
        with self._executor_lock:
            self._abandoned = [future for future in self._abandoned if not future.done()]
            held = len(self._abandoned)
            if self._executor is None or self._executor_size != size or held:
                if self._executor is not None:
                    # Busy threads finish on their own; the new pool starts with every worker free.
                    self._executor.shutdown(wait=False)
                if held:
                    logger.warning(
                        "Replacing poll workers still held by abandoned units",
                        extra={"failed_devices": held},
                    )
                    self._abandoned = []
                self._executor = ThreadPoolExecutor(
                    max_workers=size, thread_name_prefix="hs110-poll"
                )
                self._executor_size = size
            return self._executor, size
