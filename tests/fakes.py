"""Fake sensing collaborators for driving the bridge in tests.

Each fake can answer synchronously, later via ``loop.call_later``, or never.
"""

import asyncio
from typing import List, Optional, Sequence, Tuple

from sensing_bridge.models import BluetoothObservation, GeoLocation, RawCellReading, WifiObservation
from sensing_bridge.sources import Permission


class DenyPermissions:
    def __init__(self, *denied: Permission):
        self.denied = set(denied)

    def granted(self, permission):
        return permission not in self.denied


class FakeLocationSource:
    def __init__(self, fix: Optional[GeoLocation] = None, delay: Optional[float] = 0.0, error=None):
        self.fix = fix
        self.delay = delay  # None: never answers
        self.error = error
        self.requests = 0

    def request_fix(self, timeout_hint, callback):
        self.requests += 1
        if self.error:
            raise self.error
        if self.delay is None:
            return
        if self.delay == 0:
            callback(self.fix)
        else:
            asyncio.get_running_loop().call_later(self.delay, callback, self.fix)


class FakeWifiScanner:
    def __init__(
        self,
        results: Sequence[WifiObservation] = (),
        success: bool = True,
        delay: Optional[float] = 0.0,
        start_ok: bool = True,
        enabled: bool = True,
    ):
        self.results = list(results)
        self.success = success
        self.delay = delay
        self.start_ok = start_ok
        self.enabled = enabled
        self.receivers: List = []
        self.scans = 0

    def register_receiver(self, receiver):
        self.receivers.append(receiver)

    def unregister_receiver(self, receiver):
        self.receivers.remove(receiver)

    def start_scan(self):
        self.scans += 1
        if not self.start_ok:
            return False
        if self.delay is not None:
            loop = asyncio.get_running_loop()
            loop.call_later(self.delay, self.broadcast, self.success)
        return True

    def broadcast(self, success):
        for receiver in list(self.receivers):
            receiver(success)

    def read_results(self):
        return list(self.results)


class FakeRadioScanner:
    """Delivers ``events`` as (delay, observation) pairs once the scan is live.

    ``start_delay`` and ``stop_delay`` make start_scan/stop_scan coroutines
    that suspend that long before the scan goes live or the callback is
    removed.
    """

    def __init__(
        self,
        events: Sequence[Tuple[float, BluetoothObservation]] = (),
        enabled=True,
        use_async=False,
        start_delay: float = 0.0,
        stop_delay: float = 0.0,
    ):
        self.events = list(events)
        self.enabled = enabled
        self.use_async = use_async
        self.start_delay = start_delay
        self.stop_delay = stop_delay
        self.active: List = []
        self.started = 0
        self.stopped = 0
        self.live_at: Optional[float] = None

    def start_scan(self, callback):
        if self.use_async or self.start_delay:
            return self._start_async(callback)
        self._start(callback)

    async def _start_async(self, callback):
        await asyncio.sleep(self.start_delay)
        self._start(callback)

    def _start(self, callback):
        self.started += 1
        self.active.append(callback)
        loop = asyncio.get_running_loop()
        self.live_at = loop.time()
        for delay, observation in self.events:
            if delay == 0:
                callback(observation)
            else:
                loop.call_later(delay, callback, observation)

    def stop_scan(self, callback):
        if self.stop_delay:
            return self._stop_async(callback)
        self._stop(callback)

    async def _stop_async(self, callback):
        await asyncio.sleep(self.stop_delay)
        self._stop(callback)

    def _stop(self, callback):
        self.stopped += 1
        if callback in self.active:
            self.active.remove(callback)


class FakeCellSource:
    def __init__(self, cells=(), mode: str = "cells", snapshot=None, delay: float = 0.0):
        self.cells: List[RawCellReading] = list(cells)
        self.mode = mode  # cells, error, raise, never
        self.snapshot = snapshot
        self.delay = delay

    def request_update(self, on_cells, on_error):
        if self.mode == "raise":
            raise RuntimeError("telephony unavailable")
        if self.mode == "never":
            return
        loop = asyncio.get_running_loop()
        if self.mode == "error":
            loop.call_later(self.delay, on_error, 1, None)
        else:
            loop.call_later(self.delay, on_cells, list(self.cells))

    def cached_snapshot(self):
        return self.snapshot


class FakeMagneticSensor:
    def __init__(self, samples: Sequence[Tuple[float, Tuple[float, float, float]]] = (), present=True):
        self.samples = list(samples)
        self.present = present
        self.listeners: List = []
        self.registrations = 0

    def register(self, listener):
        self.registrations += 1
        self.listeners.append(listener)
        loop = asyncio.get_running_loop()
        for delay, values in self.samples:
            loop.call_later(delay, self._deliver, listener, values)

    def _deliver(self, listener, values):
        if listener in self.listeners:
            listener(values)

    def unregister(self, listener):
        self.listeners.remove(listener)


class FailingForegroundGuard:
    def __init__(self):
        self.released = 0

    def acquire(self):
        raise RuntimeError("foreground service not allowed")

    def release(self):
        self.released += 1


class CountingForegroundGuard:
    def __init__(self):
        self.acquired = 0
        self.released = 0

    def acquire(self):
        self.acquired += 1

    def release(self):
        self.released += 1


class RecordingShareSink:
    def __init__(self, error: Optional[Exception] = None):
        self.shared: List = []
        self.error = error

    def share(self, path, mime_type):
        if self.error:
            raise self.error
        self.shared.append((path, mime_type))
