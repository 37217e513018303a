"""Adapters turning callback-based sensing primitives into awaitable results."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, TypeVar

from .config import TimeoutConfig
from .errors import AcquisitionTimeout, PermissionDenied, SensingError, SourceUnavailable
from .models import (
    BluetoothObservation,
    CellObservation,
    GeoLocation,
    MagnetometerReading,
    RawCellReading,
    WifiObservation,
    parse_cells,
)
from .sources import (
    AllowAllPermissions,
    CellularInfoSource,
    LocationSource,
    MagneticFieldSensor,
    Permission,
    PermissionChecker,
    ShortRangeRadioScanner,
    UnavailableCellularSource,
    UnavailableLocationSource,
    UnavailableMagneticSensor,
    UnavailableRadioScanner,
    UnavailableWifiScanner,
    WirelessNetworkScanner,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

WIFI_PERMISSIONS = (
    Permission.FINE_LOCATION,
    Permission.ACCESS_WIFI_STATE,
    Permission.CHANGE_WIFI_STATE,
)
BLUETOOTH_PERMISSIONS = (Permission.BLUETOOTH_SCAN, Permission.BLUETOOTH_CONNECT)


class SingleResolution:
    """A future that settles exactly once, raced against an optional timer.

    Whichever of the real event or the timer settles first wins; every later
    attempt is a no-op. Events may be delivered from foreign threads through
    :meth:`resolve_threadsafe`.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._future: asyncio.Future = loop.create_future()
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: Any) -> bool:
        """Settle with ``value``. Returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_result(value)
        return True

    def fail(self, exc: BaseException) -> bool:
        """Settle with an exception. Returns False if already settled."""
        if self._future.done():
            return False
        self._future.set_exception(exc)
        return True

    def resolve_threadsafe(self, value: Any) -> None:
        """Settle from any thread; marshals onto the owning loop if needed."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self.resolve(value)
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self.resolve, value)

    def start_timer(self, delay: float, callback: Callable[[], Any]) -> None:
        self._timer = self._loop.call_later(delay, callback)

    async def wait(self) -> Any:
        return await self._future

    def close(self) -> None:
        """Cancel the timer and abandon the future if nobody settled it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._future.done():
            self._future.cancel()


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


@dataclass
class SensorSources:
    """The platform collaborators the bridge talks to."""

    location: LocationSource = field(default_factory=UnavailableLocationSource)
    wifi: WirelessNetworkScanner = field(default_factory=UnavailableWifiScanner)
    radio: ShortRangeRadioScanner = field(default_factory=UnavailableRadioScanner)
    cellular: CellularInfoSource = field(default_factory=UnavailableCellularSource)
    magnetometer: MagneticFieldSensor = field(default_factory=UnavailableMagneticSensor)
    permissions: PermissionChecker = field(default_factory=AllowAllPermissions)


class SensorBridge:
    """Single-resolution, cancellable, timeout-bounded access to each source.

    No error escapes a bridge call: unavailable sources, denied permissions,
    timeouts and collaborator failures all resolve to None or an empty list.
    Listeners are always deregistered, including when the awaiting task is
    cancelled.
    """

    def __init__(self, sources: SensorSources, timeouts: Optional[TimeoutConfig] = None) -> None:
        self.sources = sources
        self.timeouts = timeouts or TimeoutConfig()

    async def get_location(self) -> Optional[GeoLocation]:
        """Fresh position fix, first result within the location timeout."""
        try:
            self._require(Permission.FINE_LOCATION)
        except SensingError as e:
            logger.debug(f"Location skipped: {e}")
            return None

        timeout = self.timeouts.location_sec

        def start(call: SingleResolution) -> None:
            self.sources.location.request_fix(timeout, call.resolve_threadsafe)

        return await self._bridge("location", start, None, None, timeout=timeout)

    async def scan_wifi(self) -> List[WifiObservation]:
        """Trigger a wireless network scan and wait for its results broadcast."""
        scanner = self.sources.wifi
        try:
            self._require(*WIFI_PERMISSIONS)
            self._require_available("wifi", scanner.enabled)
        except SensingError as e:
            logger.debug(f"Wifi scan skipped: {e}")
            return []

        call: Optional[SingleResolution] = None

        def receiver(success: bool) -> None:
            if call is None or call.done:
                return
            results: List[WifiObservation] = []
            if success:
                try:
                    results = list(scanner.read_results())
                except Exception as e:
                    logger.warning(f"Reading wifi scan results failed: {e}")
            call.resolve_threadsafe(results)

        def start(resolution: SingleResolution) -> None:
            nonlocal call
            call = resolution
            scanner.register_receiver(receiver)
            if not scanner.start_scan():
                logger.debug("Wifi scan request was rejected")
                resolution.resolve([])

        def stop() -> None:
            scanner.unregister_receiver(receiver)

        return await self._bridge("wifi", start, stop, [], timeout=self.timeouts.wifi_sec)

    async def scan_bluetooth(self) -> List[BluetoothObservation]:
        """Collect every advertisement seen during a fixed scan window."""
        scanner = self.sources.radio
        try:
            self._require_available("bluetooth", scanner.enabled)
            self._require(*BLUETOOTH_PERMISSIONS)
        except SensingError as e:
            logger.debug(f"Bluetooth scan skipped: {e}")
            return []

        seen: List[BluetoothObservation] = []
        call: Optional[SingleResolution] = None

        def on_result(observation: BluetoothObservation) -> None:
            if call is not None and not call.done:
                seen.append(observation)

        def start(resolution: SingleResolution) -> Any:
            nonlocal call
            call = resolution
            return scanner.start_scan(on_result)

        def stop() -> Any:
            return scanner.stop_scan(on_result)

        def window_closed(resolution: SingleResolution) -> None:
            resolution.resolve(list(seen))

        return await self._bridge(
            "bluetooth",
            start,
            stop,
            [],
            timeout=self.timeouts.bluetooth_window_sec,
            on_timer=window_closed,
        )

    async def get_cell_info(self) -> List[CellObservation]:
        """Request fresh cell info, falling back to the cached snapshot on error."""
        try:
            self._require(Permission.FINE_LOCATION)
        except SensingError as e:
            logger.debug(f"Cell info skipped: {e}")
            return []

        cellular = self.sources.cellular

        def snapshot() -> List[CellObservation]:
            return parse_cells(cellular.cached_snapshot())

        def start(call: SingleResolution) -> None:
            def on_cells(cells: Sequence[RawCellReading]) -> None:
                call.resolve_threadsafe(parse_cells(cells))

            def on_error(code: int, detail: Optional[BaseException]) -> None:
                logger.debug(f"Cell info update failed ({code}): {detail}")
                call.resolve_threadsafe(snapshot())

            try:
                cellular.request_update(on_cells, on_error)
            except Exception as e:
                logger.debug(f"Cell info request raised, using cached snapshot: {e}")
                call.resolve(snapshot())

        def cached(call: SingleResolution) -> None:
            call.resolve(snapshot())

        return await self._bridge(
            "cell",
            start,
            None,
            [],
            timeout=self.timeouts.cell_sec,
            on_timer=cached,
        )

    async def get_magnetometer(self) -> Optional[MagnetometerReading]:
        """First magnetic field sample within the magnetometer timeout."""
        sensor = self.sources.magnetometer
        try:
            self._require_available("magnetometer", sensor.present)
        except SensingError as e:
            logger.debug(f"Magnetometer skipped: {e}")
            return None

        call: Optional[SingleResolution] = None

        def listener(values: Tuple[float, float, float]) -> None:
            if call is None or call.done:
                return
            try:
                x, y, z = (float(v) for v in values[:3])
            except (TypeError, ValueError) as e:
                logger.debug(f"Ignoring malformed magnetometer sample {values!r}: {e}")
                return
            call.resolve_threadsafe(MagnetometerReading.from_vector(x, y, z))

        def start(resolution: SingleResolution) -> None:
            nonlocal call
            call = resolution
            sensor.register(listener)

        def stop() -> None:
            sensor.unregister(listener)

        return await self._bridge(
            "magnetometer", start, stop, None, timeout=self.timeouts.magnetometer_sec
        )

    async def _bridge(
        self,
        source: str,
        start: Callable[[SingleResolution], Any],
        stop: Optional[Callable[[], Any]],
        default: T,
        timeout: Optional[float] = None,
        on_timer: Optional[Callable[[SingleResolution], None]] = None,
    ) -> T:
        """Run one registration/teardown cycle and return the first result.

        ``start`` registers the listener and may resolve synchronously. When
        ``timeout`` is set, a timer races the real event: by default it fails
        the call with :class:`AcquisitionTimeout` and covers ``start`` too.
        With ``on_timer`` the timer is a collection window that opens once
        ``start`` has returned, and ``on_timer`` decides the result. ``stop``
        runs to completion on every exit path, cancellation included.
        """
        call = SingleResolution(asyncio.get_running_loop())
        if timeout is not None and on_timer is None:
            call.start_timer(
                timeout,
                lambda: call.fail(AcquisitionTimeout(f"{source} timed out after {timeout}s")),
            )

        try:
            await _maybe_await(start(call))
            if timeout is not None and on_timer is not None and not call.done:
                call.start_timer(timeout, lambda: on_timer(call))
            return await call.wait()
        except AcquisitionTimeout as e:
            logger.debug(str(e))
            return default
        except Exception as e:
            logger.warning(f"{source} acquisition failed: {e}")
            return default
        finally:
            call.close()
            if stop is not None:
                await self._deregister(source, stop)

    @staticmethod
    async def _deregister(source: str, stop: Callable[[], Any]) -> None:
        """Run ``stop`` to the end; a cancel arriving meanwhile is re-raised after it."""
        interrupted = False
        try:
            result = stop()
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                while not task.done():
                    try:
                        await asyncio.shield(task)
                    except asyncio.CancelledError:
                        if not task.done():
                            interrupted = True
                task.result()
        except asyncio.CancelledError:
            logger.warning(f"{source} listener deregistration was cancelled")
        except Exception as e:
            logger.warning(f"{source} listener deregistration failed: {e}")

        if interrupted:
            raise asyncio.CancelledError()

    def _require(self, *permissions: Permission) -> None:
        for permission in permissions:
            if not self.sources.permissions.granted(permission):
                raise PermissionDenied(f"{permission.value} not granted")

    @staticmethod
    def _require_available(source: str, available: bool) -> None:
        if not available:
            raise SourceUnavailable(f"{source} is unavailable")
