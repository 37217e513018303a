"""Contracts for the platform sensing primitives the bridge adapts.

Each source is callback or broadcast based. The ``Unavailable*`` classes are
stand-ins for hosts without that radio or sensor; the bridge resolves them
to absent/empty immediately.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

from .models import BluetoothObservation, GeoLocation, RawCellReading, WifiObservation

LocationCallback = Callable[[Optional[GeoLocation]], None]
WifiReceiver = Callable[[bool], None]
RadioCallback = Callable[[BluetoothObservation], None]
CellsCallback = Callable[[Sequence[RawCellReading]], None]
CellErrorCallback = Callable[[int, Optional[BaseException]], None]
MagneticListener = Callable[[Tuple[float, float, float]], None]


class Permission(str, Enum):
    """Permissions checked before a source is used."""

    FINE_LOCATION = "ACCESS_FINE_LOCATION"
    ACCESS_WIFI_STATE = "ACCESS_WIFI_STATE"
    CHANGE_WIFI_STATE = "CHANGE_WIFI_STATE"
    BLUETOOTH_SCAN = "BLUETOOTH_SCAN"
    BLUETOOTH_CONNECT = "BLUETOOTH_CONNECT"


class PermissionChecker(Protocol):
    def granted(self, permission: Permission) -> bool: ...


class LocationSource(Protocol):
    def request_fix(self, timeout_hint: float, callback: LocationCallback) -> None:
        """Ask for a fresh fix; ``callback`` receives it, or None."""
        ...


class WirelessNetworkScanner(Protocol):
    enabled: bool

    def register_receiver(self, receiver: WifiReceiver) -> None: ...

    def unregister_receiver(self, receiver: WifiReceiver) -> None: ...

    def start_scan(self) -> bool: ...

    def read_results(self) -> List[WifiObservation]: ...


class ShortRangeRadioScanner(Protocol):
    """Radio discovery; start/stop may be plain calls or coroutines."""

    enabled: bool

    def start_scan(self, callback: RadioCallback) -> Any: ...

    def stop_scan(self, callback: RadioCallback) -> Any: ...


class CellularInfoSource(Protocol):
    def request_update(self, on_cells: CellsCallback, on_error: CellErrorCallback) -> None: ...

    def cached_snapshot(self) -> Optional[List[RawCellReading]]: ...


class MagneticFieldSensor(Protocol):
    present: bool

    def register(self, listener: MagneticListener) -> None: ...

    def unregister(self, listener: MagneticListener) -> None: ...


class ShareSink(Protocol):
    def share(self, path: Path, mime_type: str) -> None: ...


class ForegroundGuard(Protocol):
    """Keeps the process eligible to run while a session records."""

    def acquire(self) -> None: ...

    def release(self) -> None: ...


class AllowAllPermissions:
    """Permission checker for hosts without a permission model."""

    def granted(self, permission: Permission) -> bool:
        return True


class UnavailableLocationSource:
    def request_fix(self, timeout_hint: float, callback: LocationCallback) -> None:
        callback(None)


class UnavailableWifiScanner:
    enabled = False

    def register_receiver(self, receiver: WifiReceiver) -> None:
        pass

    def unregister_receiver(self, receiver: WifiReceiver) -> None:
        pass

    def start_scan(self) -> bool:
        return False

    def read_results(self) -> List[WifiObservation]:
        return []


class UnavailableRadioScanner:
    enabled = False

    def start_scan(self, callback: RadioCallback) -> None:
        pass

    def stop_scan(self, callback: RadioCallback) -> None:
        pass


class UnavailableCellularSource:
    def request_update(self, on_cells: CellsCallback, on_error: CellErrorCallback) -> None:
        on_cells([])

    def cached_snapshot(self) -> Optional[List[RawCellReading]]:
        return None


class UnavailableMagneticSensor:
    present = False

    def register(self, listener: MagneticListener) -> None:
        pass

    def unregister(self, listener: MagneticListener) -> None:
        pass


class NoopForegroundGuard:
    def acquire(self) -> None:
        pass

    def release(self) -> None:
        pass
