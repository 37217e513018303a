"""Merge one loop iteration's acquired values into a fixed-schema record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from .models import (
    BluetoothObservation,
    CellObservation,
    GeoLocation,
    MagnetometerReading,
    ScanRecord,
    WifiObservation,
)

READABLE_TIME_FORMAT = "%d/%m/%Y %H:%M:%S"


class LoopKind(Enum):
    FAST = "fast"  # location, bluetooth, magnetometer
    SLOW = "slow"  # location, wifi, cells


@dataclass
class AcquiredValues:
    """Raw results of the bridge calls made during one iteration."""

    location: Optional[GeoLocation] = None
    wifi_networks: List[WifiObservation] = field(default_factory=list)
    bluetooth_devices: List[BluetoothObservation] = field(default_factory=list)
    cell_towers: List[CellObservation] = field(default_factory=list)
    magnetometer: Optional[MagnetometerReading] = None


def format_readable_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(READABLE_TIME_FORMAT)


def dedupe_by_address(devices: Iterable[BluetoothObservation]) -> List[BluetoothObservation]:
    """Keep the first observation seen for each address, in arrival order."""
    seen = set()
    unique = []
    for device in devices:
        if device.address in seen:
            continue
        seen.add(device.address)
        unique.append(device)
    return unique


def assemble_record(
    loop: LoopKind,
    values: AcquiredValues,
    timestamp_ms: int,
    audio_filename: str,
) -> ScanRecord:
    """
    Build the record for one iteration of ``loop``.

    Values the loop does not acquire are dropped so that fast records never
    carry wifi or cells and slow records never carry bluetooth or a
    magnetometer reading, whatever ``values`` holds.
    """
    record = ScanRecord(
        timestamp=timestamp_ms,
        readable_time=format_readable_time(timestamp_ms),
        location=values.location,
        audio_filename=audio_filename,
    )

    if loop is LoopKind.FAST:
        record.bluetooth_devices = dedupe_by_address(values.bluetooth_devices)
        record.magnetometer = values.magnetometer
    else:
        record.wifi_networks = list(values.wifi_networks)
        record.cell_towers = list(values.cell_towers)

    return record
