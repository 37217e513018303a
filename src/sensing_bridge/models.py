"""Fixed-schema scan record model and its JSON-line serialization."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

# Reserved value the cellular API reports when signal strength is unknown.
CELL_DBM_UNKNOWN = 2147483647

CELL_TYPES = {
    "LTE": "LTE",
    "GSM": "GSM",
    "WCDMA": "WCDMA",
    "NR": "5G",
    "5G": "5G",
}


@dataclass
class GeoLocation:
    """Position fix, only ever present as a complete unit."""

    latitude: float
    longitude: float
    accuracy: float
    altitude: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GeoLocation:
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            accuracy=data["accuracy"],
            altitude=data["altitude"],
        )


@dataclass
class WifiObservation:
    """One access point seen by a wireless network scan."""

    ssid: str  # empty for hidden networks
    bssid: str
    rssi: int
    frequency: int
    capabilities: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ssid": self.ssid,
            "bssid": self.bssid,
            "rssi": self.rssi,
            "frequency": self.frequency,
            "capabilities": self.capabilities,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WifiObservation:
        return cls(
            ssid=data["ssid"],
            bssid=data["bssid"],
            rssi=data["rssi"],
            frequency=data["frequency"],
            capabilities=data["capabilities"],
        )


@dataclass
class BluetoothObservation:
    """One advertisement seen during a short-range radio scan window."""

    name: str
    address: str
    rssi: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "address": self.address, "rssi": self.rssi}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BluetoothObservation:
        return cls(name=data["name"], address=data["address"], rssi=data["rssi"])


@dataclass
class CellObservation:
    """Serving or neighbouring cell tower."""

    type: str  # LTE, GSM, WCDMA, 5G or UNKNOWN
    cid: int
    lac: int
    dbm: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "cid": self.cid, "lac": self.lac, "dbm": self.dbm}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CellObservation:
        return cls(type=data["type"], cid=data["cid"], lac=data["lac"], dbm=data["dbm"])


@dataclass
class RawCellReading:
    """Cell info as delivered by a CellularInfoSource, before filtering."""

    technology: str
    cid: int = 0
    lac: int = 0
    dbm: int = 0


@dataclass
class MagnetometerReading:
    """Magnetic field vector in microtesla."""

    x: float
    y: float
    z: float
    total: float

    @classmethod
    def from_vector(cls, x: float, y: float, z: float) -> MagnetometerReading:
        """Build a reading and derive its total field strength."""
        return cls(x=x, y=y, z=z, total=math.sqrt(x * x + y * y + z * z))

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "z": self.z, "total": self.total}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MagnetometerReading:
        return cls(x=data["x"], y=data["y"], z=data["z"], total=data["total"])


@dataclass
class ScanRecord:
    """Everything captured during one loop iteration.

    Every key is always serialized: collections are empty when unused and
    single-value fields are written as null.
    """

    timestamp: int
    readable_time: str
    location: Optional[GeoLocation] = None
    wifi_networks: List[WifiObservation] = field(default_factory=list)
    bluetooth_devices: List[BluetoothObservation] = field(default_factory=list)
    cell_towers: List[CellObservation] = field(default_factory=list)
    magnetometer: Optional[MagnetometerReading] = None
    audio_filename: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to the log line schema."""
        return {
            "timestamp": self.timestamp,
            "readableTime": self.readable_time,
            "location": self.location.to_dict() if self.location else None,
            "wifiNetworks": [w.to_dict() for w in self.wifi_networks],
            "bluetoothDevices": [b.to_dict() for b in self.bluetooth_devices],
            "cellTowers": [c.to_dict() for c in self.cell_towers],
            "magnetometer": self.magnetometer.to_dict() if self.magnetometer else None,
            "audioFilename": self.audio_filename,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ScanRecord:
        """Parse a record previously produced by :meth:`to_dict`."""
        location = data.get("location")
        magnetometer = data.get("magnetometer")
        return cls(
            timestamp=data["timestamp"],
            readable_time=data["readableTime"],
            location=GeoLocation.from_dict(location) if location is not None else None,
            wifi_networks=[WifiObservation.from_dict(w) for w in data.get("wifiNetworks") or []],
            bluetooth_devices=[
                BluetoothObservation.from_dict(b) for b in data.get("bluetoothDevices") or []
            ],
            cell_towers=[CellObservation.from_dict(c) for c in data.get("cellTowers") or []],
            magnetometer=(
                MagnetometerReading.from_dict(magnetometer) if magnetometer is not None else None
            ),
            audio_filename=data.get("audioFilename", ""),
        )


def parse_cells(raw_cells: Optional[Iterable[RawCellReading]]) -> List[CellObservation]:
    """
    Convert raw cell readings into observations.

    Readings whose signal is 0 dBm or the reserved unknown value are treated
    as missing data and dropped.
    """
    if raw_cells is None:
        return []

    cells: List[CellObservation] = []
    for raw in raw_cells:
        cell_type = CELL_TYPES.get(raw.technology.upper(), "UNKNOWN")
        if raw.dbm == 0 or raw.dbm == CELL_DBM_UNKNOWN:
            continue
        cells.append(CellObservation(type=cell_type, cid=raw.cid, lac=raw.lac, dbm=raw.dbm))
    return cells
