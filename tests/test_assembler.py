"""Tests for record assembly from one loop iteration."""

from sensing_bridge.assembler import (
    AcquiredValues,
    LoopKind,
    assemble_record,
    dedupe_by_address,
    format_readable_time,
)
from sensing_bridge.models import (
    BluetoothObservation,
    CellObservation,
    GeoLocation,
    MagnetometerReading,
    WifiObservation,
)


class TestDedupe:
    def test_first_occurrence_wins(self):
        devices = [
            BluetoothObservation("a", "A", -40),
            BluetoothObservation("b", "B", -50),
            BluetoothObservation("a", "A", -45),
        ]

        unique = dedupe_by_address(devices)

        assert [d.address for d in unique] == ["A", "B"]
        assert unique[0].rssi == -40

    def test_empty(self):
        assert dedupe_by_address([]) == []


class TestAssembleRecord:
    def setup_method(self):
        self.values = AcquiredValues(
            location=GeoLocation(1.0, 2.0, 3.0, 4.0),
            wifi_networks=[WifiObservation("net", "00:11", -50, 2412, "WPA2")],
            bluetooth_devices=[
                BluetoothObservation("dev", "AA:BB", -55),
                BluetoothObservation("dev", "AA:BB", -60),
            ],
            cell_towers=[CellObservation("LTE", 1, 2, -70)],
            magnetometer=MagnetometerReading.from_vector(1.0, 0.0, 0.0),
        )
        self.timestamp_ms = 1_700_000_000_000

    def test_fast_record_shape(self):
        record = assemble_record(LoopKind.FAST, self.values, self.timestamp_ms, "audio_raw.pcm")

        assert record.location == self.values.location
        assert record.wifi_networks == []
        assert record.cell_towers == []
        assert [d.rssi for d in record.bluetooth_devices] == [-55]
        assert record.magnetometer == self.values.magnetometer
        assert record.audio_filename == "audio_raw.pcm"

    def test_slow_record_shape(self):
        record = assemble_record(LoopKind.SLOW, self.values, self.timestamp_ms, "audio_raw.pcm")

        assert record.wifi_networks == self.values.wifi_networks
        assert record.cell_towers == self.values.cell_towers
        assert record.bluetooth_devices == []
        assert record.magnetometer is None

    def test_absent_values(self):
        record = assemble_record(LoopKind.FAST, AcquiredValues(), self.timestamp_ms, "a.pcm")

        assert record.location is None
        assert record.magnetometer is None
        assert record.bluetooth_devices == []

    def test_readable_time(self):
        record = assemble_record(LoopKind.SLOW, AcquiredValues(), self.timestamp_ms, "a.pcm")

        assert record.timestamp == self.timestamp_ms
        assert record.readable_time == format_readable_time(self.timestamp_ms)
        day, month, rest = record.readable_time.split("/")
        assert len(day) == 2 and len(month) == 2
        assert len(rest) == len("2023 22:13:20")
