"""Tests for the bleak-backed radio scanner, with BleakScanner replaced."""

import asyncio
from types import SimpleNamespace

from bleak.exc import BleakError

from sensing_bridge.ble import scanner as scanner_module
from sensing_bridge.ble.scanner import BleakRadioScanner


class FakeBleakScanner:
    instances = []

    def __init__(self, detection_callback=None, adapter=None):
        self.detection_callback = detection_callback
        self.adapter = adapter
        self.started = False
        self.stopped = False
        self.stop_error = None
        self.stop_delay = 0.0
        FakeBleakScanner.instances.append(self)

    async def start(self):
        self.started = True

    async def stop(self):
        await asyncio.sleep(self.stop_delay)
        if self.stop_error:
            raise self.stop_error
        self.stopped = True

    def advertise(self, address, name, local_name, rssi):
        device = SimpleNamespace(address=address, name=name)
        advertisement = SimpleNamespace(local_name=local_name, rssi=rssi)
        self.detection_callback(device, advertisement)


class TestBleakRadioScanner:
    def setup_method(self):
        FakeBleakScanner.instances = []

    def test_detections_become_observations(self, monkeypatch):
        monkeypatch.setattr(scanner_module, "BleakScanner", FakeBleakScanner)
        radio = BleakRadioScanner(adapter="hci1")
        seen = []

        async def scenario():
            await radio.start_scan(seen.append)
            fake = FakeBleakScanner.instances[0]
            fake.advertise("AA", "Beacon", None, -40)
            fake.advertise("BB", None, "Tag", -55)
            fake.advertise("CC", None, None, -70)
            assert radio.active_scans == 1
            await radio.stop_scan(seen.append)
            return fake

        fake = asyncio.run(scenario())

        assert fake.adapter == "hci1"
        assert fake.started and fake.stopped
        assert [(o.name, o.address, o.rssi) for o in seen] == [
            ("Beacon", "AA", -40),
            ("Tag", "BB", -55),
            ("Unknown", "CC", -70),
        ]
        assert radio.active_scans == 0

    def test_stop_without_start_is_noop(self):
        radio = BleakRadioScanner()

        asyncio.run(radio.stop_scan(print))

        assert radio.active_scans == 0

    def test_stop_error_is_logged_not_raised(self, monkeypatch):
        monkeypatch.setattr(scanner_module, "BleakScanner", FakeBleakScanner)
        radio = BleakRadioScanner()

        def callback(observation):
            pass

        async def scenario():
            await radio.start_scan(callback)
            FakeBleakScanner.instances[0].stop_error = BleakError("adapter gone")
            await radio.stop_scan(callback)

        asyncio.run(scenario())

        assert radio.active_scans == 0

    def test_cancelled_stop_keeps_scanner_reachable(self, monkeypatch):
        monkeypatch.setattr(scanner_module, "BleakScanner", FakeBleakScanner)
        radio = BleakRadioScanner()

        def callback(observation):
            pass

        async def scenario():
            await radio.start_scan(callback)
            fake = FakeBleakScanner.instances[0]
            fake.stop_delay = 0.1
            stopping = asyncio.create_task(radio.stop_scan(callback))
            await asyncio.sleep(0.02)
            stopping.cancel()
            await asyncio.gather(stopping, return_exceptions=True)
            assert radio.active_scans == 1

            fake.stop_delay = 0.0
            await radio.stop_scan(callback)
            return fake

        fake = asyncio.run(scenario())

        assert fake.stopped
        assert radio.active_scans == 0
