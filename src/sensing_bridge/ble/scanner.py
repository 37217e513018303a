"""Bluetooth LE discovery via Bleak, exposed as a start/stop callback scanner."""

from __future__ import annotations

import logging
from typing import Dict

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from ..models import BluetoothObservation
from ..sources import RadioCallback

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


class BleakRadioScanner:
    """Short-range radio scanner backed by a BleakScanner per active scan."""

    def __init__(self, adapter: str = "hci0", enabled: bool = True) -> None:
        self.adapter = adapter
        self.enabled = enabled
        self._scanners: Dict[RadioCallback, BleakScanner] = {}

    async def start_scan(self, callback: RadioCallback) -> None:
        """Start discovery; ``callback`` receives every advertisement seen."""

        def detection(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
            name = device.name or advertisement_data.local_name or UNKNOWN_NAME
            callback(BluetoothObservation(name, device.address, advertisement_data.rssi))

        scanner = BleakScanner(detection_callback=detection, adapter=self.adapter)
        # stop_scan must also find scanners whose start() was interrupted
        self._scanners[callback] = scanner
        await scanner.start()
        logger.debug(f"BLE scan started on {self.adapter}")

    async def stop_scan(self, callback: RadioCallback) -> None:
        """Stop the discovery started for ``callback``, if any.

        The scanner stays tracked until ``stop()`` returns, so a stop that
        is cancelled part way can be retried.
        """
        scanner = self._scanners.get(callback)
        if scanner is None:
            return

        try:
            await scanner.stop()
        except BleakError as e:
            logger.warning(f"BLE scan stop failed on {self.adapter}: {e}")
        else:
            logger.debug(f"BLE scan stopped on {self.adapter}")
        self._scanners.pop(callback, None)

    @property
    def active_scans(self) -> int:
        return len(self._scanners)
