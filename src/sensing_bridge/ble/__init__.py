"""BLE package for short-range radio discovery."""

from .scanner import BleakRadioScanner

__all__ = ["BleakRadioScanner"]
