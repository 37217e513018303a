"""Two independently paced polling loops feeding one session log."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .assembler import AcquiredValues, LoopKind, assemble_record
from .config import ScheduleConfig
from .logs import SessionLogWriter
from .models import ScanRecord
from .sensor_bridge import SensorBridge

logger = logging.getLogger(__name__)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunState:
    """Recording flag shared by both loops, checked once per iteration."""

    def __init__(self) -> None:
        self.state = SchedulerState.IDLE

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def start(self) -> None:
        self.state = SchedulerState.RUNNING

    def stop(self) -> None:
        self.state = SchedulerState.IDLE


@dataclass
class CaptureUpdate:
    """Notification sent after every saved record."""

    last_capture_time: str
    wifi_count: int


class ScanScheduler:
    """Runs the fast (bluetooth + magnetometer) and slow (wifi + cells) loops.

    Both loops append to the same :class:`SessionLogWriter`; their records
    interleave in the log. Stopping flips the run state and cancels both
    tasks, which aborts any in-flight bridge call.
    """

    def __init__(
        self,
        bridge: SensorBridge,
        writer: SessionLogWriter,
        audio_filename: str,
        schedule: Optional[ScheduleConfig] = None,
        state: Optional[RunState] = None,
        clock: Callable[[], int] = _epoch_ms,
    ) -> None:
        self.bridge = bridge
        self.writer = writer
        self.audio_filename = audio_filename
        self.schedule = schedule or ScheduleConfig()
        self.state = state or RunState()
        self._clock = clock

        self._tasks: List[asyncio.Task] = []
        self._iterations: Dict[LoopKind, int] = {LoopKind.FAST: 0, LoopKind.SLOW: 0}
        self._errors: Dict[LoopKind, int] = {LoopKind.FAST: 0, LoopKind.SLOW: 0}
        self._last_wifi_count = 0

        self._on_capture: Optional[Callable[[CaptureUpdate], None]] = None

    def set_capture_callback(self, callback: Callable[[CaptureUpdate], None]) -> None:
        """Set callback invoked after each record is appended."""
        self._on_capture = callback

    async def start(self) -> None:
        """Start both loops. Does nothing if already running."""
        if self.state.running:
            return

        self.state.start()
        self._tasks = [
            asyncio.create_task(self.run_fast_loop(), name="fast-loop"),
            asyncio.create_task(self.run_slow_loop(), name="slow-loop"),
        ]
        logger.info("Scan loops started")

    async def stop(self) -> None:
        """Stop both loops and wait for them to finish."""
        self.state.stop()

        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        logger.info("Scan loops stopped")

    @property
    def is_running(self) -> bool:
        return self.state.running

    def get_status(self) -> dict:
        return {
            "state": self.state.state.value,
            "fast_iterations": self._iterations[LoopKind.FAST],
            "slow_iterations": self._iterations[LoopKind.SLOW],
            "fast_errors": self._errors[LoopKind.FAST],
            "slow_errors": self._errors[LoopKind.SLOW],
            "last_wifi_count": self._last_wifi_count,
        }

    async def run_fast_loop(self) -> None:
        """Location, bluetooth window and magnetometer every ~10s."""
        while self.state.running:
            await self._guarded(LoopKind.FAST, self.fast_iteration)
            await asyncio.sleep(self.schedule.fast_delay_sec)

    async def run_slow_loop(self) -> None:
        """Location, wifi scan and cell info every ~30s."""
        while self.state.running:
            await self._guarded(LoopKind.SLOW, self.slow_iteration)
            await asyncio.sleep(self.schedule.slow_delay_sec)

    async def fast_iteration(self) -> ScanRecord:
        timestamp_ms = self._clock()

        location = await self.bridge.get_location()
        devices = await self.bridge.scan_bluetooth()
        magnetometer = await self.bridge.get_magnetometer()

        values = AcquiredValues(
            location=location,
            bluetooth_devices=devices,
            magnetometer=magnetometer,
        )
        record = assemble_record(LoopKind.FAST, values, timestamp_ms, self.audio_filename)
        await self._emit(LoopKind.FAST, record)
        return record

    async def slow_iteration(self) -> ScanRecord:
        timestamp_ms = self._clock()

        location = await self.bridge.get_location()
        networks = await self.bridge.scan_wifi()
        self._last_wifi_count = len(networks)
        cells = await self.bridge.get_cell_info()

        values = AcquiredValues(location=location, wifi_networks=networks, cell_towers=cells)
        record = assemble_record(LoopKind.SLOW, values, timestamp_ms, self.audio_filename)
        await self._emit(LoopKind.SLOW, record)
        return record

    async def _guarded(self, loop: LoopKind, iteration: Callable) -> None:
        try:
            await iteration()
        except Exception as e:
            self._errors[loop] += 1
            logger.error(f"{loop.value} loop iteration failed: {e}", exc_info=True)

    async def _emit(self, loop: LoopKind, record: ScanRecord) -> None:
        await self.writer.append(record)
        self._iterations[loop] += 1

        logger.debug(
            f"{loop.value} record: wifi={len(record.wifi_networks)} "
            f"bt={len(record.bluetooth_devices)} cells={len(record.cell_towers)} "
            f"location={'yes' if record.location else 'no'}"
        )

        if self._on_capture:
            update = CaptureUpdate(record.readable_time, self._last_wifi_count)
            try:
                self._on_capture(update)
            except Exception as e:
                logger.warning(f"Capture callback failed: {e}")
