"""Collection service that owns one recording session at a time."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .ble.scanner import BleakRadioScanner
from .config import AppConfig, validate_config
from .errors import ForegroundUnavailableError
from .export import DirectoryShareSink, ExportCoordinator, ExportOutcome
from .logs import SessionLogWriter
from .scheduler import CaptureUpdate, ScanScheduler
from .sensor_bridge import SensorBridge, SensorSources
from .session import Session
from .sources import ForegroundGuard, NoopForegroundGuard, UnavailableRadioScanner

logger = logging.getLogger(__name__)


def build_sources(config: AppConfig) -> SensorSources:
    """Sources available on this host; only BLE discovery has a real backend."""
    if config.ble.enabled:
        radio = BleakRadioScanner(adapter=config.ble.adapter)
    else:
        radio = UnavailableRadioScanner()
    return SensorSources(radio=radio)


class CollectionService:
    """Main coordinator for a recording session."""

    def __init__(
        self,
        config: AppConfig,
        sources: Optional[SensorSources] = None,
        foreground: Optional[ForegroundGuard] = None,
    ) -> None:
        self.config = config
        self.sources = sources or build_sources(config)
        self.foreground = foreground or NoopForegroundGuard()
        self.bridge = SensorBridge(self.sources, config.timeouts)

        self.session: Optional[Session] = None
        self.writer: Optional[SessionLogWriter] = None
        self.scheduler: Optional[ScanScheduler] = None

        self._status_task: Optional[asyncio.Task] = None
        self._on_capture: Optional[Callable[[CaptureUpdate], None]] = None

    def set_capture_callback(self, callback: Callable[[CaptureUpdate], None]) -> None:
        """Set callback for capture updates (last capture time, wifi count)."""
        self._on_capture = callback

    @property
    def is_recording(self) -> bool:
        return self.scheduler is not None and self.scheduler.is_running

    async def start(self) -> Session:
        """Start a new session. Returns the current one if already recording."""
        if self.is_recording and self.session is not None:
            return self.session

        # No acquisition may run without the foreground guarantee.
        try:
            self.foreground.acquire()
        except Exception as e:
            logger.error(f"Foreground execution unavailable, aborting session: {e}")
            raise ForegroundUnavailableError(str(e)) from e

        self.session = Session.create(self.config.session)
        self.writer = SessionLogWriter(self.session.log_path)
        self.scheduler = ScanScheduler(
            self.bridge,
            self.writer,
            self.session.audio_path.name,
            schedule=self.config.schedule,
        )
        if self._on_capture:
            self.scheduler.set_capture_callback(self._on_capture)

        await self.scheduler.start()
        self._status_task = asyncio.create_task(self._status_loop())

        logger.info(f"Recording started: {self.session.name}")
        return self.session

    async def stop(self) -> None:
        """Stop recording; in-flight sensor calls are cancelled."""
        if self.scheduler is None:
            return

        await self.scheduler.stop()

        if self._status_task:
            self._status_task.cancel()
            try:
                await self._status_task
            except asyncio.CancelledError:
                pass
            self._status_task = None

        try:
            self.foreground.release()
        except Exception as e:
            logger.warning(f"Error releasing foreground guarantee: {e}")

        logger.info(f"Recording stopped: {self.get_status()}")
        self.scheduler = None

    def get_status(self) -> dict:
        status = {
            "session": self.session.name if self.session else None,
            "recording": self.is_recording,
        }
        if self.scheduler:
            status.update(self.scheduler.get_status())
        if self.writer:
            status.update(self.writer.get_status())
        return status

    async def _status_loop(self) -> None:
        """Periodic status reporting."""
        while self.is_recording:
            await asyncio.sleep(self.config.schedule.status_interval_sec)
            logger.info(f"Collector status: {self.get_status()}")


def export_latest(config: AppConfig) -> ExportOutcome:
    """Archive the newest session and copy it into the export directory."""
    coordinator = ExportCoordinator(
        config.session.sessions_dir,
        DirectoryShareSink(config.export.dir),
        mime_type=config.export.mime_type,
    )
    outcome = coordinator.export_last_session()
    if outcome.ok:
        logger.info(outcome.message)
    else:
        logger.warning(outcome.message)
    return outcome


async def run_service(config: AppConfig) -> None:
    """Run the collector with the given configuration until interrupted."""
    errors = validate_config(config)

    if errors:
        logger.error("Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return

    service = CollectionService(config)

    try:
        await service.start()

        while True:
            await asyncio.sleep(1.0)

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, stopping collector")
    finally:
        await service.stop()
