"""Sensing Bridge - concurrent multi-source scan collector."""

__version__ = "0.1.0"

from .archive import ArchiveError, ArchiveSuccess, zip_folder
from .config import AppConfig, load_config
from .export import ExportCoordinator
from .logs import SessionLogWriter
from .models import ScanRecord
from .scheduler import ScanScheduler
from .sensor_bridge import SensorBridge, SensorSources
from .service import CollectionService

__all__ = [
    "AppConfig",
    "ArchiveError",
    "ArchiveSuccess",
    "CollectionService",
    "ExportCoordinator",
    "ScanRecord",
    "ScanScheduler",
    "SensorBridge",
    "SensorSources",
    "SessionLogWriter",
    "load_config",
    "zip_folder",
]
