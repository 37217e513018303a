"""Configuration management for the sensing bridge."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import yaml

from .errors import ConfigError


@dataclass
class SessionConfig:
    """Where sessions live and what each one contains."""

    root_dir: str = "./sessions"
    namespace: str = "RecorderAI"
    log_filename: str = "scan_log.jsonl"
    audio_filename: str = "audio_raw.pcm"

    @property
    def sessions_dir(self) -> Path:
        return Path(self.root_dir) / self.namespace


@dataclass
class ScheduleConfig:
    """Inter-iteration delays for the two polling loops."""

    fast_delay_sec: float = 6.0  # ~10s net period
    slow_delay_sec: float = 25.0  # ~30s net period
    status_interval_sec: float = 30.0


@dataclass
class TimeoutConfig:
    """Per-source safety timers for bridge calls."""

    location_sec: float = 2.0
    wifi_sec: float = 5.0
    bluetooth_window_sec: float = 4.0
    magnetometer_sec: float = 1.0
    cell_sec: Optional[float] = None  # None waits for the callback


@dataclass
class BleConfig:
    """Configuration for the Bluetooth LE discovery adapter."""

    enabled: bool = True
    adapter: str = "hci0"


@dataclass
class ExportConfig:
    """Configuration for session export."""

    dir: str = "./exports"
    mime_type: str = "application/zip"


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""

    session: SessionConfig = None
    schedule: ScheduleConfig = None
    timeouts: TimeoutConfig = None
    ble: BleConfig = None
    export: ExportConfig = None
    logging: LoggingConfig = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = SessionConfig()
        if self.schedule is None:
            self.schedule = ScheduleConfig()
        if self.timeouts is None:
            self.timeouts = TimeoutConfig()
        if self.ble is None:
            self.ble = BleConfig()
        if self.export is None:
            self.export = ExportConfig()
        if self.logging is None:
            self.logging = LoggingConfig()


_SECTIONS = {
    "session": SessionConfig,
    "schedule": ScheduleConfig,
    "timeouts": TimeoutConfig,
    "ble": BleConfig,
    "export": ExportConfig,
    "logging": LoggingConfig,
}


def load_config(config_path: str) -> AppConfig:
    """Load configuration from YAML file with environment variable support."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if not raw_config:
        raise ConfigError(f"Empty or invalid configuration file: {config_path}")

    _substitute_env_vars(raw_config)

    config = AppConfig()
    for name, section_cls in _SECTIONS.items():
        if name not in raw_config:
            continue
        section_data = raw_config[name] or {}
        try:
            setattr(config, name, section_cls(**section_data))
        except TypeError as e:
            raise ConfigError(f"Invalid '{name}' section: {e}") from e

    return config


def _substitute_env_vars(data: Any) -> None:
    """Recursively substitute environment variables in configuration data."""
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                data[key] = os.getenv(env_var, value)
            else:
                _substitute_env_vars(value)
    elif isinstance(data, list):
        for item in data:
            _substitute_env_vars(item)


def validate_config(config: AppConfig) -> List[str]:
    """Validate configuration and return list of validation errors."""
    errors = []

    if not config.session.namespace:
        errors.append("session.namespace is required")
    if not config.session.log_filename:
        errors.append("session.log_filename is required")
    if not config.session.audio_filename:
        errors.append("session.audio_filename is required")
    if config.session.log_filename == config.session.audio_filename:
        errors.append("session.log_filename and session.audio_filename must differ")

    for name in ("fast_delay_sec", "slow_delay_sec"):
        if float(getattr(config.schedule, name)) < 0:
            errors.append(f"schedule.{name} must not be negative")
    if float(config.schedule.status_interval_sec) <= 0:
        errors.append("schedule.status_interval_sec must be positive")

    for name in ("location_sec", "wifi_sec", "bluetooth_window_sec", "magnetometer_sec"):
        if float(getattr(config.timeouts, name)) <= 0:
            errors.append(f"timeouts.{name} must be positive")
    if config.timeouts.cell_sec is not None and float(config.timeouts.cell_sec) <= 0:
        errors.append("timeouts.cell_sec must be positive when set")

    if not config.export.mime_type:
        errors.append("export.mime_type is required")

    # Validate paths exist or can be created
    for path_name, path_str in [
        ("session.root_dir", config.session.root_dir),
        ("export.dir", config.export.dir),
    ]:
        path = Path(path_str)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Cannot create directory {path_name}: {path_str} - {e}")

    return errors
