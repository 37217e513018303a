"""Error taxonomy for the sensing bridge."""

from __future__ import annotations


class SensingError(Exception):
    """Base class for all sensing bridge errors."""


class PermissionDenied(SensingError):
    """A permission required by a source is not granted."""


class SourceUnavailable(SensingError):
    """The radio or sensor behind a source is switched off or missing."""


class AcquisitionTimeout(SensingError):
    """The safety timer fired before the source produced a result."""


class TransientIOError(SensingError):
    """A single write or registration failed; the owning loop keeps going."""


class ForegroundUnavailableError(SensingError):
    """The foreground-execution guarantee could not be established."""


class ConfigError(SensingError, ValueError):
    """Configuration is missing or invalid."""
