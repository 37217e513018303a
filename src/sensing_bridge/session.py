"""Session directory layout: root/<namespace>/Session_<timestamp>/."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .config import SessionConfig

logger = logging.getLogger(__name__)

SESSION_PREFIX = "Session_"
SESSION_TIME_FORMAT = "%Y%m%d_%H%M%S"


@dataclass
class Session:
    """One recording run: a directory holding the log and audio placeholder."""

    directory: Path
    log_path: Path
    audio_path: Path

    @property
    def name(self) -> str:
        return self.directory.name

    @classmethod
    def create(cls, config: SessionConfig, now: Optional[datetime] = None) -> Session:
        """Create a new timestamp-named session directory and its files.

        A session never reuses an existing directory: when the name is taken
        (two starts within one second), ``_1``, ``_2``... is appended.
        """
        stamp = (now or datetime.now()).strftime(SESSION_TIME_FORMAT)
        base_name = f"{SESSION_PREFIX}{stamp}"
        config.sessions_dir.mkdir(parents=True, exist_ok=True)

        directory = config.sessions_dir / base_name
        suffix = 0
        while True:
            try:
                directory.mkdir()
                break
            except FileExistsError:
                suffix += 1
                directory = config.sessions_dir / f"{base_name}_{suffix}"

        session = cls(
            directory=directory,
            log_path=directory / config.log_filename,
            audio_path=directory / config.audio_filename,
        )
        session.audio_path.touch(exist_ok=True)

        logger.info(f"Session created at {directory}")
        return session


def list_sessions(sessions_dir: Path) -> List[Path]:
    """Session directories under ``sessions_dir``, oldest modification first."""
    if not sessions_dir.is_dir():
        return []
    dirs = [p for p in sessions_dir.iterdir() if p.is_dir()]
    return sorted(dirs, key=lambda p: p.stat().st_mtime)


def latest_session(sessions_dir: Path) -> Optional[Path]:
    """The most recently modified session directory, if any."""
    sessions = list_sessions(sessions_dir)
    return sessions[-1] if sessions else None
