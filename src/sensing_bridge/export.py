"""Archive the latest session and hand it to a share sink."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .archive import ARCHIVE_SUFFIX, ArchiveError, zip_folder
from .session import latest_session
from .sources import ShareSink

logger = logging.getLogger(__name__)

ZIP_MIME_TYPE = "application/zip"


@dataclass
class ExportOutcome:
    """Result of an export attempt, suitable for showing to a user."""

    ok: bool
    message: str
    archive: Optional[Path] = None

    @classmethod
    def nothing_to_export(cls, message: str) -> ExportOutcome:
        return cls(ok=False, message=message)


class DirectoryShareSink:
    """Share sink that copies archives into a local export directory."""

    def __init__(self, export_dir: Union[str, Path]) -> None:
        self.export_dir = Path(export_dir)

    def share(self, path: Path, mime_type: str) -> None:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        target = self.export_dir / path.name
        shutil.copy2(path, target)
        logger.info(f"Shared {path.name} ({mime_type}) to {target}")


class ExportCoordinator:
    """Selects the most recent session, archives it, and shares the archive."""

    def __init__(
        self,
        sessions_dir: Union[str, Path],
        share_sink: ShareSink,
        mime_type: str = ZIP_MIME_TYPE,
    ) -> None:
        self.sessions_dir = Path(sessions_dir)
        self.share_sink = share_sink
        self.mime_type = mime_type

    def export_last_session(self) -> ExportOutcome:
        """Archive the latest session next to it and share the archive."""
        if not self.sessions_dir.is_dir():
            logger.info(f"No sessions directory at {self.sessions_dir}")
            return ExportOutcome.nothing_to_export("No sessions to export")

        session_dir = latest_session(self.sessions_dir)
        if session_dir is None:
            logger.info(f"No session directories under {self.sessions_dir}")
            return ExportOutcome.nothing_to_export("No sessions found")

        zip_path = self.sessions_dir / f"{session_dir.name}{ARCHIVE_SUFFIX}"
        result = zip_folder(session_dir, zip_path)

        if isinstance(result, ArchiveError):
            return ExportOutcome(ok=False, message=f"Error compressing: {result.message}")

        try:
            self.share_sink.share(result.path, self.mime_type)
        except Exception as e:
            logger.error(f"Sharing {result.path.name} failed: {e}")
            return ExportOutcome(ok=False, message=f"Error sharing: {e}", archive=result.path)

        return ExportOutcome(ok=True, message=f"Exported {session_dir.name}", archive=result.path)
