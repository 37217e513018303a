"""Compress a session directory's flat files into one zip archive."""

from __future__ import annotations

import logging
import shutil
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"
BUFFER_SIZE = 8 * 1024


class ArchiveFailure(Enum):
    SOURCE_INVALID = "source_invalid"
    DESTINATION_UNWRITABLE = "destination_unwritable"
    IO_ERROR = "io_error"


@dataclass
class ArchiveSuccess:
    path: Path

    @property
    def ok(self) -> bool:
        return True


@dataclass
class ArchiveError:
    reason: ArchiveFailure
    message: str
    exception: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return False


ArchiveResult = Union[ArchiveSuccess, ArchiveError]


def zip_folder(source_dir: Union[str, Path], zip_path: Union[str, Path]) -> ArchiveResult:
    """
    Compress files directly under ``source_dir`` into ``zip_path``.

    Subdirectories and existing ``.zip`` files are skipped, so re-running
    never packs a previous archive. Entry names are bare file names.

    Returns:
        ArchiveSuccess with the archive path, or ArchiveError. A failed run
        never leaves a partial archive behind.
    """
    source = Path(source_dir)
    destination = Path(zip_path)

    if not source.is_dir():
        msg = f"Invalid source folder: {source}"
        logger.warning(msg)
        return ArchiveError(ArchiveFailure.SOURCE_INVALID, msg)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Unable to create parent directories for zip: {destination.parent}"
        logger.error(f"{msg}: {e}")
        return ArchiveError(ArchiveFailure.DESTINATION_UNWRITABLE, msg, e)

    try:
        entries = sorted(
            p for p in source.iterdir()
            if p.is_file() and p.suffix.lower() != ARCHIVE_SUFFIX
        )
    except OSError as e:
        msg = f"Could not list files in {source}"
        logger.warning(f"{msg}: {e}")
        return ArchiveError(ArchiveFailure.IO_ERROR, msg, e)

    try:
        with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entry in entries:
                info = zipfile.ZipInfo.from_file(entry, arcname=entry.name, strict_timestamps=False)
                info.compress_type = zipfile.ZIP_DEFLATED
                with entry.open("rb") as src, archive.open(info, "w") as dst:
                    shutil.copyfileobj(src, dst, BUFFER_SIZE)
    except OSError as e:
        _discard(destination)
        msg = "I/O error while zipping"
        logger.error(f"{msg} {source}: {e}")
        return ArchiveError(ArchiveFailure.IO_ERROR, msg, e)
    except Exception as e:
        _discard(destination)
        msg = "Unexpected error while zipping"
        logger.error(f"{msg} {source}: {e}")
        return ArchiveError(ArchiveFailure.IO_ERROR, msg, e)

    logger.info(f"Archived {len(entries)} file(s) from {source} to {destination}")
    return ArchiveSuccess(destination)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial archive {path}: {e}")
