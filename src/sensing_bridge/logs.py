"""Append-only NDJSON session log shared by both polling loops."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Iterator, Union

from .errors import TransientIOError
from .models import ScanRecord

logger = logging.getLogger(__name__)


class SessionLogWriter:
    """Mutex-guarded NDJSON writer, one record per line.

    Every append reopens the file, so a crash mid-write can corrupt at most
    the final line. The lock covers exactly one write and is never held
    across an await.
    """

    def __init__(self, log_path: Union[str, Path]) -> None:
        self.log_path = Path(log_path)
        self._lock = asyncio.Lock()
        self._written = 0
        self._failed = 0

    async def append(self, record: ScanRecord) -> bool:
        """Append ``record``; failures are logged and reported as False."""
        async with self._lock:
            try:
                self.write(record)
            except TransientIOError as e:
                self._failed += 1
                logger.error(f"Log write failed: {e}")
                return False

        self._written += 1
        logger.debug(f"Record {record.timestamp} saved to {self.log_path.name}")
        return True

    def write(self, record: ScanRecord) -> None:
        """Serialize and append one line. Callers must hold the lock."""
        try:
            line = json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            raise TransientIOError(f"{self.log_path}: {e}") from e

    @property
    def written(self) -> int:
        return self._written

    @property
    def failed(self) -> int:
        return self._failed

    def get_status(self) -> dict:
        return {
            "log_path": str(self.log_path),
            "written": self._written,
            "failed": self._failed,
        }


def read_records(log_path: Union[str, Path]) -> Iterator[ScanRecord]:
    """Iterate the records of a session log, skipping corrupt lines."""
    path = Path(log_path)
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield ScanRecord.from_dict(json.loads(line))
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning(f"Skipping corrupt line {line_no} in {path.name}: {e}")
