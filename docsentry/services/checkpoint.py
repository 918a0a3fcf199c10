"""CheckpointStore — persisted resume cursor for the corpus scanner.

The checkpoint is a single absolute path: the last file that finished
processing, successfully or not.  The scanner writes it once per file, so a
crash loses at most the outcome of the file that was in flight.

Read failures are never fatal: an unreadable checkpoint means a fresh start.
"""

from __future__ import annotations

import logging
from pathlib import Path

from docsentry.services.persistence import PersistenceError, write_text_atomic

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Read and write the ``last-processed.txt`` cursor.

    Args:
        path: Location of the checkpoint file.  Relative paths resolve
            against the working directory at construction time.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        """Return the checkpointed absolute path, or ``None``.

        ``None`` is returned when the file is absent, empty, or unreadable;
        read errors are logged.
        """
        if not self._path.exists():
            return None
        try:
            value = self._path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Error reading %s: %s", self._path.name, exc)
            return None
        return value or None

    def write(self, file_path: str | Path) -> bool:
        """Persist *file_path* as the last processed file.

        Returns:
            ``True`` when the checkpoint was written.  Failures are logged
            and reported as ``False``; they never raise.
        """
        try:
            write_text_atomic(self._path, str(file_path))
        except PersistenceError as exc:
            logger.error("Error writing to %s: %s", self._path.name, exc)
            return False
        return True

    def clear(self) -> None:
        """Remove the checkpoint so the next run starts from the beginning."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Error removing %s: %s", self._path.name, exc)
