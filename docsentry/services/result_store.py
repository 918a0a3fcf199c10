"""ResultStore — persisted findings and error logs for the corpus scanner.

Two independent JSON-array logs are maintained:

* ``sensitive-files.json`` — ``[{"filePath": str, "matches": {category: [str]}}]``
* ``error-files.json``     — ``[{"filePath": str, "error": str}]``

Each append re-reads the current array, adds one entry, and rewrites the whole
document atomically (see :func:`~docsentry.services.persistence.write_text_atomic`).
This is quadratic over a run but keeps the on-disk format a single valid JSON
document after every write, which is what downstream readers consume.

Entries are never edited or removed.  A corrupt or non-array existing log is
logged and treated as empty before the new entry is appended.  Write failures
are logged and never propagate: losing one log entry must not stop the scan.

Usage::

    from docsentry.services.result_store import ResultStore

    store = ResultStore("sensitive-files.json", "error-files.json")
    store.append_finding("/data/a.txt", {"email": ["a@b.com"]})
    store.append_error("/data/c.jpg", "OCR failed")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from docsentry.core.scan_result import MatchSet
from docsentry.services.persistence import PersistenceError, write_text_atomic

logger = logging.getLogger(__name__)


class JsonArrayLog:
    """A JSON array document on disk, appended to one entry at a time.

    Args:
        path: Location of the log.  Relative paths resolve against the
            working directory at construction time.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> list[Any]:
        """Return the persisted entries.

        Raises:
            PersistenceError: If the file exists but cannot be read or does
                not hold a JSON array.
        """
        if not self._path.exists():
            return []
        try:
            entries = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PersistenceError(
                f"Error reading {self._path.name}: {exc}",
                path=self._path,
                original=exc,
            ) from exc
        if not isinstance(entries, list):
            raise PersistenceError(
                f"Error reading {self._path.name}: expected a JSON array, "
                f"got {type(entries).__name__}",
                path=self._path,
            )
        return entries

    def append(self, entry: dict[str, Any]) -> bool:
        """Append *entry* and rewrite the log.

        Returns:
            ``True`` when the entry reached disk, ``False`` on a logged
            write failure.
        """
        try:
            entries = self.read()
        except PersistenceError as exc:
            logger.error("%s", exc)
            entries = []

        entries.append(entry)
        try:
            write_text_atomic(self._path, json.dumps(entries, indent=2, ensure_ascii=False))
        except PersistenceError as exc:
            logger.error("Error writing to %s: %s", self._path.name, exc.original or exc)
            return False
        return True


class ResultStore:
    """Findings log plus error log.

    Args:
        sensitive_data_file: Path of the findings log.
        error_data_file: Path of the error log.
    """

    def __init__(self, sensitive_data_file: str | Path, error_data_file: str | Path) -> None:
        self._findings = JsonArrayLog(sensitive_data_file)
        self._errors = JsonArrayLog(error_data_file)

    @property
    def findings_path(self) -> Path:
        return self._findings.path

    @property
    def errors_path(self) -> Path:
        return self._errors.path

    def append_finding(self, file_path: str, matches: MatchSet) -> bool:
        """Record that *file_path* contains sensitive data."""
        return self._findings.append({"filePath": file_path, "matches": matches})

    def append_error(self, file_path: str, message: str) -> bool:
        """Record that processing *file_path* failed with *message*."""
        written = self._errors.append({"filePath": file_path, "error": message})
        if written:
            logger.debug("Saved error for %s to %s: %s", file_path, self._errors.path.name, message)
        return written

    def read_findings(self) -> list[dict[str, Any]]:
        """Return the findings log, or ``[]`` when absent or unreadable."""
        return self._safe_read(self._findings)

    def read_errors(self) -> list[dict[str, Any]]:
        """Return the error log, or ``[]`` when absent or unreadable."""
        return self._safe_read(self._errors)

    @staticmethod
    def _safe_read(log: JsonArrayLog) -> list[dict[str, Any]]:
        try:
            return log.read()
        except PersistenceError as exc:
            logger.error("%s", exc)
            return []
