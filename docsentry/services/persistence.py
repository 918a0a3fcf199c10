"""Shared file persistence helpers for the DocSentry state stores.

All state files are small UTF-8 documents rewritten in full on every update.
:func:`write_text_atomic` writes to a sibling temporary file and moves it into
place with :func:`os.replace`, so a crash mid-write leaves either the old or
the new document on disk, never a truncated one.

The replacement keeps the permissions of the file it replaces.  A new file gets
the mode a plain ``open()`` would give it (``0o666`` minus the umask) rather
than the ``0o600`` of :func:`tempfile.mkstemp`.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

_DEFAULT_FILE_MODE = 0o666


class PersistenceError(Exception):
    """Raised when a state file cannot be read or written.

    Attributes:
        path: The state file involved.
        original: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None
        self.original = original


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        # os.umask has no read-only form; set and restore.
        umask = os.umask(0)
        os.umask(umask)
        return _DEFAULT_FILE_MODE & ~umask


def write_text_atomic(path: Path, content: str) -> None:
    """Replace the contents of *path* with *content* (UTF-8).

    Raises:
        PersistenceError: If the temporary file cannot be written or moved.
    """
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        mode = _target_mode(path)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    except OSError as exc:
        raise PersistenceError(f"Cannot write {path.name}: {exc}", path=path, original=exc) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as exc:
        try:
            os.unlink(tmp_name)
        except OSError as cleanup_exc:
            logger.debug("Could not remove temporary file %s: %s", tmp_name, cleanup_exc)
        raise PersistenceError(f"Cannot write {path.name}: {exc}", path=path, original=exc) from exc
