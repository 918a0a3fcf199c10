"""CorpusScanner — resumable, sequential scan of a local document corpus.

:class:`CorpusScanner` drives every file under the corpus root through the
pipeline:

1. **enumerate** — list regular files recursively, skip excluded extensions,
   sort the relative paths ascending.  This order is the authoritative
   processing order and the basis for resumption.
2. **resume**    — if the checkpoint names an enumerated file, start right
   after it; otherwise start at the beginning.
3. **per file**  — validate the path stays inside the corpus root, extract
   text, detect sensitive data, append a finding when anything matched.
4. **record**    — on any per-file failure append an error entry instead.
   Either way the checkpoint is advanced to this file before the next one
   starts, so a failed file is not retried by a later resumed run.

Files are processed strictly one at a time; each extraction is awaited before
the next file begins.  Every file runs inside an OpenTelemetry span
(``docsentry.scan_file``) under a run-level span (``docsentry.scan``).

Usage::

    from docsentry.core.scanner import CorpusScanner

    scanner = CorpusScanner.from_settings()
    report = await scanner.scan_all()
    print(len(report.analyzed_files), len(report.errors))
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from docsentry.config import ConfigurationError, Settings, get_settings
from docsentry.core.detector import SensitiveDataDetector
from docsentry.core.document_extractor import DocumentExtractor
from docsentry.core.scan_result import AnalyzedFile, FileError, ScanReport, ScanResult
from docsentry.services.checkpoint import CheckpointStore
from docsentry.services.result_store import ResultStore

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("docsentry.scanner")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class PathValidationError(Exception):
    """Raised when a scan target resolves outside the corpus root."""


# ---------------------------------------------------------------------------
# Corpus enumeration
# ---------------------------------------------------------------------------


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def collect_files(root: str | Path, excluded_extensions: Iterable[str] = ()) -> list[str]:
    """Return the sorted relative paths of all regular files under *root*.

    Directories are descended into but never listed.  Files whose
    lower-cased extension is in *excluded_extensions* are left out entirely.

    Raises:
        OSError: If *root* or any directory beneath it cannot be listed.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"Corpus root {root_path} is not a directory")

    excluded = {ext.lower() for ext in excluded_extensions}
    files: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root_path, onerror=_raise_walk_error):
        for name in filenames:
            full = os.path.join(dirpath, name)
            if not os.path.isfile(full):
                continue
            if os.path.splitext(name)[1].lower() in excluded:
                continue
            files.append(os.path.relpath(full, root_path))

    files.sort()
    return files


# ---------------------------------------------------------------------------
# CorpusScanner
# ---------------------------------------------------------------------------


class CorpusScanner:
    """Sequential corpus scanner with checkpoint-based resumption.

    All collaborators are injected so tests can substitute fakes for the
    OCR and document libraries.

    Args:
        local_dir: Corpus root directory.  Required.
        extractor: Text extractor used for every file.
        detector: Sensitive-data detector.
        checkpoint: Resume cursor store.
        results: Findings and error logs.
        excluded_extensions: Extensions skipped by the corpus walk.
        keep_text: Attach extracted text to each :class:`ScanResult`.

    Raises:
        ConfigurationError: If *local_dir* is empty.
    """

    def __init__(
        self,
        local_dir: str | Path,
        *,
        extractor: DocumentExtractor,
        detector: SensitiveDataDetector,
        checkpoint: CheckpointStore,
        results: ResultStore,
        excluded_extensions: Iterable[str] = (".csv", ".xls"),
        keep_text: bool = True,
    ) -> None:
        if not local_dir:
            raise ConfigurationError("LOCAL_DIR is not defined in configuration")
        self._root = Path(local_dir).resolve()
        self._extractor = extractor
        self._detector = detector
        self._checkpoint = checkpoint
        self._results = results
        self._excluded_extensions = tuple(ext.lower() for ext in excluded_extensions)
        self._keep_text = keep_text

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CorpusScanner":
        """Build a scanner and its collaborators from process settings.

        Raises:
            ConfigurationError: If ``LOCAL_DIR`` is not configured.
        """
        settings = settings or get_settings()
        return cls(
            settings.local_dir,
            extractor=DocumentExtractor(
                max_workers=settings.extractor_max_workers,
                ocr_language=settings.ocr_language,
                tesseract_cmd=settings.tesseract_cmd,
            ),
            detector=SensitiveDataDetector(custom_patterns_path=settings.custom_patterns_path),
            checkpoint=CheckpointStore(settings.last_processed_file),
            results=ResultStore(settings.sensitive_data_file, settings.error_data_file),
            excluded_extensions=settings.excluded_extensions,
        )

    @property
    def root(self) -> Path:
        return self._root

    def close(self) -> None:
        """Release the extractor's thread pool."""
        self._extractor.shutdown()

    # ------------------------------------------------------------------
    # Per-file operation
    # ------------------------------------------------------------------

    def _full_path(self, relative_path: str) -> Path:
        return self._root / relative_path

    def resolve_target(self, relative_path: str) -> Path:
        """Return the resolved absolute path of *relative_path*.

        Raises:
            PathValidationError: If the path (after resolving ``..`` and
                symlinks) lies outside the corpus root.
        """
        resolved = self._full_path(relative_path).resolve()
        if not resolved.is_relative_to(self._root):
            raise PathValidationError(
                f"Invalid file path: {relative_path} is outside of allowed directory"
            )
        return resolved

    async def analyze_file(self, relative_path: str) -> ScanResult:
        """Validate, extract and scan one file; record a finding if any.

        Raises:
            PathValidationError: If the target escapes the corpus root.
            ExtractionError: If text extraction fails.
        """
        target = self.resolve_target(relative_path)
        text = await self._extractor.extract(target)
        result = self._detector.scan(text, keep_text=self._keep_text)

        if result.has_sensitive_data:
            logger.warning(
                "Sensitive data found in %s: %s",
                relative_path,
                {category: len(found) for category, found in result.matches.items()},
            )
            self._results.append_finding(str(self._full_path(relative_path)), result.matches)
        return result

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def _resume_index(self, absolute_paths: list[str]) -> int:
        last_processed = self._checkpoint.read()
        if last_processed is None:
            return 0
        try:
            return absolute_paths.index(last_processed) + 1
        except ValueError:
            logger.info(
                "Checkpoint %s is not in the corpus; starting from the beginning",
                last_processed,
            )
            return 0

    async def scan_all(self) -> ScanReport:
        """Scan the whole corpus, resuming after the last checkpointed file.

        Per-file failures are recorded and never abort the run.  Only an
        unreadable corpus root stops the run early, in which case the report
        holds no analyzed files and a single error naming the root.

        Returns:
            :class:`ScanReport` for the files processed by this run.
        """
        with tracer.start_as_current_span("docsentry.scan") as root_span:
            root_span.set_attribute("scan.root", str(self._root))

            try:
                relative_paths = collect_files(self._root, self._excluded_extensions)
            except OSError as exc:
                logger.error("Error collecting files from %s: %s", self._root, exc)
                root_span.record_exception(exc)
                root_span.set_status(Status(StatusCode.ERROR, str(exc)))
                return ScanReport(errors=[FileError(file_path=str(self._root), error=str(exc))])

            absolute_paths = [str(self._full_path(p)) for p in relative_paths]
            total = len(relative_paths)
            start_index = self._resume_index(absolute_paths)
            report = ScanReport(skipped=start_index)

            root_span.set_attribute("scan.total_files", total)
            root_span.set_attribute("scan.start_index", start_index)
            if start_index:
                logger.info("Resuming scan at file %d of %d", start_index + 1, total)

            for index in range(start_index, total):
                relative_path = relative_paths[index]
                logger.info("[%d/%d] %s", index + 1, total, relative_path)
                await self._process(relative_path, report)
                self._checkpoint.write(absolute_paths[index])

            root_span.set_attribute("scan.analyzed_files", len(report.analyzed_files))
            root_span.set_attribute("scan.errors", len(report.errors))

        logger.info(
            "Scan completed: %d files analyzed, %d errors",
            len(report.analyzed_files),
            len(report.errors),
        )
        return report

    async def _process(self, relative_path: str, report: ScanReport) -> None:
        """Run one file and append its outcome to *report*."""
        with tracer.start_as_current_span("docsentry.scan_file") as span:
            span.set_attribute("file.path", relative_path)
            try:
                result = await self.analyze_file(relative_path)
            except Exception as exc:
                message = str(exc) or type(exc).__name__
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, message))
                logger.error("Error analyzing file %s: %s", relative_path, message)
                self._results.append_error(str(self._full_path(relative_path)), message)
                report.errors.append(FileError(file_path=relative_path, error=message))
                return

            span.set_attribute("file.has_sensitive_data", result.has_sensitive_data)
            report.analyzed_files.append(AnalyzedFile(file_path=relative_path, result=result))
