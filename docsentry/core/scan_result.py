"""Result types produced by the DocSentry scan pipeline.

A :class:`ScanResult` is created once per successfully extracted file and
is never mutated afterwards.  The corpus-level :class:`ScanReport` collects
per-file outcomes for a single run.

Usage::

    from docsentry.core.scan_result import ScanResult

    result = ScanResult(matches={"email": ["a@b.com"]}, extracted_text="...")
    assert result.has_sensitive_data
"""

from __future__ import annotations

from dataclasses import dataclass, field

#: Category name -> matched substrings in order of occurrence.
MatchSet = dict[str, list[str]]


@dataclass(frozen=True)
class ScanResult:
    """Detection outcome for one file.

    Attributes:
        matches: Match Set for the file.  A category key is present only if
            at least one match was found; duplicates are preserved.
        extracted_text: Text the detector ran over, kept for inspection.
            ``None`` when the caller chose not to retain it.
    """

    matches: MatchSet = field(default_factory=dict)
    extracted_text: str | None = None

    @property
    def has_sensitive_data(self) -> bool:
        return bool(self.matches)


@dataclass(frozen=True)
class AnalyzedFile:
    """A file that was extracted and scanned without error."""

    file_path: str
    result: ScanResult


@dataclass(frozen=True)
class FileError:
    """A file whose processing failed, with a human-readable message."""

    file_path: str
    error: str


@dataclass
class ScanReport:
    """Outcome of one :meth:`~docsentry.core.scanner.CorpusScanner.scan_all` run.

    Attributes:
        analyzed_files: Files processed successfully during this run, in
            processing order.
        errors: Files that failed during this run, in processing order.
        skipped: Number of files before the resume index that were not
            revisited because the checkpoint already covered them.
    """

    analyzed_files: list[AnalyzedFile] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)
    skipped: int = 0

    @property
    def processed(self) -> int:
        return len(self.analyzed_files) + len(self.errors)
