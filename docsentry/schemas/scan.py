"""Pydantic response schemas for the DocSentry HTTP surface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from docsentry.core.scan_result import ScanReport


class ScanSummary(BaseModel):
    """Counts for the most recent startup scan."""

    completed: bool = Field(default=False, description="Whether a scan has finished")
    analyzed_files: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0, description="Files covered by the checkpoint")

    @classmethod
    def from_report(cls, report: ScanReport) -> "ScanSummary":
        return cls(
            completed=True,
            analyzed_files=len(report.analyzed_files),
            errors=len(report.errors),
            skipped=report.skipped,
        )
