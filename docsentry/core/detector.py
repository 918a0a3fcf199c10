"""SensitiveDataDetector — pattern matching engine for the DocSentry pipeline.

:class:`SensitiveDataDetector` runs every rule of the pattern registry against
extracted text and returns a Match Set: a mapping from category name to the
substrings that matched, in order of occurrence.

**Design notes**

* All regex patterns are pre-compiled by the pattern library; no per-scan
  compilation occurs.
* Rules are independent.  Overlapping matches from different categories are
  all reported and no rule suppresses another.
* Duplicates are preserved: a value that appears twice is reported twice.
* A category key is present only when it has at least one match, so an
  empty mapping means the text is clean.
* The detector is stateless after construction.

Usage::

    from docsentry.core.detector import SensitiveDataDetector

    detector = SensitiveDataDetector()
    result = detector.scan("contact: a@b.com")
    print(result.matches)   # {'email': ['a@b.com']}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from docsentry.core.patterns.sensitive_patterns import PatternEntry, load_patterns
from docsentry.core.scan_result import MatchSet, ScanResult

logger = logging.getLogger(__name__)


class SensitiveDataDetector:
    """Stateless sensitive-data scanning engine.

    Args:
        patterns: Explicit list of :class:`PatternEntry` objects.  When
            ``None``, the built-in registry is used.
        custom_patterns_path: Path to a JSON custom-patterns file merged with
            the built-in patterns.  Ignored when *patterns* is supplied.
    """

    def __init__(
        self,
        patterns: Sequence[PatternEntry] | None = None,
        custom_patterns_path: str | Path | None = None,
    ) -> None:
        if patterns is not None:
            self._patterns: list[PatternEntry] = list(patterns)
        else:
            self._patterns = load_patterns(custom_patterns_path)

        logger.debug(
            "SensitiveDataDetector initialised with %d pattern(s): %s",
            len(self._patterns),
            [p.name for p in self._patterns],
        )

    @property
    def categories(self) -> list[str]:
        return [p.name for p in self._patterns]

    def detect(self, text: str) -> MatchSet:
        """Run all patterns against *text* and return the Match Set.

        Args:
            text: Extracted plain text.  An empty string yields ``{}``.

        Returns:
            Mapping of category name to matched substrings.  Only categories
            with at least one match appear.
        """
        matches: MatchSet = {}
        if not text:
            return matches

        for entry in self._patterns:
            found = entry.find_all(text)
            if found:
                matches.setdefault(entry.name, []).extend(found)

        return matches

    def scan(self, text: str, *, keep_text: bool = True) -> ScanResult:
        """Detect sensitive data in *text* and wrap the outcome.

        Args:
            text: Extracted plain text.
            keep_text: When ``True`` the text is attached to the result as
                ``extracted_text``.
        """
        matches = self.detect(text)
        if matches:
            logger.debug(
                "Detector matched %d categor(ies): %s",
                len(matches),
                sorted(matches),
            )
        return ScanResult(matches=matches, extracted_text=text if keep_text else None)
