"""Built-in sensitive-data regex pattern library for DocSentry.

This module provides the fixed registry of pre-compiled regular expressions
applied to every extracted document.  Categories fall into three groups:

* Personal data: email addresses, phone numbers, card-like digit runs,
  driver's licence, passport, ID-number and date-of-birth references.
* Credentials: API-key-like tokens, password assignments, AWS access keys,
  JSON Web Tokens.
* Bare keywords ("registration", "nursing", "department", ...) that flag
  documents likely to carry personal records.  These are broad, low
  precision triggers and will match ordinary prose.

Rules are independent: each one is run over the full text and reports every
non-overlapping match.  Structural patterns (AWS key prefix, document-number
codes) are case-sensitive; keyword-led patterns ignore case.

Additional organisation-specific patterns can be supplied via a JSON config
file (see :func:`load_patterns`).

**JSON config format** (array of objects at the root):

.. code-block:: json

    [
        {
            "name": "employee_id",
            "pattern": "EMP-\\\\d{6}",
            "severity": "medium",
            "ignore_case": false
        }
    ]

Valid severity values: ``"low"``, ``"medium"``, ``"high"``, ``"critical"``.
``ignore_case`` is optional and defaults to ``true``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_VALID_SEVERITIES: frozenset[str] = frozenset({"low", "medium", "high", "critical"})

# ---------------------------------------------------------------------------
# Built-in raw pattern strings
# ---------------------------------------------------------------------------

_EMAIL = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"

# 13-16 digits, each optionally followed by spaces or hyphens.
_CREDIT_CARD = r"\b(?:\d[ -]*?){13,16}\b"

# 3-3-4 digit groups with optional "-" or "." separators.
_PHONE_NUMBER = r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"

_API_KEY = r"(?:api|key|token|secret)_?[a-zA-Z0-9]{16,}"

_PASSWORD = (
    r"(?:password|pwd|pass|secret)"
    r"[=:\"'\s]"
    r"[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{}|;:,.<>?]{8,}"
)

_AWS_KEY = r"AKIA[0-9A-Z]{16}"

# header.payload.signature, both JSON segments start with base64url("{\"").
_JWT_TOKEN = r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"

_DRIVER_LICENSE = r"(?:driver'?s\s*license|dl\s*number)\s*[:\s]*[A-Za-z0-9-]{6,}"

_PASSPORT = r"(?:passport\s*number|passport\s*no)\s*[:\s]*[A-Za-z0-9]{6,}"

_ID_NUMBER = r"(?:id\s*number|id\s*no|national\s*id)\s*[:\s]*[A-Za-z0-9-]{6,}"

_DATE_OF_BIRTH = r"(?:dob|date\s*of\s*birth)\s*[:\s]*\d{2}[-/]\d{2}[-/]\d{4}"

# Two upper-case letters followed by 6-9 digits (e.g. AB1234567).
_DOCUMENT_NUMBER = r"[A-Z]{2}\d{6,9}"


def _keyword(word: str) -> str:
    return rf"\b{word}\b"


# ---------------------------------------------------------------------------
# PatternEntry dataclass
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternEntry:
    """An immutable, pre-compiled sensitive-data pattern entry.

    Attributes:
        name: Category identifier used as the Match Set key
            (e.g. ``"email"``, ``"aws_key"``).
        regex: Pre-compiled regular expression.
        severity: Assessed severity of a positive match. One of ``"low"``,
            ``"medium"``, ``"high"``, ``"critical"``.
    """

    name: str
    regex: re.Pattern  # type: ignore[type-arg]
    severity: str

    def find_all(self, text: str) -> list[str]:
        """Return every matched substring in order of occurrence.

        Uses the whole match even when the regex defines capture groups.
        """
        return [m.group(0) for m in self.regex.finditer(text)]


# ---------------------------------------------------------------------------
# Built-in pattern catalogue
# ---------------------------------------------------------------------------

#: Ordered (name, raw_pattern, severity, flags) tuples.  Order only affects
#: the key order of a Match Set, never which rules fire.
_BUILTIN_DEFINITIONS: list[tuple[str, str, str, int]] = [
    ("email",           _EMAIL,           "medium",   0),
    ("credit_card",     _CREDIT_CARD,     "high",     0),
    ("phone_number",    _PHONE_NUMBER,    "medium",   0),
    ("api_key",         _API_KEY,         "critical", re.IGNORECASE),
    ("password",        _PASSWORD,        "critical", re.IGNORECASE),
    ("aws_key",         _AWS_KEY,         "critical", 0),
    ("jwt_token",       _JWT_TOKEN,       "high",     0),
    ("driver_license",  _DRIVER_LICENSE,  "high",     re.IGNORECASE),
    ("passport",        _PASSPORT,        "high",     re.IGNORECASE),
    ("id_number",       _ID_NUMBER,       "high",     re.IGNORECASE),
    ("date_of_birth",   _DATE_OF_BIRTH,   "medium",   re.IGNORECASE),
    ("document_number", _DOCUMENT_NUMBER, "medium",   0),
    ("registration",    _keyword("registration"), "low", re.IGNORECASE),
    ("nursing",         _keyword("nursing"),      "low", re.IGNORECASE),
    ("expiration",      _keyword("expiration"),   "low", re.IGNORECASE),
    ("facilities",      _keyword("facilities"),   "low", re.IGNORECASE),
    ("department",      _keyword("department"),   "low", re.IGNORECASE),
    ("health",          _keyword("health"),       "low", re.IGNORECASE),
]

# Compiled once at import; no compilation occurs at scan time.
_BUILTIN_PATTERNS: list[PatternEntry] = [
    PatternEntry(name=name, regex=re.compile(raw, flags), severity=severity)
    for name, raw, severity, flags in _BUILTIN_DEFINITIONS
]

BUILTIN_PATTERNS: tuple[PatternEntry, ...] = tuple(_BUILTIN_PATTERNS)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_patterns(
    custom_config_path: Optional[str | Path] = None,
) -> list[PatternEntry]:
    """Return the pre-compiled pattern registry.

    Always includes every built-in pattern.  When *custom_config_path* is
    provided, additional patterns from that JSON file are appended **after**
    the built-ins.  A custom entry sharing a built-in name is kept as a
    separate rule; the detector merges matches under the shared key.

    Malformed entries (missing keys, invalid severity, un-compilable regex)
    are skipped with a warning.

    Args:
        custom_config_path: Filesystem path to a JSON array of custom pattern
            objects, or ``None`` for built-ins only.

    Returns:
        Built-in patterns first, then custom patterns in file order.

    Note:
        This function never raises.  Filesystem and JSON errors are logged
        so that a bad config file does not prevent a scan from starting.
    """
    patterns: list[PatternEntry] = list(_BUILTIN_PATTERNS)

    if custom_config_path is None:
        return patterns

    path = Path(custom_config_path)

    if not path.exists():
        logger.warning(
            "Custom pattern config not found: %s, using built-in patterns only",
            path,
        )
        return patterns

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error(
            "Cannot load custom pattern config %s: %s, using built-in patterns only",
            path,
            exc,
        )
        return patterns

    if not isinstance(entries, list):
        logger.error(
            "Custom pattern config %s must contain a JSON array at the root "
            "(got %s), using built-in patterns only",
            path,
            type(entries).__name__,
        )
        return patterns

    loaded = 0
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Custom pattern entry at index %d is not an object, skipping", i)
            continue

        name = entry.get("name")
        raw_pattern = entry.get("pattern")
        severity = entry.get("severity", "medium")

        if not name or not isinstance(name, str):
            logger.warning("Custom pattern entry at index %d missing valid 'name', skipping", i)
            continue
        if not raw_pattern or not isinstance(raw_pattern, str):
            logger.warning("Custom pattern %r missing valid 'pattern', skipping", name)
            continue
        if severity not in _VALID_SEVERITIES:
            logger.warning(
                "Custom pattern %r has invalid severity %r (must be one of %s), skipping",
                name,
                severity,
                sorted(_VALID_SEVERITIES),
            )
            continue

        flags = re.IGNORECASE if entry.get("ignore_case", True) else 0
        try:
            compiled = re.compile(raw_pattern, flags)
        except re.error as exc:
            logger.error(
                "Custom pattern %r has invalid regex %r: %s, skipping",
                name,
                raw_pattern,
                exc,
            )
            continue

        patterns.append(PatternEntry(name=name, regex=compiled, severity=severity))
        loaded += 1

    logger.info(
        "Loaded %d custom pattern(s) from %s (total patterns: %d)",
        loaded,
        path,
        len(patterns),
    )
    return patterns


def get_builtin_patterns() -> list[PatternEntry]:
    """Return a fresh list of the built-in patterns without loading any config."""
    return list(_BUILTIN_PATTERNS)
