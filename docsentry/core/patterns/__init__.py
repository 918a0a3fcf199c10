"""Sensitive-data pattern library for DocSentry.

Provides the built-in pattern registry and custom pattern loading.
"""

from docsentry.core.patterns.sensitive_patterns import (
    BUILTIN_PATTERNS,
    PatternEntry,
    get_builtin_patterns,
    load_patterns,
)

__all__ = [
    "BUILTIN_PATTERNS",
    "PatternEntry",
    "get_builtin_patterns",
    "load_patterns",
]
