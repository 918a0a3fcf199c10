"""DocSentry core scanning components.

This package contains the pattern registry, document text extraction,
sensitive-data detection, and the resumable corpus scanner.
"""
