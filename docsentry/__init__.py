"""DocSentry — resumable sensitive-data scanner for local document corpora."""

__version__ = "1.0.0"
