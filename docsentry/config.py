"""Application configuration via Pydantic Settings.

All configuration is driven by environment variables. A missing corpus root
(``LOCAL_DIR``) raises :class:`ConfigurationError` at startup so a
misconfigured process fails fast instead of scanning nothing.

Usage::

    from docsentry.config import get_settings

    settings = get_settings()
    print(settings.local_dir)

The ``get_settings`` function is cached with ``functools.lru_cache``. To override
settings in tests, set the relevant environment variables and call
``get_settings.cache_clear()`` before the next ``get_settings()``.
"""
from __future__ import annotations

import functools

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required configuration is absent or invalid.

    Fatal: the scan cannot start without a corpus root.
    """


class Settings(BaseSettings):
    """DocSentry process settings.

    Environment variables are read case-insensitively. A ``.env`` file in the
    working directory is loaded automatically when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Corpus
    local_dir: str = Field(
        ...,
        min_length=1,
        description="Root directory of the corpus to scan",
    )
    excluded_extensions: list[str] = Field(
        default_factory=lambda: [".csv", ".xls"],
        description="File extensions skipped entirely by the corpus walk",
    )

    # Persisted state (relative paths resolve against the working directory)
    sensitive_data_file: str = Field(default="sensitive-files.json")
    error_data_file: str = Field(default="error-files.json")
    last_processed_file: str = Field(default="last-processed.txt")

    # Detection
    custom_patterns_path: str | None = Field(
        default=None,
        description="Optional JSON file with extra pattern rules",
    )

    # Extraction
    ocr_language: str = Field(default="eng", description="Tesseract language code")
    tesseract_cmd: str | None = Field(
        default=None,
        description="Path to the tesseract binary when it is not on PATH",
    )
    extractor_max_workers: int = Field(
        default=1,
        ge=1,
        description="Thread pool size for blocking extraction calls",
    )

    # Process
    log_level: str = Field(default="INFO")
    scan_on_startup: bool = Field(default=True)

    @field_validator("excluded_extensions")
    @classmethod
    def normalise_extensions(cls, v: list[str]) -> list[str]:
        normalised = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalised.append(ext if ext.startswith(".") else f".{ext}")
        return normalised


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached process settings singleton.

    Raises:
        ConfigurationError: If ``LOCAL_DIR`` is missing or any value fails
            validation.
    """
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
