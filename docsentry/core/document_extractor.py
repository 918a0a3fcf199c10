"""Multi-format document text extractor for the DocSentry scan pipeline.

:class:`DocumentExtractor` converts a file on disk into a plain-text string.
The format is chosen from the file extension (case-insensitive).

**Supported formats**

+-----------------+-------------------------+----------------------------------+
| Extension       | Library                 | Failure policy                   |
+=================+=========================+==================================+
| .pdf            | pdfminer.six            | log, return empty text           |
+-----------------+-------------------------+----------------------------------+
| .docx           | python-docx             | log, return empty text           |
+-----------------+-------------------------+----------------------------------+
| .jpg .jpeg .png | Pillow + pytesseract    | raise :class:`ExtractionError`   |
+-----------------+-------------------------+----------------------------------+
| .heic           | pillow-heif, then OCR   | raise :class:`ExtractionError`   |
+-----------------+-------------------------+----------------------------------+
| anything else   | strict UTF-8 decode     | raise :class:`ExtractionError`   |
+-----------------+-------------------------+----------------------------------+

PDF and DOCX failures usually mean an unsupported encoding variant, so the
file is scanned as empty and comes out clean.  OCR failures usually mean a
corrupt or unreadable image and are surfaced as errors.

**HEIC handling**

HEIC images are re-encoded to a temporary JPEG in the system temp directory
and then run through the same OCR path.  The temporary file is removed on
every exit path, including conversion and OCR failures.

**Thread-pool execution**

Format handlers are blocking (file I/O, parsing, the tesseract subprocess).
:meth:`DocumentExtractor.extract` runs them in a
:class:`concurrent.futures.ThreadPoolExecutor` so the event loop is never
blocked.  Callers await each extraction before starting the next one.

Usage::

    from docsentry.core.document_extractor import DocumentExtractor

    with DocumentExtractor() as extractor:
        text = await extractor.extract("/data/corpus/report.pdf")
"""

from __future__ import annotations

import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator

import docx as _docx_module
import pillow_heif as _pillow_heif
import pytesseract as _pytesseract
from docx.table import Table as _DocxTable
from pdfminer.high_level import extract_text as _pdfminer_extract_text
from PIL import Image

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PDF_EXTENSIONS: frozenset[str] = frozenset({".pdf"})
DOCX_EXTENSIONS: frozenset[str] = frozenset({".docx"})
IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png"})
HEIC_EXTENSIONS: frozenset[str] = frozenset({".heic"})

_DEFAULT_OCR_LANGUAGE = "eng"
# Pillow advises against JPEG quality above 95.
_HEIC_JPEG_QUALITY = 95

# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class ExtractionError(Exception):
    """Raised when a file's text cannot be extracted.

    Covers missing files, undecodable plain text, unreadable images, HEIC
    conversion failures, and OCR engine failures.  The scanner records it as
    an error for the file and moves on.

    Attributes:
        extension: Lower-cased extension of the file, if known.
        original: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        extension: str | None = None,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.extension = extension
        self.original = original

    def __str__(self) -> str:
        base = super().__str__()
        if self.original is not None:
            return f"{base}: {type(self.original).__name__}: {self.original}"
        return base


# ---------------------------------------------------------------------------
# Private helpers: synchronous format handlers
# ---------------------------------------------------------------------------


def _extension(path: str | Path) -> str:
    return Path(path).suffix.lower()


def _extract_txt(path: Path) -> str:
    """Read *path* as strict UTF-8 text.

    Raises:
        ExtractionError: If the file cannot be read or is not valid UTF-8.
    """
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ExtractionError(
            f"File {path} is not valid UTF-8 text",
            extension=_extension(path),
            original=exc,
        ) from exc
    except OSError as exc:
        raise ExtractionError(
            f"Cannot read file {path}",
            extension=_extension(path),
            original=exc,
        ) from exc


def _extract_pdf(path: Path) -> str:
    """Extract text from a PDF with pdfminer.six.

    Any parser failure is logged and degrades to an empty string.
    """
    try:
        text = _pdfminer_extract_text(str(path))
    except Exception as exc:  # noqa: BLE001
        logger.error("Error extracting text from PDF %s: %s", path, exc)
        return ""
    return (text or "").strip()


def _docx_lines(container) -> Iterator[str]:
    """Yield paragraph text from *container* in document order.

    Table cells are walked row by row, nested tables included.  A merged cell
    appears once per spanned grid position in python-docx, so each underlying
    cell is emitted only once.
    """
    for block in container.iter_inner_content():
        if isinstance(block, _DocxTable):
            seen = set()
            for row in block.rows:
                for cell in row.cells:
                    if cell._tc in seen:
                        continue
                    seen.add(cell._tc)
                    yield from _docx_lines(cell)
        else:
            yield block.text


def _extract_docx(path: Path) -> str:
    """Extract body paragraph and table cell text from a DOCX with python-docx.

    Any parser failure is logged and degrades to an empty string.
    """
    try:
        doc = _docx_module.Document(str(path))
        lines = list(_docx_lines(doc))
    except Exception as exc:  # noqa: BLE001
        logger.error("Error extracting text from DOCX %s: %s", path, exc)
        return ""
    return "\n".join(lines).strip()


def _validate_image(path: Path, *, source: Path) -> None:
    """Check that Pillow can identify and decode the image at *path*."""
    try:
        with Image.open(path) as img:
            img.verify()
    except Exception as exc:
        logger.error("Image validation failed for %s: %s", source, exc)
        raise ExtractionError(
            f"Image validation failed for {source}",
            extension=_extension(source),
            original=exc,
        ) from exc


def _ocr_image(path: Path, *, language: str, source: Path | None = None) -> str:
    """Validate *path* and run tesseract over it.

    The image handle is opened for the duration of one recognition call and
    closed on every exit path.  *source* names the corpus file in errors and
    log lines when *path* is an intermediate copy.

    Raises:
        ExtractionError: If validation or recognition fails.
    """
    source = source or path
    _validate_image(path, source=source)
    try:
        with Image.open(path) as img:
            img.load()
            text = _pytesseract.image_to_string(img, lang=language)
    except Exception as exc:
        logger.error("Tesseract processing failed for %s: %s", source, exc)
        raise ExtractionError(
            f"OCR failed for {source}",
            extension=_extension(source),
            original=exc,
        ) from exc
    return text.strip()


def _convert_heic_to_jpeg(source: Path, target: Path) -> None:
    """Decode the HEIC image at *source* and write it to *target* as JPEG."""
    try:
        heif_file = _pillow_heif.open_heif(str(source))
        image = heif_file.to_pillow()
        image.convert("RGB").save(target, format="JPEG", quality=_HEIC_JPEG_QUALITY)
    except Exception as exc:
        logger.error("HEIC conversion failed for %s: %s", source, exc)
        raise ExtractionError(
            f"HEIC conversion failed for {source}",
            extension=".heic",
            original=exc,
        ) from exc


def _extract_heic(path: Path, *, language: str) -> str:
    """Convert a HEIC image to a temporary JPEG and OCR it.

    The temporary JPEG is always removed, whether conversion or OCR
    succeeded or not.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f"{path.stem}_", suffix=".jpg")
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        _convert_heic_to_jpeg(path, tmp_path)
        return _ocr_image(tmp_path, language=language, source=path)
    finally:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to clean up temporary file %s: %s", tmp_path, exc)


def _dispatch_sync(path: str | Path, *, ocr_language: str = _DEFAULT_OCR_LANGUAGE) -> str:
    """Synchronously dispatch *path* to the handler for its extension.

    Args:
        path: Absolute path of the file to extract.
        ocr_language: Tesseract language code used for image formats.

    Returns:
        Extracted text.  Empty for PDF/DOCX files that could not be parsed.

    Raises:
        ExtractionError: If the file does not exist, or a raising format
            handler fails.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ExtractionError(f"File {file_path} does not exist")

    ext = _extension(file_path)
    if ext in PDF_EXTENSIONS:
        return _extract_pdf(file_path)
    if ext in IMAGE_EXTENSIONS:
        return _ocr_image(file_path, language=ocr_language)
    if ext in HEIC_EXTENSIONS:
        return _extract_heic(file_path, language=ocr_language)
    if ext in DOCX_EXTENSIONS:
        return _extract_docx(file_path)
    return _extract_txt(file_path)


# ---------------------------------------------------------------------------
# Public class
# ---------------------------------------------------------------------------


class DocumentExtractor:
    """Extension-dispatching text extractor with thread-pool execution.

    Args:
        max_workers: Number of threads in the pool.  Defaults to
            ``settings.extractor_max_workers``.
        executor: Pre-built executor to use (useful for testing/injection).
            When supplied, *max_workers* is ignored and the executor is never
            shut down by this instance.
        ocr_language: Tesseract language code.  Defaults to
            ``settings.ocr_language``.
        tesseract_cmd: Path to the tesseract binary.  Defaults to
            ``settings.tesseract_cmd``; when unset pytesseract looks on PATH.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        executor: ThreadPoolExecutor | None = None,
        ocr_language: str | None = None,
        tesseract_cmd: str | None = None,
    ) -> None:
        if max_workers is None or ocr_language is None:
            from docsentry.config import get_settings

            settings = get_settings()
            max_workers = max_workers or settings.extractor_max_workers
            ocr_language = ocr_language or settings.ocr_language
            tesseract_cmd = tesseract_cmd or settings.tesseract_cmd

        if executor is not None:
            self._executor = executor
            self._owns_executor = False
        else:
            self._executor = ThreadPoolExecutor(max_workers=max_workers)
            self._owns_executor = True

        self._ocr_language = ocr_language
        if tesseract_cmd:
            _pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    # ------------------------------------------------------------------
    # Context-manager support
    # ------------------------------------------------------------------

    def __enter__(self) -> "DocumentExtractor":
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()

    def shutdown(self, *, wait: bool = True) -> None:
        """Shut down the thread pool.

        Safe to call multiple times.  Does nothing if the executor was
        supplied externally.
        """
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Core extraction method
    # ------------------------------------------------------------------

    async def extract(self, path: str | Path) -> str:
        """Extract text from the file at *path* in the thread pool.

        Raises:
            ExtractionError: If the file is missing, or a raising format
                handler (plain text, images, HEIC) fails.
        """
        import asyncio
        import functools

        loop = asyncio.get_running_loop()
        logger.debug("Dispatching extraction to thread pool: path=%s", path)
        text: str = await loop.run_in_executor(
            self._executor,
            functools.partial(_dispatch_sync, path, ocr_language=self._ocr_language),
        )
        logger.debug("Extraction complete: %d chars extracted from %s", len(text), path)
        return text
