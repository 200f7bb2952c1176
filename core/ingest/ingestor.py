"""
Format Ingestor - turn an uploaded file into raw document text.

Plain text and markdown are read verbatim; .docx goes through a
TextExtractor. The ingestor never touches canonical content: callers
replace it only after ingest() returns, so a failure leaves it intact.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from core.exceptions import ExtractionError, IoError, UnsupportedFormat
from .extractors import DocxTextExtractor, TextExtractor

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_EXTENSIONS = (".txt", ".md", ".docx")
TEXT_EXTENSIONS = (".txt", ".md")
BINARY_EXTENSIONS = (".docx",)


@dataclass
class UploadedSource:
    """
    A user-selected file: name plus either its bytes or a path to read.

    Consumed once by the ingestor and never retained.
    """
    filename: str
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @property
    def extension(self) -> str:
        """Lowercase extension with leading dot ('' when there is none)."""
        return Path(self.filename or "").suffix.lower()

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise IoError(f"No data for {self.filename}")
        try:
            return Path(self.path).read_bytes()
        except OSError as e:
            raise IoError(f"Failed to read {self.filename}: {e.strerror or e}") from e


class FormatIngestor:
    """
    Validates and reads uploads.

    Usage:
        ingestor = FormatIngestor()
        text = await ingestor.ingest(UploadedSource("notes.txt", b"hello"))
    """

    def __init__(
        self,
        extractor: Optional[TextExtractor] = None,
        allowed_extensions: Optional[Iterable[str]] = None,
        max_size_bytes: Optional[int] = None,
        extract_timeout: Optional[float] = None,
    ):
        """
        Args:
            extractor: Binary document extractor (default: python-docx)
            allowed_extensions: Allow-list, e.g. ['.txt', '.md', '.docx']
            max_size_bytes: Reject larger uploads (None = unlimited)
            extract_timeout: Seconds to wait for the extractor (None = forever)
        """
        self.extractor = extractor or DocxTextExtractor()
        self.allowed_extensions = tuple(
            ext.lower() for ext in (allowed_extensions or DEFAULT_ALLOWED_EXTENSIONS)
        )
        self.max_size_bytes = max_size_bytes
        self.extract_timeout = extract_timeout

    def validate(self, source: UploadedSource) -> str:
        """
        Check the extension against the allow-list.

        Returns:
            The normalized extension

        Raises:
            UnsupportedFormat: If the extension is not allowed
        """
        ext = source.extension
        if ext not in self.allowed_extensions:
            logger.info("Rejected upload %s (extension %r)", source.filename, ext)
            raise UnsupportedFormat(ext)
        return ext

    def is_binary(self, source: UploadedSource) -> bool:
        return source.extension in BINARY_EXTENSIONS

    async def ingest(self, source: UploadedSource) -> str:
        """
        Read an upload into raw text.

        Args:
            source: The uploaded file

        Returns:
            Raw document text (not yet normalized)

        Raises:
            UnsupportedFormat: Extension not on the allow-list
            IoError: File could not be read or decoded
            ExtractionError: Binary document could not be parsed
        """
        ext = self.validate(source)
        loop = asyncio.get_running_loop()

        data = await loop.run_in_executor(None, source.read_bytes)
        if self.max_size_bytes is not None and len(data) > self.max_size_bytes:
            max_mb = self.max_size_bytes / (1024 * 1024)
            raise IoError(f"File too large (max {max_mb:g}MB)")

        if ext in BINARY_EXTENSIONS:
            return await self._extract(data, source.filename)
        return self._decode(data, source.filename)

    def _decode(self, data: bytes, filename: str) -> str:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.warning("Cannot decode %s as UTF-8: %s", filename, e)
            raise IoError(f"Failed to read {filename}: not a UTF-8 text file.") from e
        logger.info("Read %s (%d chars)", filename, len(text))
        return text

    async def _extract(self, data: bytes, filename: str) -> str:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(None, functools.partial(self.extractor.extract, data))
        try:
            if self.extract_timeout is not None:
                return await asyncio.wait_for(call, timeout=self.extract_timeout)
            return await call
        except ExtractionError:
            raise
        except asyncio.TimeoutError as e:
            logger.error("Extraction of %s timed out after %ss", filename, self.extract_timeout)
            raise ExtractionError("Document extraction timed out.") from e
        except Exception as e:
            logger.exception("Extractor failed on %s", filename)
            raise ExtractionError() from e
