"""
Ingest - uploads to raw text.

Usage:
    from core.ingest import FormatIngestor, UploadedSource

    text = await FormatIngestor().ingest(UploadedSource("a.docx", data))
"""

from .extractors import TextExtractor, DocxTextExtractor
from .ingestor import (
    FormatIngestor,
    UploadedSource,
    DEFAULT_ALLOWED_EXTENSIONS,
)


__all__ = [
    'TextExtractor',
    'DocxTextExtractor',
    'FormatIngestor',
    'UploadedSource',
    'DEFAULT_ALLOWED_EXTENSIONS',
]
