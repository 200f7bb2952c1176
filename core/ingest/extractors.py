"""
Text extractors for binary document formats.

Extraction discards styling: the result is best-effort plain text, one
line per paragraph, table rows as tab-separated cells, in document order.
"""

import io
import logging
from typing import List, Protocol, runtime_checkable

from core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


@runtime_checkable
class TextExtractor(Protocol):
    """Turns document bytes into plain text or raises ExtractionError."""

    def extract(self, data: bytes) -> str: ...


class DocxTextExtractor:
    """
    Extract raw text from a .docx package using python-docx.

    Usage:
        text = DocxTextExtractor().extract(path.read_bytes())
    """

    def extract(self, data: bytes) -> str:
        """
        Extract plain text.

        Args:
            data: Raw .docx bytes

        Returns:
            Document text, paragraphs separated by newlines

        Raises:
            ExtractionError: If the bytes are not a readable .docx package
        """
        from docx import Document
        from docx.table import Table

        if not data:
            raise ExtractionError("Failed to extract document content: file is empty.")

        try:
            doc = Document(io.BytesIO(data))
        except Exception as e:
            # BadZipFile, PackageNotFoundError, KeyError on missing parts...
            logger.warning("Cannot open .docx package: %s", e)
            raise ExtractionError() from e

        try:
            lines: List[str] = []
            for block in doc.iter_inner_content():
                if isinstance(block, Table):
                    lines.extend(self._table_lines(block))
                else:
                    lines.append(block.text)
        except Exception as e:
            logger.warning("Unsupported .docx structure: %s", e)
            raise ExtractionError() from e

        text = "\n".join(lines)
        logger.info("Extracted %d paragraphs (%d chars) from .docx", len(lines), len(text))
        return text

    def _table_lines(self, table) -> List[str]:
        lines = []
        for row in table.rows:
            cells = []
            for cell in row.cells:
                # Merged cells repeat; keep the first occurrence
                if cells and cells[-1][0] is cell._tc:
                    continue
                cells.append((cell._tc, cell.text))
            lines.append("\t".join(text for _, text in cells))
        return lines
