"""
vpdf Custom Exceptions

Every failure the user can trigger maps to exactly one of these. Each
carries the notification it should surface as.
"""

from typing import Optional


class VpdfError(Exception):
    """Base exception for vpdf"""
    kind = "error"
    severity = "error"
    duration_ms = 5000
    default_message = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnsupportedFormat(VpdfError):
    """Uploaded file extension is not on the allow-list"""
    kind = "unsupported_format"
    duration_ms = 7000
    default_message = "Invalid file type. Please upload a .txt, .md, or .docx file."

    def __init__(self, extension: str = "", message: Optional[str] = None):
        self.extension = extension
        super().__init__(message)


class IoError(VpdfError):
    """Reading an uploaded file failed"""
    kind = "io_error"
    default_message = "Failed to read the uploaded file."


class ExtractionError(VpdfError):
    """Binary document could not be parsed into text"""
    kind = "extraction_error"
    default_message = "Failed to extract document content."


class RenderTargetMissing(VpdfError):
    """No rendered tree to paginate"""
    kind = "render_target_missing"
    default_message = "An error occurred during conversion."


class RenderWriteError(VpdfError):
    """PDF writer failed while emitting pages"""
    kind = "render_write_error"
    default_message = "An error occurred during conversion."


class EmptyContent(VpdfError):
    """Convert requested with no content"""
    kind = "empty_content"
    severity = "warning"
    default_message = "There's no content to convert."
