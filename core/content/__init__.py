"""
Content - canonical document representation.

This module provides:
- CanonicalContent: the authoritative content string and its provenance
- ContentNormalizer: plain text / HTML reconciliation and the
  dirty-formatting check
- RichTextSurface / HtmlSurface: the editor capability interface
- ContentModel: owned document with formatting commands

Usage:
    from core.content import ContentModel

    model = ContentModel()
    model.set_plain("line1\\nline2")
    model.content.html   # 'line1<br>line2'
"""

from .markup import escape_html, text_to_html, is_html, html_to_text
from .models import CanonicalContent, FormatDecision, Provenance
from .normalizer import ContentNormalizer, normalize, has_formatting
from .surface import RichTextSurface, HtmlSurface, SnapshotSurface
from .commands import apply_command, UnknownCommandError, SUPPORTED_COMMANDS
from .editor import ContentModel


__all__ = [
    # Markup helpers
    'escape_html',
    'text_to_html',
    'is_html',
    'html_to_text',

    # Models
    'CanonicalContent',
    'FormatDecision',
    'Provenance',

    # Normalizer
    'ContentNormalizer',
    'normalize',
    'has_formatting',

    # Surfaces
    'RichTextSurface',
    'HtmlSurface',
    'SnapshotSurface',

    # Formatting
    'apply_command',
    'UnknownCommandError',
    'SUPPORTED_COMMANDS',
    'ContentModel',
]
