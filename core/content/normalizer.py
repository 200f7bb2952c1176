"""
Content Normalizer - reconcile plain text and editor HTML into one
CanonicalContent.

Two entry points:

- normalize(raw): classify a raw string by tag detection
- finalize(surface): the dirty-formatting check run when editing ends.
  The live markup M is compared with the projection of the live text T;
  if they differ the user applied formatting and M is kept, otherwise T
  is kept verbatim.

Usage:
    normalizer = ContentNormalizer()
    content = normalizer.normalize("line1\\nline2")
    content = normalizer.finalize(surface)
"""

import logging
from typing import Optional

from .markup import is_html, text_to_html
from .models import CanonicalContent, FormatDecision
from .surface import RichTextSurface

logger = logging.getLogger(__name__)


class ContentNormalizer:
    """
    Converts raw strings and editor state into CanonicalContent.
    """

    def normalize(self, raw: Optional[str]) -> CanonicalContent:
        """
        Classify raw content.

        Args:
            raw: Plain text or markup from the trusted editor

        Returns:
            CanonicalContent with raw stored verbatim
        """
        raw = raw or ""
        return CanonicalContent(content=raw, is_rich=is_html(raw))

    def normalize_plain(self, text: Optional[str]) -> CanonicalContent:
        """
        Treat text as plain regardless of what it contains.

        Used for ingested files: tag-like text from an upload is escaped on
        render, never interpreted.
        """
        return CanonicalContent(content=text or "", is_rich=False)

    def decide(self, markup: str, text: str) -> FormatDecision:
        """
        Dirty-formatting check.

        Args:
            markup: Rendered markup of the editor (M)
            text: Rendered plain text of the editor (T)

        Returns:
            FormatDecision carrying the content to persist
        """
        markup = markup or ""
        text = text or ""
        has_formatting = markup != text_to_html(text)

        if has_formatting:
            content = CanonicalContent(content=markup, is_rich=True)
        else:
            content = CanonicalContent(content=text, is_rich=False)

        logger.debug(
            "Format decision: has_formatting=%s (%d chars markup, %d chars text)",
            has_formatting, len(markup), len(text),
        )
        return FormatDecision(has_formatting=has_formatting, content=content)

    def finalize(self, surface: RichTextSurface) -> CanonicalContent:
        """Run the dirty-formatting check against a live surface."""
        return self.decide(surface.get_markup(), surface.get_plain_text()).content


_default_normalizer = ContentNormalizer()


def normalize(raw: Optional[str]) -> CanonicalContent:
    """Module-level shortcut for ContentNormalizer().normalize()."""
    return _default_normalizer.normalize(raw)


def has_formatting(markup: str, text: str) -> bool:
    """True when markup carries more than the projection of text."""
    return _default_normalizer.decide(markup, text).has_formatting
