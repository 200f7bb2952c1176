"""
ContentModel - the owned document behind the editor.

Replaces the ambient global document of a browser editor: formatting
commands go through apply_format(), content changes are published to
subscribers, and the canonical content is only ever produced by the
normalizer.
"""

import logging
from typing import Callable, List, Optional

from .commands import apply_command
from .models import CanonicalContent
from .normalizer import ContentNormalizer
from .surface import HtmlSurface, RichTextSurface

logger = logging.getLogger(__name__)

ContentListener = Callable[[CanonicalContent], None]


class ContentModel:
    """
    Canonical content plus the surface that displays it.

    Usage:
        model = ContentModel()
        model.set_raw("hello")
        model.apply_format("bold")   # -> CanonicalContent('<b>hello</b>', rich)
    """

    def __init__(
        self,
        surface: Optional[RichTextSurface] = None,
        normalizer: Optional[ContentNormalizer] = None,
    ):
        self.surface: RichTextSurface = surface if surface is not None else HtmlSurface()
        self.normalizer = normalizer or ContentNormalizer()
        self._content = CanonicalContent.empty()
        self._listeners: List[ContentListener] = []

    @property
    def content(self) -> CanonicalContent:
        return self._content

    def subscribe(self, listener: ContentListener):
        """Register a callback invoked with every new canonical content."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: ContentListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, content: CanonicalContent) -> CanonicalContent:
        self._content = content
        for listener in list(self._listeners):
            listener(content)
        return content

    def replace(self, content: CanonicalContent) -> CanonicalContent:
        """Replace the document (never appends) and refresh the surface."""
        html = content.html
        if self.surface.get_markup() != html:
            self.surface.set_content(html)
        return self._publish(content)

    def set_raw(self, raw: Optional[str]) -> CanonicalContent:
        """Replace the document with editor output, classified by tag detection."""
        return self.replace(self.normalizer.normalize(raw))

    def set_plain(self, text: Optional[str]) -> CanonicalContent:
        """Replace the document with plain text (uploads)."""
        return self.replace(self.normalizer.normalize_plain(text))

    def finalize(self) -> CanonicalContent:
        """Editing finished (blur): recompute the format decision from the surface."""
        return self._publish(self.normalizer.finalize(self.surface))

    def apply_format(self, command: str, value: Optional[str] = None) -> CanonicalContent:
        """
        Apply a toolbar command to the whole document.

        Args:
            command: Command name, e.g. 'bold', 'fontSize', 'justifyCenter'
            value: Optional argument for the command

        Returns:
            Updated canonical content

        Raises:
            UnknownCommandError: If the command or value is not supported
        """
        markup = apply_command(self.surface.get_markup(), command, value)
        self.surface.set_content(markup)
        logger.debug("Applied format %s (value=%r)", command, value)
        return self.finalize()
