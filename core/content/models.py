"""
Data models for canonical content.
"""

from dataclasses import dataclass
from enum import Enum

from .markup import html_to_text, text_to_html


class Provenance(Enum):
    """Where the canonical string came from"""
    PLAIN_TEXT = "plain_text"
    RICH_HTML = "rich_html"


@dataclass(frozen=True)
class CanonicalContent:
    """
    The single authoritative representation of the document.

    ``content`` holds plain text verbatim, or rich markup produced by the
    trusted editor surface. ``html`` is what gets rendered: plain text is
    always projected (escaped, line breaks as <br>) and never stored
    escaped, so it is never escaped twice.
    """
    content: str = ""
    is_rich: bool = False

    @property
    def provenance(self) -> Provenance:
        return Provenance.RICH_HTML if self.is_rich else Provenance.PLAIN_TEXT

    @property
    def html(self) -> str:
        if self.is_rich:
            return self.content
        return text_to_html(self.content)

    @property
    def text(self) -> str:
        if self.is_rich:
            return html_to_text(self.content)
        return self.content

    @property
    def is_empty(self) -> bool:
        """Empty or whitespace-only"""
        return not self.content.strip()

    @classmethod
    def empty(cls) -> "CanonicalContent":
        return cls()

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "is_rich": self.is_rich,
            "html": self.html,
        }


@dataclass(frozen=True)
class FormatDecision:
    """Outcome of the dirty-formatting check."""
    has_formatting: bool
    content: CanonicalContent
