"""
RichTextSurface protocol - the contract every editor backend must satisfy.

The core never talks to a concrete editor. A browser editor, a headless
test double and HtmlSurface below are interchangeable.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .markup import html_to_text


@runtime_checkable
class RichTextSurface(Protocol):
    """Minimal editor interface: live markup, live text, content replacement."""

    def get_markup(self) -> str: ...
    def get_plain_text(self) -> str: ...
    def set_content(self, html: str) -> None: ...


class HtmlSurface:
    """
    In-process editor surface.

    Holds the markup as the editor would render it and derives the plain
    text the way a browser computes innerText for the supported subset.
    """

    def __init__(self, html: str = ""):
        self._markup = html or ""

    def get_markup(self) -> str:
        return self._markup

    def get_plain_text(self) -> str:
        return html_to_text(self._markup)

    def set_content(self, html: str) -> None:
        self._markup = html or ""

    def __repr__(self) -> str:
        preview = self._markup[:40] + ("..." if len(self._markup) > 40 else "")
        return f"HtmlSurface({preview!r})"


class SnapshotSurface:
    """
    Surface reporting a client's already-computed markup and text.

    The HTTP layer receives both values from the browser editor on blur;
    this wraps them so the same dirty-formatting check applies.
    """

    def __init__(self, markup: str, text: str):
        self._markup = markup or ""
        self._text = text if text is not None else html_to_text(self._markup)

    def get_markup(self) -> str:
        return self._markup

    def get_plain_text(self) -> str:
        return self._text

    def set_content(self, html: str) -> None:
        self._markup = html or ""
        self._text = html_to_text(self._markup)
