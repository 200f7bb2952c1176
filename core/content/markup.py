"""
HTML helpers shared by the normalizer, the editor surface and the layout
engine.

- escape_html / text_to_html: the plain-text projection
- is_html: tag detection
- parse_fragment / serialize: a minimal element tree over html.parser
- html_to_text: the rendered-text view of markup (innerText semantics for
  the subset of HTML the editor produces)
"""

import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Dict, Iterator, List, Optional, Union

TAG_PATTERN = re.compile(r"<[^>]+>")
LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")
LINE_BREAK_MARKER = "<br>"

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})

BLOCK_ELEMENTS = frozenset({
    "address", "article", "aside", "blockquote", "div", "dl", "dd", "dt",
    "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
    "tr", "ul",
})

SKIPPED_ELEMENTS = frozenset({"script", "style", "head", "title", "template"})


def escape_html(text: str) -> str:
    """Escape the five HTML-significant characters. '&' goes first."""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def text_to_html(text: Optional[str]) -> str:
    """Plain-text projection: escaped text with explicit line-break markers."""
    if not text:
        return ""
    return LINE_BREAK_PATTERN.sub(LINE_BREAK_MARKER, escape_html(text))


def is_html(raw: Optional[str]) -> bool:
    """True when raw contains at least one angle-bracket tag."""
    return bool(raw) and TAG_PATTERN.search(raw) is not None


# ==================== Element tree ====================


@dataclass
class Element:
    """A parsed HTML element. Children are Elements or text strings."""
    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List[Union["Element", str]] = field(default_factory=list)

    @property
    def is_block(self) -> bool:
        return self.tag in BLOCK_ELEMENTS

    @property
    def is_void(self) -> bool:
        return self.tag in VOID_ELEMENTS

    @property
    def classes(self) -> List[str]:
        return self.attrs.get("class", "").split()

    def style(self) -> Dict[str, str]:
        """Parse the inline style attribute into a dict."""
        declarations = {}
        for part in self.attrs.get("style", "").split(";"):
            if ":" not in part:
                continue
            name, value = part.split(":", 1)
            name = name.strip().lower()
            if name:
                declarations[name] = value.strip()
        return declarations

    def set_style(self, name: str, value: Optional[str]):
        declarations = self.style()
        if value is None:
            declarations.pop(name, None)
        else:
            declarations[name] = value
        if declarations:
            self.attrs["style"] = "; ".join(f"{k}: {v}" for k, v in declarations.items()) + ";"
        else:
            self.attrs.pop("style", None)

    def iter(self) -> Iterator["Element"]:
        """Depth-first iteration over this element and its descendants."""
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter()

    def text(self) -> str:
        return html_to_text_tree(self)


class _TreeBuilder(HTMLParser):
    """Builds an Element tree; tolerant of unclosed and stray end tags."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = Element("#root")
        self._stack: List[Element] = [self.root]

    def handle_starttag(self, tag, attrs):
        element = Element(tag, {k: (v if v is not None else "") for k, v in attrs})
        # A new block closes an open paragraph, as browsers do
        if element.is_block and self._stack[-1].tag == "p":
            self._stack.pop()
        self._stack[-1].children.append(element)
        if not element.is_void:
            self._stack.append(element)

    def handle_startendtag(self, tag, attrs):
        element = Element(tag, {k: (v if v is not None else "") for k, v in attrs})
        self._stack[-1].children.append(element)

    def handle_endtag(self, tag):
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return
        # Stray end tag: ignored

    def handle_data(self, data):
        if not data:
            return
        siblings = self._stack[-1].children
        if siblings and isinstance(siblings[-1], str):
            siblings[-1] += data
        else:
            siblings.append(data)


def parse_fragment(markup: str) -> Element:
    """Parse an HTML fragment into an Element tree rooted at '#root'."""
    builder = _TreeBuilder()
    builder.feed(markup or "")
    builder.close()
    return builder.root


def _serialize_attrs(attrs: Dict[str, str]) -> str:
    parts = []
    for name, value in attrs.items():
        value = value.replace("&", "&amp;").replace('"', "&quot;")
        parts.append(f' {name}="{value}"')
    return "".join(parts)


def serialize(node: Union[Element, str]) -> str:
    """Serialize an Element tree back to markup. '#root' emits children only."""
    if isinstance(node, str):
        return escape_html(node)
    inner = "".join(serialize(child) for child in node.children)
    if node.tag == "#root":
        return inner
    if node.is_void:
        return f"<{node.tag}{_serialize_attrs(node.attrs)}>"
    return f"<{node.tag}{_serialize_attrs(node.attrs)}>{inner}</{node.tag}>"


# ==================== Rendered text ====================


class _TextCollector:
    def __init__(self):
        self.parts: List[str] = []

    def ends_with_newline(self) -> bool:
        for part in reversed(self.parts):
            if part:
                return part.endswith("\n")
        return True  # start of output counts as a line start

    def newline_if_needed(self):
        if not self.ends_with_newline():
            self.parts.append("\n")

    def walk(self, node: Union[Element, str]):
        if isinstance(node, str):
            self.parts.append(node)
            return
        if node.tag in SKIPPED_ELEMENTS:
            return
        if node.tag == "br":
            self.parts.append("\n")
            return
        if node.is_block:
            self.newline_if_needed()
        for child in node.children:
            self.walk(child)
        if node.is_block:
            self.newline_if_needed()


def html_to_text_tree(root: Element) -> str:
    collector = _TextCollector()
    collector.walk(root)
    text = "".join(collector.parts)
    # Trailing newline added by the last block is not part of the text
    if text.endswith("\n") and _ends_with_block(root):
        text = text[:-1]
    return text


def _ends_with_block(node: Element) -> bool:
    for child in reversed(node.children):
        if isinstance(child, str):
            if not child:
                continue
            return False
        if child.tag in SKIPPED_ELEMENTS:
            continue
        return child.is_block or _ends_with_block(child)
    return False


def html_to_text(markup: str) -> str:
    """Rendered text of markup: <br> and block boundaries become newlines."""
    if not markup:
        return ""
    return parse_fragment(markup).text()
