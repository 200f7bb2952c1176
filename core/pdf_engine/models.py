"""
Data models for the PDF engine.
All models use dataclasses for simplicity.

Lengths inside a RenderTree are layout units (the editor's CSS pixels at
the layout width). Page and slice heights are PDF points, i.e. layout
units multiplied by the render scale.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Tuple
from enum import Enum


class BlockType(Enum):
    """Content block types"""
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    QUOTE = "quote"
    CODE = "code"
    IMAGE = "image"


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


# Share of the free width left of an aligned element
ALIGN_RATIO = {
    Alignment.LEFT: 0.0,
    Alignment.CENTER: 0.5,
    Alignment.RIGHT: 1.0,
    Alignment.JUSTIFY: 0.0,
}


@dataclass(frozen=True)
class InlineStyle:
    """Inline text formatting"""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    code: bool = False
    font_family: Optional[str] = None
    font_size: Optional[float] = None  # layout units; None = block default
    color: Optional[str] = None  # '#rrggbb'
    link: Optional[str] = None


@dataclass
class TextRun:
    """A run of text with consistent styling"""
    text: str
    style: InlineStyle = field(default_factory=InlineStyle)


@dataclass
class ImageData:
    """An embedded image (atomic for pagination)"""
    data: Optional[bytes]
    width: float   # layout units
    height: float  # layout units
    alt: str = ""


@dataclass
class ContentBlock:
    """Universal content block"""
    type: BlockType
    level: int = 1  # For headings: 1-6, for lists: nesting level
    runs: List[TextRun] = field(default_factory=list)
    alignment: Alignment = Alignment.LEFT
    list_marker: Optional[str] = None  # '•', '1.', ...
    image: Optional[ImageData] = None

    @property
    def text(self) -> str:
        if self.type == BlockType.IMAGE:
            return "￼"  # object replacement character
        return "".join(run.text for run in self.runs)


@dataclass
class LineBox:
    """A laid-out line inside a node"""
    top: float      # offset from node top
    height: float
    start: int      # content offsets covered by the line
    end: int
    width: float = 0.0  # text width, excluding the left indent

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class RenderNode:
    """
    A measured block of the render tree.

    ``start``/``end`` are offsets into the rendered text of the whole tree;
    consecutive nodes tile it without gaps. ``flowable`` is the ReportLab
    object that draws the node (None for test doubles); it is
    ``content_width`` wide (0 = the full node width) and placed inside
    the node according to ``alignment``.
    """
    index: int
    block_type: BlockType
    start: int
    end: int
    height: float
    width: float
    atomic: bool = False
    lines: List[LineBox] = field(default_factory=list)
    flowable: Any = None
    alignment: Alignment = Alignment.LEFT
    content_width: float = 0.0

    def breakpoints(self) -> List[Tuple[float, int]]:
        """Safe cut positions inside the node: (y offset, content offset)."""
        return [(line.bottom, line.end) for line in self.lines]

    def last_break_before(self, limit: float, after: float, eps: float = 1e-6) -> Optional[float]:
        """Largest safe cut y with after < y <= limit, or None."""
        best = None
        for y, _ in self.breakpoints():
            if after + eps < y <= limit + eps:
                best = y
        return best

    def offset_at(self, y: float, eps: float = 1e-6) -> int:
        """Content offset reached once everything above y is emitted."""
        if y >= self.height - eps:
            return self.end
        offset = self.start
        for line in self.lines:
            if line.bottom <= y + eps:
                offset = line.end
            else:
                break
        return offset


@dataclass
class RenderTree:
    """The laid-out document: nodes in document order."""
    width: float
    nodes: List[RenderNode] = field(default_factory=list)

    @property
    def length(self) -> int:
        return self.nodes[-1].end if self.nodes else 0

    @property
    def height(self) -> float:
        return sum(node.height for node in self.nodes)

    def walk(self) -> Iterator[RenderNode]:
        return iter(self.nodes)


@dataclass
class PageSlice:
    """
    A vertical window [top, bottom) of one node placed on a page.

    ``fit`` < 1 only for an atomic node taller than a page, shrunk to fit.
    """
    node: RenderNode
    top: float
    bottom: float
    start: int
    end: int
    scale: float
    fit: float = 1.0

    @property
    def layout_height(self) -> float:
        return self.bottom - self.top

    @property
    def height(self) -> float:
        """Height on the page in points."""
        return self.layout_height * self.scale * self.fit

    @property
    def draw_x(self) -> float:
        """
        Left edge of the node's flowable in the slice's drawing units.

        A shrunk slice keeps its alignment within the full layout width.
        """
        node = self.node
        drawn = node.content_width or node.width
        slack = node.width - drawn * self.fit
        return slack * ALIGN_RATIO[node.alignment] / self.fit

    @property
    def content_range(self) -> Tuple[int, int]:
        return (self.start, self.end)


@dataclass
class Page:
    """A 1-indexed output page"""
    number: int
    slices: List[PageSlice] = field(default_factory=list)

    @property
    def height(self) -> float:
        return sum(s.height for s in self.slices)

    @property
    def content_range(self) -> Tuple[int, int]:
        if not self.slices:
            return (0, 0)
        return (self.slices[0].start, self.slices[-1].end)
