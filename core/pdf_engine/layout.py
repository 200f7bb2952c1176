"""
Layout engine: canonical HTML -> content blocks -> measured render tree.

HtmlBlockParser flattens the editor's HTML into ContentBlocks (one per
paragraph, heading, list item or image; loose inline content becomes one
block per line). LayoutEngine turns every text block into a ReportLab
Paragraph wrapped at a fixed layout width, and every image into a
platypus Image, giving RenderNodes whose heights and line boxes are known
before pagination.

Content offsets: every node covers its text plus one terminating
separator, so consecutive nodes tile the rendered text stream.
"""

import base64
import io
import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from PIL import Image
from reportlab.lib import colors
from reportlab.platypus import Image as PlatypusImage
from reportlab.platypus import Paragraph

from core.content.markup import Element, SKIPPED_ELEMENTS, parse_fragment
from .flowables import ImagePlaceholder, ParagraphBlock
from .models import (
    Alignment,
    BlockType,
    ContentBlock,
    ImageData,
    InlineStyle,
    LineBox,
    RenderNode,
    RenderTree,
    TextRun,
)
from .style_builder import BODY_FONT_SIZE, BlockStyle, StyleBuilder


logger = logging.getLogger(__name__)


# <font size="1..7">
FONT_SIZE_MAP = {1: 10, 2: 13, 3: 16, 4: 18, 5: 24, 6: 32, 7: 48}

QUILL_SIZES = {'small': 12, 'large': 24, 'huge': 40}

CSS_SIZE_KEYWORDS = {
    'xx-small': 9, 'x-small': 10, 'small': 13, 'medium': 16,
    'large': 18, 'x-large': 24, 'xx-large': 32, 'xxx-large': 48,
}

HEADING_TAGS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 5, 'h6': 6}

INLINE_FLAGS = {
    'b': 'bold', 'strong': 'bold',
    'i': 'italic', 'em': 'italic', 'cite': 'italic',
    'u': 'underline', 'ins': 'underline',
    's': 'strikethrough', 'strike': 'strikethrough', 'del': 'strikethrough',
    'code': 'code', 'kbd': 'code', 'samp': 'code', 'tt': 'code',
}

ALIGNMENTS = {
    'left': Alignment.LEFT, 'start': Alignment.LEFT,
    'center': Alignment.CENTER,
    'right': Alignment.RIGHT, 'end': Alignment.RIGHT,
    'justify': Alignment.JUSTIFY,
}

# Elements that only group other blocks
CONTAINER_TAGS = frozenset({'table', 'section', 'article', 'main', 'header', 'footer',
                            'nav', 'aside', 'figure', 'dl'})

DATA_URI = re.compile(r'^data:image/[\w.+-]+;base64,(?P<data>.*)$', re.S | re.I)
CSS_LENGTH = re.compile(r'^([\d.]+)\s*(px|pt|em|rem|%)?$')
LEADING_SPACES = re.compile(r'^ +')
REPEATED_SPACES = re.compile(r'  +')

PLACEHOLDER_SIZE = 48.0
BULLET = '•'
TAB = '    '
NBSP = '&nbsp;'
# Paragraphs are wrapped whole; pagination cuts them afterwards
MAX_PARAGRAPH_HEIGHT = 1e9


# ==================== HTML -> blocks ====================


@dataclass
class _BlockContext:
    type: BlockType = BlockType.PARAGRAPH
    level: int = 1
    alignment: Alignment = Alignment.LEFT
    marker: Optional[str] = None
    preformatted: bool = False


@dataclass
class _ListState:
    ordered: bool
    counter: int = 0


def parse_color(value: Optional[str]) -> Optional[str]:
    """CSS color (name, #hex, rgb()) -> '#rrggbb', or None if unparseable."""
    if not value:
        return None
    try:
        color = colors.toColor(value.strip())
    except ValueError:
        return None
    return '#' + color.hexval()[2:].lower()


def parse_css_font_size(value: str, current: float, body: float = BODY_FONT_SIZE) -> Optional[float]:
    value = value.strip().lower()
    if value in CSS_SIZE_KEYWORDS:
        return float(CSS_SIZE_KEYWORDS[value])
    match = CSS_LENGTH.match(value)
    if not match:
        return None
    number = float(match.group(1))
    unit = match.group(2)
    if unit == 'pt':
        number = number * 4 / 3
    elif unit == 'em':
        number = number * current
    elif unit == 'rem':
        number = number * body
    elif unit == '%':
        number = number * current / 100
    return number if number > 0 else None


def _length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = CSS_LENGTH.match(value.strip().lower())
    if not match or match.group(2) in ('em', 'rem', '%'):
        return None
    number = float(match.group(1))
    if match.group(2) == 'pt':
        number = number * 4 / 3
    return number or None


class _BlockBuilder:
    """Single-use walker state for HtmlBlockParser."""

    def __init__(self, body_font_size: float):
        self.body_font_size = body_font_size
        self.blocks: List[ContentBlock] = []
        self._current: Optional[ContentBlock] = None
        self._contexts: List[_BlockContext] = [_BlockContext()]
        self._lists: List[_ListState] = []

    def build(self, root: Element) -> List[ContentBlock]:
        self._walk(root, InlineStyle())
        self._flush()
        return self.blocks

    # ---------- tree walk ----------

    def _walk(self, node: Element, style: InlineStyle):
        for child in node.children:
            if isinstance(child, str):
                self._text(child, style)
            else:
                self._element(child, style)

    def _element(self, el: Element, style: InlineStyle):
        tag = el.tag
        if tag in SKIPPED_ELEMENTS:
            return
        if tag == 'br':
            self._line_break(style)
            return
        if tag == 'img':
            self._image(el)
            return
        if tag == 'hr':
            self._flush()
            return
        if tag in ('ul', 'ol'):
            self._flush()
            self._lists.append(_ListState(ordered=(tag == 'ol')))
            self._walk(el, self._inline_style(el, style))
            self._lists.pop()
            return
        if el.is_block:
            self._block(el, style)
            return
        self._walk(el, self._inline_style(el, style))

    def _block(self, el: Element, style: InlineStyle):
        self._flush()
        self._contexts.append(self._context_for(el))
        emitted = len(self.blocks)

        self._walk(el, self._inline_style(el, style))
        self._flush()

        # An empty block still occupies one line
        if len(self.blocks) == emitted and el.tag not in CONTAINER_TAGS:
            self.blocks.append(self._new_block())
        self._contexts.pop()

    def _text(self, text: str, style: InlineStyle):
        ctx = self._contexts[-1]
        if ctx.preformatted:
            text = text.replace('\r\n', '\n').replace('\r', '\n')
        else:
            text = text.replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')
        text = text.replace('\t', TAB)

        if self._current is None:
            # Whitespace between block tags carries no content
            if not ctx.preformatted and not text.strip():
                return
            self._current = self._new_block()
        self._append(text, style)

    def _line_break(self, style: InlineStyle):
        if self._current is None:
            self._current = self._new_block()
        if len(self._contexts) == 1:
            # Loose content: every line is its own block
            self._flush()
        else:
            self._append('\n', style)

    def _image(self, el: Element):
        self._flush()
        self.blocks.append(ContentBlock(
            type=BlockType.IMAGE,
            alignment=self._contexts[-1].alignment,
            image=self._load_image(el),
        ))

    # ---------- block bookkeeping ----------

    def _new_block(self) -> ContentBlock:
        ctx = self._contexts[-1]
        block = ContentBlock(
            type=ctx.type,
            level=ctx.level,
            alignment=ctx.alignment,
            list_marker=ctx.marker,
        )
        # Only the first block of a list item carries its marker
        ctx.marker = None
        return block

    def _append(self, text: str, style: InlineStyle):
        runs = self._current.runs
        if runs and runs[-1].style == style:
            runs[-1].text += text
        else:
            runs.append(TextRun(text, style))

    def _flush(self):
        block = self._current
        if block is None:
            return
        self._current = None
        # A trailing line break inside a block does not start a new line
        if block.runs and block.runs[-1].text.endswith('\n'):
            last = block.runs[-1]
            last.text = last.text[:-1]
            if not last.text:
                block.runs.pop()
        self.blocks.append(block)

    def _context_for(self, el: Element) -> _BlockContext:
        parent = self._contexts[-1]
        tag = el.tag
        alignment = self._alignment(el) or parent.alignment

        if tag in HEADING_TAGS:
            return _BlockContext(BlockType.HEADING, HEADING_TAGS[tag], alignment)

        if tag == 'li':
            state = self._lists[-1] if self._lists else None
            kind = el.attrs.get('data-list')
            if kind in ('ordered', 'bullet'):
                ordered = kind == 'ordered'
            else:
                ordered = bool(state and state.ordered)
            if ordered:
                if state is None:
                    state = _ListState(ordered=True)
                state.counter += 1
                marker = f"{state.counter}."
            else:
                marker = BULLET
            level = max(len(self._lists), 1) + self._indent_level(el)
            return _BlockContext(BlockType.LIST_ITEM, level, alignment, marker=marker)

        if tag == 'blockquote':
            return _BlockContext(BlockType.QUOTE, parent.level, alignment)

        if tag == 'pre':
            return _BlockContext(BlockType.CODE, parent.level, alignment, preformatted=True)

        return _BlockContext(parent.type, parent.level, alignment, preformatted=parent.preformatted)

    def _alignment(self, el: Element) -> Optional[Alignment]:
        value = el.style().get('text-align') or el.attrs.get('align')
        if value and value.strip().lower() in ALIGNMENTS:
            return ALIGNMENTS[value.strip().lower()]
        for cls in el.classes:
            if cls.startswith('ql-align-') and cls[9:] in ALIGNMENTS:
                return ALIGNMENTS[cls[9:]]
        return None

    def _indent_level(self, el: Element) -> int:
        for cls in el.classes:
            if cls.startswith('ql-indent-') and cls[10:].isdigit():
                return int(cls[10:])
        return 0

    # ---------- inline styles ----------

    def _inline_style(self, el: Element, style: InlineStyle) -> InlineStyle:
        changes = {}
        current_size = style.font_size or self.body_font_size

        flag = INLINE_FLAGS.get(el.tag)
        if flag:
            changes[flag] = True

        if el.tag == 'a' and el.attrs.get('href'):
            changes['link'] = el.attrs['href']

        if el.tag == 'font':
            size = el.attrs.get('size', '').strip()
            if size.lstrip('+-').isdigit():
                level = int(size)
                if size[0] in '+-':
                    level = 3 + level
                changes['font_size'] = float(FONT_SIZE_MAP[min(max(level, 1), 7)])
            if el.attrs.get('face'):
                changes['font_family'] = el.attrs['face']
            color = parse_color(el.attrs.get('color'))
            if color:
                changes['color'] = color

        for cls in el.classes:
            if cls.startswith('ql-size-') and cls[8:] in QUILL_SIZES:
                changes['font_size'] = float(QUILL_SIZES[cls[8:]])
            elif cls.startswith('ql-font-'):
                changes['font_family'] = cls[8:]

        css = el.style()
        weight = css.get('font-weight', '').lower()
        if weight in ('bold', 'bolder') or (weight.isdigit() and int(weight) >= 600):
            changes['bold'] = True
        elif weight in ('normal', 'lighter') or weight.isdigit():
            changes['bold'] = False

        font_style = css.get('font-style', '').lower()
        if font_style in ('italic', 'oblique'):
            changes['italic'] = True
        elif font_style == 'normal':
            changes['italic'] = False

        decoration = (css.get('text-decoration') or css.get('text-decoration-line') or '').lower()
        if 'underline' in decoration:
            changes['underline'] = True
        if 'line-through' in decoration:
            changes['strikethrough'] = True

        if css.get('font-size'):
            size = parse_css_font_size(css['font-size'], current_size, self.body_font_size)
            if size:
                changes['font_size'] = size
        if css.get('font-family'):
            changes['font_family'] = css['font-family']
        color = parse_color(css.get('color'))
        if color:
            changes['color'] = color

        return replace(style, **changes) if changes else style

    # ---------- images ----------

    def _load_image(self, el: Element) -> ImageData:
        src = el.attrs.get('src', '')
        alt = el.attrs.get('alt', '')
        data = None
        width = height = None

        match = DATA_URI.match(src.strip())
        if match:
            try:
                data = base64.b64decode(re.sub(r'\s+', '', match.group('data')))
                with Image.open(io.BytesIO(data)) as img:
                    width, height = img.size
            except (ValueError, OSError) as e:
                logger.warning("Unreadable embedded image: %s", e)
                data = None
        elif src:
            logger.info("Skipping non-embedded image %s", src[:80])

        css = el.style()
        attr_w = _length(el.attrs.get('width') or css.get('width'))
        attr_h = _length(el.attrs.get('height') or css.get('height'))

        if width and height:
            if attr_w and attr_h:
                width, height = attr_w, attr_h
            elif attr_w:
                width, height = attr_w, height * attr_w / width
            elif attr_h:
                width, height = width * attr_h / height, attr_h
        else:
            width = attr_w or PLACEHOLDER_SIZE
            height = attr_h or PLACEHOLDER_SIZE

        return ImageData(data=data, width=float(width), height=float(height), alt=alt)


class HtmlBlockParser:
    """
    Flattens an HTML fragment into ContentBlocks.

    Usage:
        blocks = HtmlBlockParser().parse('line1<br>line2')
    """

    def __init__(self, body_font_size: float = BODY_FONT_SIZE):
        self.body_font_size = body_font_size

    def parse(self, markup: str) -> List[ContentBlock]:
        return _BlockBuilder(self.body_font_size).build(parse_fragment(markup or ''))


# ==================== blocks -> render tree ====================


def escape_text(text: str) -> str:
    """Escape text for ReportLab paragraph markup."""
    return (text
        .replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;'))


def preserve_spaces(text: str) -> str:
    """Keep leading and repeated spaces of preformatted text."""
    lines = []
    for line in text.split('\n'):
        line = LEADING_SPACES.sub(lambda m: NBSP * len(m.group()), line)
        line = REPEATED_SPACES.sub(lambda m: ' ' + NBSP * (len(m.group()) - 1), line)
        lines.append(line)
    return '\n'.join(lines)


def _line_metrics(line) -> Tuple[float, int]:
    """(unused width, characters) of one line of a wrapped Paragraph."""
    if line is None:
        return 0.0, 0
    if isinstance(line, tuple):
        # Single-font paragraph: (extra space, words)
        extra, words = line[0], line[1]
        return extra, sum(len(word) for word in words) + max(len(words) - 1, 0)
    words = getattr(line, 'words', None) or []
    return getattr(line, 'extraSpace', 0.0), sum(len(getattr(word, 'text', '')) for word in words)


class LayoutEngine:
    """
    Lays out canonical HTML at a fixed width.

    Text blocks become ReportLab Paragraphs wrapped at the layout width;
    their line boxes are the safe cut positions for pagination. Images
    become platypus Images.

    Usage:
        engine = LayoutEngine(layout_width=643.75)
        tree = engine.build(content.html)
    """

    def __init__(self, layout_width: float, style_builder: Optional[StyleBuilder] = None):
        if layout_width <= 0:
            raise ValueError(f"layout_width must be positive, got {layout_width}")
        self.layout_width = layout_width
        self.style_builder = style_builder or StyleBuilder()
        self.parser = HtmlBlockParser(self.style_builder.body_font_size)

    def build(self, markup: str) -> RenderTree:
        """Parse and lay out markup."""
        return self.layout(self.parser.parse(markup))

    def layout(self, blocks: List[ContentBlock]) -> RenderTree:
        tree = RenderTree(width=self.layout_width)
        offset = 0
        for index, block in enumerate(blocks):
            node = self.layout_block(block, index, offset)
            tree.nodes.append(node)
            offset = node.end
        logger.debug("Laid out %d blocks, height %.1f", len(tree.nodes), tree.height)
        return tree

    def layout_block(self, block: ContentBlock, index: int, start: int) -> RenderNode:
        if block.type == BlockType.IMAGE:
            return self._layout_image(block, index, start)
        return self._layout_text(block, index, start)

    def _layout_image(self, block: ContentBlock, index: int, start: int) -> RenderNode:
        image = block.image
        width = max(image.width, 1.0)
        height = max(image.height, 1.0)
        if width > self.layout_width:
            height = height * self.layout_width / width
            width = self.layout_width

        if image.data:
            flowable = PlatypusImage(io.BytesIO(image.data), width=width, height=height, mask='auto')
        else:
            flowable = ImagePlaceholder(width, height, image.alt)

        return RenderNode(
            index=index,
            block_type=BlockType.IMAGE,
            start=start,
            end=start + len(block.text) + 1,
            height=height,
            width=self.layout_width,
            atomic=True,
            flowable=flowable,
            alignment=block.alignment,
            content_width=width,
        )

    def _layout_text(self, block: ContentBlock, index: int, start: int) -> RenderNode:
        spec = self.style_builder.block_style(block)
        style = self.style_builder.paragraph_style(block)
        end = start + len(block.text) + 1

        paragraph = Paragraph(self.to_markup(block, spec), style, bulletText=block.list_marker)
        paragraph.wrap(self.layout_width, MAX_PARAGRAPH_HEIGHT)

        lines = self._line_boxes(paragraph, style, start, end, top=spec.space_before)
        # Whitespace-only text wraps to no lines but still takes one
        if not paragraph.height:
            paragraph.height = style.leading
        flowable = ParagraphBlock(
            paragraph,
            self.layout_width,
            space_before=spec.space_before,
            space_after=spec.space_after,
            quote=block.type == BlockType.QUOTE,
        )
        return RenderNode(
            index=index,
            block_type=block.type,
            start=start,
            end=end,
            height=flowable.height,
            width=self.layout_width,
            lines=lines,
            flowable=flowable,
            alignment=block.alignment,
        )

    def _line_boxes(self, paragraph: Paragraph, style, start: int, end: int, top: float) -> List[LineBox]:
        """
        One LineBox per wrapped line, in content offsets of the tree.

        Offsets advance by the characters on each line plus its break and
        are clamped to the node, whose last line always ends at ``end``.
        """
        avail = self.layout_width - style.leftIndent - style.rightIndent
        raw_lines = list(getattr(paragraph.blPara, 'lines', None) or []) or [None]

        boxes = []
        offset = start
        for i, line in enumerate(raw_lines):
            extra, chars = _line_metrics(line)
            line_end = end if i == len(raw_lines) - 1 else min(offset + chars + 1, end)
            boxes.append(LineBox(
                top=top + i * style.leading,
                height=style.leading,
                start=offset,
                end=line_end,
                width=min(max(avail - extra, 0.0), avail) if line is not None else 0.0,
            ))
            offset = line_end
        return boxes

    def to_markup(self, block: ContentBlock, spec: BlockStyle) -> str:
        """
        Convert a block's runs to ReportLab paragraph markup.

        Returns '&nbsp;' for an empty block so that it still takes a line.
        """
        result = []
        for run in block.runs:
            text = escape_text(run.text)
            if block.type == BlockType.CODE:
                text = preserve_spaces(text)
            text = text.replace('\n', '<br/>')
            if not text:
                continue

            inline = run.style
            if inline.bold or spec.bold:
                text = f"<b>{text}</b>"
            if inline.italic or spec.italic:
                text = f"<i>{text}</i>"

            attrs = []
            face = self.style_builder.inline_face(spec, inline)
            if face:
                attrs.append(f'face="{face}"')
            if inline.font_size:
                attrs.append(f'size="{inline.font_size:g}"')
            if inline.color:
                attrs.append(f'color="{inline.color}"')
            if attrs:
                text = f"<font {' '.join(attrs)}>{text}</font>"

            if inline.underline or inline.link:
                text = f"<u>{text}</u>"
            if inline.strikethrough:
                text = f"<strike>{text}</strike>"
            if inline.link:
                href = escape_text(inline.link).replace('"', '&quot;')
                text = f'<a href="{href}">{text}</a>'

            result.append(text)

        return ''.join(result) or '&nbsp;'
