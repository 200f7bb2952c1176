"""
PDF Engine - paginated PDF generation using ReportLab.

This module provides:
- Layout of canonical HTML into a measured render tree
- Pagination of the tree into fixed-size page slices
- Font management with Vietnamese support (DejaVu when installed)
- A ReportLab canvas page writer with atomic file save

Usage:
    from core.pdf_engine import PdfRenderer, save_output

    renderer = PdfRenderer()
    result = renderer.render_to_temp(content.html, "data/output")
    save_output(result.path, "data/output/vpdf-document.pdf")

Key components:
- PdfRenderer: Compositor (layout -> paginate -> write)
- LayoutEngine / HtmlBlockParser: HTML to render tree (ReportLab Paragraphs)
- paginate: Render tree to pages
- ReportLabPageWriter: Pages to PDF
- FontManager / StyleBuilder: Fonts and block styles
"""

from .geometry import PageGeometry, PageSpec
from .layout import HtmlBlockParser, LayoutEngine
from .models import (
    Alignment,
    BlockType,
    ContentBlock,
    ImageData,
    InlineStyle,
    LineBox,
    Page,
    PageSlice,
    RenderNode,
    RenderTree,
    TextRun,
)
from .paginator import Paginator, paginate
from .renderer import PdfRenderer, RenderResult
from .style_builder import BlockStyle, FontManager, StyleBuilder
from .writer import PageWriter, ReportLabPageWriter, save_output


__all__ = [
    # Compositor
    'PdfRenderer',
    'RenderResult',

    # Layout
    'LayoutEngine',
    'HtmlBlockParser',
    'PageGeometry',
    'PageSpec',

    # Pagination
    'Paginator',
    'paginate',

    # Output
    'PageWriter',
    'ReportLabPageWriter',
    'save_output',

    # Style utilities
    'FontManager',
    'StyleBuilder',
    'BlockStyle',

    # Models
    'Alignment',
    'BlockType',
    'ContentBlock',
    'ImageData',
    'InlineStyle',
    'LineBox',
    'Page',
    'PageSlice',
    'RenderNode',
    'RenderTree',
    'TextRun',
]


__version__ = '1.0.0'
