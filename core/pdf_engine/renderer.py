"""
PDF Renderer - the render compositor.

Canonical content -> render tree (LayoutEngine) -> pages (paginate) ->
PDF file (PageWriter). The PDF is written to a temporary file first;
callers move it into place with save_output() once the job succeeds.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from core.exceptions import RenderTargetMissing, RenderWriteError
from .geometry import PageGeometry
from .layout import LayoutEngine
from .models import Page, RenderTree
from .paginator import paginate
from .style_builder import FontManager, StyleBuilder
from .writer import PageWriter, ReportLabPageWriter


logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Outcome of one render"""
    path: Path
    page_count: int
    content_length: int


class PdfRenderer:
    """
    Lays out, paginates and writes canonical HTML.

    Usage:
        renderer = PdfRenderer()
        result = renderer.render(content.html, "out.pdf")
    """

    def __init__(
        self,
        geometry: Optional[PageGeometry] = None,
        writer: Optional[PageWriter] = None,
        font_manager: Optional[FontManager] = None,
        style_builder: Optional[StyleBuilder] = None,
    ):
        """
        Initialize PDF renderer.

        Args:
            geometry: Page geometry (default: A4, 40pt origin, scale 0.8)
            writer: PageWriter implementation (default: ReportLab canvas)
            font_manager: Font registry (default: DejaVu when installed)
            style_builder: Block style source (built from font_manager if omitted)
        """
        self.geometry = geometry or PageGeometry.default()
        self.writer = writer or ReportLabPageWriter()
        self.style_builder = style_builder or StyleBuilder(font_manager or FontManager())
        self.layout_engine = LayoutEngine(self.geometry.layout_width, self.style_builder)

    def build_tree(self, markup: Optional[str]) -> RenderTree:
        """
        Lay out markup at the geometry's layout width.

        Raises:
            RenderTargetMissing: If there is no markup to render
        """
        if markup is None:
            raise RenderTargetMissing()
        return self.layout_engine.build(markup)

    def paginate(self, tree: Optional[RenderTree]) -> List[Page]:
        return paginate(
            tree,
            self.geometry.content_width,
            self.geometry.content_height,
            self.geometry.scale,
        )

    def render(self, markup: Optional[str], output_path: Union[str, Path]) -> RenderResult:
        """
        Render markup to a PDF file.

        Args:
            markup: Render-safe HTML (CanonicalContent.html)
            output_path: Output PDF file path

        Returns:
            RenderResult with the written path and page count

        Raises:
            RenderTargetMissing: No markup
            RenderWriteError: Writer failed (no file is left behind)
        """
        tree = self.build_tree(markup)
        pages = self.paginate(tree)
        logger.info(f"Rendering {len(tree.nodes)} blocks into {len(pages)} pages")

        path = self.writer.write(pages, self.geometry, output_path)
        return RenderResult(path=Path(path), page_count=len(pages), content_length=tree.length)

    def render_to_temp(self, markup: Optional[str], directory: Union[str, Path]) -> RenderResult:
        """
        Render into a new temporary file inside directory.

        The file lives next to its final destination so that save_output()
        can move it atomically. It is removed if rendering fails.
        """
        directory = Path(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix=".vpdf-", suffix=".pdf.part", dir=str(directory))
            os.close(fd)
        except OSError as e:
            logger.error(f"Cannot create temporary file in {directory}: {e}")
            raise RenderWriteError() from e

        temp_path = Path(name)
        try:
            return self.render(markup, temp_path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
