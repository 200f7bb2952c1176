"""
PDF page writer.

Draws paginated slices onto a ReportLab canvas. Each slice is a clipped,
scaled window onto its node's flowable, stacked top-down inside the
content area of the page.
"""

import logging
import os
from pathlib import Path
from typing import Protocol, Sequence, Union, runtime_checkable

from reportlab.pdfgen import canvas

from core.exceptions import RenderWriteError
from .geometry import PageGeometry
from .models import Page, PageSlice


logger = logging.getLogger(__name__)


@runtime_checkable
class PageWriter(Protocol):
    """Writes pages to a PDF file or raises RenderWriteError."""

    def write(self, pages: Sequence[Page], geometry: PageGeometry, output_path: Union[str, Path]) -> Path: ...


class ReportLabPageWriter:
    """
    Default PageWriter on top of reportlab.pdfgen.canvas.

    On failure the partially written file is removed.
    """

    def __init__(self, title: str = "vpdf document", author: str = "vpdf"):
        self.title = title
        self.author = author

    def write(self, pages: Sequence[Page], geometry: PageGeometry, output_path: Union[str, Path]) -> Path:
        """
        Write pages in order.

        Args:
            pages: Output of the paginator
            geometry: Page size, origin and scale
            output_path: Destination file

        Returns:
            Path to the written PDF

        Raises:
            RenderWriteError: If drawing or saving fails
        """
        output = Path(output_path)
        try:
            c = canvas.Canvas(str(output), pagesize=geometry.page.size)
            c.setTitle(self.title)
            c.setAuthor(self.author)
            for page in pages:
                self._draw_page(c, page, geometry)
                c.showPage()
            c.save()
        except Exception as e:
            logger.error(f"Failed to write PDF {output}: {e}")
            output.unlink(missing_ok=True)
            raise RenderWriteError() from e

        logger.info(f"Wrote {len(pages)} pages to {output}")
        return output

    def _draw_page(self, c: canvas.Canvas, page: Page, geometry: PageGeometry):
        page_height = geometry.page.height
        cursor = 0.0
        for piece in page.slices:
            self._draw_slice(c, piece, geometry.x, page_height - geometry.y - cursor)
            cursor += piece.height

    def _draw_slice(self, c: canvas.Canvas, piece: PageSlice, x: float, y: float):
        node = piece.node
        if node.flowable is None:
            raise ValueError(f"Render node {node.index} has no flowable")

        factor = piece.scale * piece.fit
        window = piece.layout_height

        c.saveState()
        # Origin at the slice's top-left corner, in layout units
        c.translate(x, y)
        c.scale(factor, factor)
        clip = c.beginPath()
        # Full content width at this scale, wider than the node when shrunk
        clip.rect(0, -window, node.width / piece.fit, window)
        c.clipPath(clip, stroke=0, fill=0)
        node.flowable.drawOn(c, piece.draw_x, piece.top - node.height)
        c.restoreState()


def save_output(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Move a rendered file into place atomically.

    Raises:
        RenderWriteError: If the file cannot be moved; the source is removed
    """
    source = Path(source)
    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(source, destination)
    except OSError as e:
        logger.error(f"Failed to save {destination}: {e}")
        source.unlink(missing_ok=True)
        raise RenderWriteError() from e

    logger.info(f"Saved {destination}")
    return destination
