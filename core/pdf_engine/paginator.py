"""
Paginator - slice a measured render tree into fixed-size pages.

Works in layout units: a page holds ``page_content_height / scale`` units
of the tree. Nodes are placed in document order:

- a node that fits the remaining space is placed whole;
- a node that does not fit but fits an empty page moves to the next page;
- a node taller than a page is cut at its last line boundary that fits,
  and a single line taller than a page is hard-sliced;
- an atomic node is never cut: it moves to the next page, and if it is
  taller than a page it sits alone on its own page, shrunk to fit.

Slices are non-overlapping and together cover every node's full height
and content range, in order.
"""

import logging
from typing import List, Optional

from core.exceptions import RenderTargetMissing
from .models import Page, PageSlice, RenderNode, RenderTree


logger = logging.getLogger(__name__)

DEFAULT_SCALE = 0.8
EPSILON = 1e-6


class Paginator:
    """
    Stateful page builder for one pagination run.

    Usage:
        pages = Paginator(page_content_height=761.89, scale=0.8).paginate(tree)
    """

    def __init__(self, page_content_height: float, scale: float = DEFAULT_SCALE):
        self.scale = scale
        self.available = page_content_height / scale
        self.pages: List[Page] = []
        self._slices: List[PageSlice] = []
        self._used = 0.0

    @property
    def remaining(self) -> float:
        return self.available - self._used

    def paginate(self, tree: RenderTree) -> List[Page]:
        for node in tree.walk():
            if node.atomic:
                self._place_atomic(node)
            else:
                self._place(node)
        self._close_page()
        logger.debug("Paginated %d nodes into %d pages", len(tree.nodes), len(self.pages))
        return self.pages

    def _place(self, node: RenderNode):
        top = 0.0
        while True:
            rest = node.height - top
            if rest <= self.remaining + EPSILON:
                self._add(node, top, node.height)
                return

            # Keep the block together when a fresh page can hold it
            if top == 0.0 and node.height <= self.available + EPSILON:
                self._close_page()
                continue

            cut = node.last_break_before(top + self.remaining, top)
            if cut is not None:
                self._add(node, top, cut)
                top = cut
                self._close_page()
                continue

            if self._slices:
                self._close_page()
                continue

            # Empty page and no line boundary fits: hard slice
            cut = top + self.remaining
            self._add(node, top, cut)
            top = cut
            self._close_page()

    def _place_atomic(self, node: RenderNode):
        if node.height <= self.remaining + EPSILON:
            self._add(node, 0.0, node.height)
            return

        self._close_page()
        if node.height <= self.available + EPSILON:
            self._add(node, 0.0, node.height)
            return

        # Taller than a page: alone, scaled down
        self._add(node, 0.0, node.height, fit=self.available / node.height)
        self._close_page()

    def _add(self, node: RenderNode, top: float, bottom: float, fit: float = 1.0):
        self._slices.append(PageSlice(
            node=node,
            top=top,
            bottom=bottom,
            start=node.offset_at(top),
            end=node.offset_at(bottom),
            scale=self.scale,
            fit=fit,
        ))
        self._used += (bottom - top) * fit

    def _close_page(self):
        if not self._slices:
            return
        self.pages.append(Page(number=len(self.pages) + 1, slices=self._slices))
        self._slices = []
        self._used = 0.0


def paginate(
    root: Optional[RenderTree],
    page_content_width: float,
    page_content_height: float,
    scale: float = DEFAULT_SCALE,
) -> List[Page]:
    """
    Divide a render tree into pages.

    Args:
        root: Laid-out content (width in layout units)
        page_content_width: Usable page width in points
        page_content_height: Usable page height in points
        scale: Layout units -> points

    Returns:
        Pages in order, numbered from 1. Empty tree -> no pages.

    Raises:
        RenderTargetMissing: If there is no render tree
        ValueError: If the page dimensions or scale are not positive, or
            the tree is wider than the page at this scale
    """
    if root is None:
        raise RenderTargetMissing()
    if page_content_width <= 0 or page_content_height <= 0:
        raise ValueError(
            f"Page content area must be positive, got {page_content_width}x{page_content_height}"
        )
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    if root.width * scale > page_content_width + EPSILON:
        raise ValueError(
            f"Render tree width {root.width} does not fit {page_content_width}pt at scale {scale}"
        )

    return Paginator(page_content_height, scale).paginate(root)
