"""
Page geometry for PDF output.
"""

from dataclasses import dataclass
from typing import Tuple

from reportlab.lib.pagesizes import A4


@dataclass(frozen=True)
class PageSpec:
    """Page layout specification (points)"""
    width: float
    height: float
    top_margin: float
    right_margin: float
    bottom_margin: float
    left_margin: float

    @property
    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    @property
    def margins(self) -> Tuple[float, float, float, float]:
        """(top, right, bottom, left)"""
        return (self.top_margin, self.right_margin, self.bottom_margin, self.left_margin)

    @classmethod
    def a4(cls, margin_x: float = 40, margin_y: float = 40) -> 'PageSpec':
        """Standard A4 portrait (595 x 842 pt)"""
        return cls(
            width=A4[0], height=A4[1],
            top_margin=margin_y, right_margin=margin_x,
            bottom_margin=margin_y, left_margin=margin_x,
        )


@dataclass(frozen=True)
class PageGeometry:
    """
    Geometry handed to the page writer.

    x/y: origin of the content area from the page's top-left corner.
    content_width: width of the content area on the page.
    window_width: widest layout viewport the content may be laid out in.
    scale: uniform factor from layout units to points.
    """
    page: PageSpec
    x: float
    y: float
    content_width: float
    window_width: float
    scale: float = 0.8
    auto_paging: str = "slice"

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if self.content_width <= 0:
            raise ValueError(f"content_width must be positive, got {self.content_width}")
        if self.x + self.content_width > self.page.width + 1e-6:
            raise ValueError("Content area is wider than the page")
        if self.layout_width > self.window_width + 1e-6:
            raise ValueError(
                f"Layout width {self.layout_width:.2f} exceeds window width {self.window_width}"
            )

    @property
    def content_height(self) -> float:
        """Usable height per page in points (same margin top and bottom)."""
        return self.page.height - 2 * self.y

    @property
    def layout_width(self) -> float:
        """Width the content is laid out at, so that width * scale fits the page."""
        return self.content_width / self.scale

    @classmethod
    def from_settings(cls, settings) -> 'PageGeometry':
        return cls(
            page=PageSpec.a4(settings.margin_x, settings.margin_y),
            x=settings.margin_x,
            y=settings.margin_y,
            content_width=settings.content_width,
            window_width=settings.window_width,
            scale=settings.render_scale,
            auto_paging=settings.auto_paging,
        )

    @classmethod
    def default(cls) -> 'PageGeometry':
        """A4 portrait, 40pt margins, 515pt content, 650 window, 0.8 scale."""
        return cls(
            page=PageSpec.a4(40, 40),
            x=40,
            y=40,
            content_width=515,
            window_width=650,
            scale=0.8,
        )
