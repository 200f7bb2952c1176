"""
ReportLab flowables for render nodes that platypus has no ready-made
class for.

Both draw in layout units with the origin at their bottom-left corner.
The page writer scales and clips them into page slices.
"""

from typing import Optional

from reportlab.lib import colors
from reportlab.platypus import Flowable, Paragraph


QUOTE_BAR_COLOR = colors.HexColor('#cccccc')
QUOTE_BAR_WIDTH = 4.0
PLACEHOLDER_COLOR = colors.HexColor('#999999')


class ParagraphBlock(Flowable):
    """
    A wrapped Paragraph together with its space before and after.

    Paragraph.drawOn() does not draw the style's spacing, so the block
    reserves it around the paragraph. Quotes get a bar on the left.
    """

    def __init__(self, paragraph: Paragraph, width: float, space_before: float = 0.0,
                 space_after: float = 0.0, quote: bool = False):
        super().__init__()
        self.paragraph = paragraph
        self.width = width
        self.space_before = space_before
        self.space_after = space_after
        self.quote = quote
        self.height = space_before + paragraph.height + space_after

    def wrap(self, availWidth, availHeight):
        return self.width, self.height

    def draw(self):
        if self.quote:
            self.canv.setFillColor(QUOTE_BAR_COLOR)
            self.canv.rect(0, 0, QUOTE_BAR_WIDTH, self.height, stroke=0, fill=1)
        self.paragraph.drawOn(self.canv, 0, self.space_after)


class ImagePlaceholder(Flowable):
    """Dashed box with the alt text, for images that are not embedded."""

    def __init__(self, width: float, height: float, alt: Optional[str] = None):
        super().__init__()
        self.width = width
        self.height = height
        self.alt = alt

    def wrap(self, availWidth, availHeight):
        return self.width, self.height

    def draw(self):
        c = self.canv
        c.setStrokeColor(PLACEHOLDER_COLOR)
        c.setDash(3, 2)
        c.rect(0, 0, self.width, self.height, stroke=1, fill=0)
        c.setDash()
        if self.alt:
            c.setFillColor(PLACEHOLDER_COLOR)
            c.setFont('Helvetica', 10)
            c.drawCentredString(self.width / 2, self.height / 2 - 3, self.alt)
