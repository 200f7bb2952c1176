"""
Font management and style building utilities for PDF rendering.

This module handles:
- Font file discovery and registration
- Mapping editor font names onto registered font families
- Block styles (size, leading, spacing) per content block type
- ReportLab ParagraphStyles built from block styles
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, List, Tuple

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from .models import Alignment, BlockType, ContentBlock, InlineStyle


logger = logging.getLogger(__name__)


# Family name -> (regular, bold, italic, bold_italic)
FontFamily = Tuple[str, str, str, str]

STANDARD_FAMILIES: Dict[str, FontFamily] = {
    'sans': ('Helvetica', 'Helvetica-Bold', 'Helvetica-Oblique', 'Helvetica-BoldOblique'),
    'serif': ('Times-Roman', 'Times-Bold', 'Times-Italic', 'Times-BoldItalic'),
    'mono': ('Courier', 'Courier-Bold', 'Courier-Oblique', 'Courier-BoldOblique'),
}

DEJAVU_FAMILIES: Dict[str, FontFamily] = {
    'sans': ('DejaVuSans', 'DejaVuSans-Bold', 'DejaVuSans-Oblique', 'DejaVuSans-BoldOblique'),
    'serif': ('DejaVuSerif', 'DejaVuSerif-Bold', 'DejaVuSerif-Italic', 'DejaVuSerif-BoldItalic'),
    'mono': ('DejaVuSansMono', 'DejaVuSansMono-Bold', 'DejaVuSansMono-Oblique',
             'DejaVuSansMono-BoldOblique'),
}

# Editor font names (fontName command, CSS font-family, Quill ql-font-*)
FAMILY_ALIASES = {
    'arial': 'sans',
    'verdana': 'sans',
    'helvetica': 'sans',
    'sans-serif': 'sans',
    'sans serif': 'sans',
    'times new roman': 'serif',
    'times': 'serif',
    'georgia': 'serif',
    'serif': 'serif',
    'courier new': 'mono',
    'courier': 'mono',
    'monospace': 'mono',
}

DEFAULT_FAMILY = 'sans'


class FontManager:
    """
    Manages font registration for ReportLab.

    DejaVu TTFs (wide Unicode coverage, Vietnamese included) are used for a
    family when all four of its faces are found; otherwise the family falls
    back to the matching standard PDF font.
    """

    # Default search paths for fonts
    DEFAULT_SEARCH_PATHS = [
        # System paths (Linux)
        '/usr/share/fonts/truetype/dejavu/',
        '/usr/share/fonts/TTF/',
        '/usr/local/share/fonts/',

        # User paths
        os.path.expanduser('~/.fonts/'),
        os.path.expanduser('~/.local/share/fonts/'),

        # macOS paths
        '/Library/Fonts/',
        os.path.expanduser('~/Library/Fonts/'),

        # Project paths
        './fonts/',
        str(Path(__file__).parent.parent.parent / 'assets' / 'fonts'),
    ]

    def __init__(self, additional_paths: Optional[List[str]] = None, use_dejavu: bool = True):
        """
        Initialize FontManager.

        Args:
            additional_paths: Extra paths to search for fonts
            use_dejavu: Try to register DejaVu TTFs (False = standard fonts only)
        """
        self.search_paths = list(self.DEFAULT_SEARCH_PATHS)
        if additional_paths:
            self.search_paths.extend(additional_paths)

        self._registered_fonts: Dict[str, str] = {}
        self._font_cache: Dict[str, Optional[str]] = {}
        self.families: Dict[str, FontFamily] = dict(STANDARD_FAMILIES)

        if use_dejavu:
            self.register_dejavu_fonts()

    def find_font_file(self, filename: str) -> Optional[str]:
        """
        Find a font file in search paths.

        Args:
            filename: Font filename (e.g., 'DejaVuSerif.ttf')

        Returns:
            Full path to font file, or None if not found
        """
        if filename in self._font_cache:
            return self._font_cache[filename]

        found = None
        for search_path in self.search_paths:
            path = Path(search_path) / filename
            if path.exists():
                found = str(path)
                break

        self._font_cache[filename] = found
        if not found:
            logger.debug(f"Font file not found: {filename}")
        return found

    def register_font(self, font_name: str, font_file: str) -> bool:
        """
        Register a single font with ReportLab.

        Args:
            font_name: Name to register (e.g., 'DejaVuSerif')
            font_file: Font filename (e.g., 'DejaVuSerif.ttf')

        Returns:
            True if registration successful
        """
        if font_name in self._registered_fonts:
            return True

        font_path = self.find_font_file(font_file)
        if not font_path:
            return False

        try:
            pdfmetrics.registerFont(TTFont(font_name, font_path))
            self._registered_fonts[font_name] = font_path
            logger.debug(f"Registered font: {font_name} from {font_path}")
            return True
        except Exception as e:
            logger.error(f"Failed to register font {font_name}: {e}")
            return False

    def register_dejavu_fonts(self) -> bool:
        """
        Register DejaVu families whose four faces are all available.

        Returns:
            True if every family uses DejaVu
        """
        success = True
        for family, faces in DEJAVU_FAMILIES.items():
            if all(self.register_font(face, f"{face}.ttf") for face in faces):
                # <b> and <i> in paragraph markup pick faces through the family
                regular, bold, italic, bold_italic = faces
                pdfmetrics.registerFontFamily(
                    regular, normal=regular, bold=bold, italic=italic, boldItalic=bold_italic
                )
                self.families[family] = faces
            else:
                success = False

        if not success:
            logger.warning("DejaVu fonts not found, using standard PDF fonts")
        return success

    def family_for(self, name: Optional[str]) -> str:
        """Map an editor font name (or CSS font-family list) to a family key."""
        if not name:
            return DEFAULT_FAMILY
        for candidate in name.split(','):
            key = candidate.strip().strip('\'"').lower().replace('-', ' ')
            if key in FAMILY_ALIASES:
                return FAMILY_ALIASES[key]
            key = key.replace(' ', '-')
            if key in FAMILY_ALIASES:
                return FAMILY_ALIASES[key]
        return DEFAULT_FAMILY

    def resolve(self, family: Optional[str], bold: bool = False, italic: bool = False) -> str:
        """Registered font name for a family and face."""
        key = family if family in self.families else self.family_for(family)
        faces = self.families[key]
        return faces[(1 if bold else 0) + (2 if italic else 0)]


@dataclass(frozen=True)
class BlockStyle:
    """Layout style of one block (layout units)"""
    family: str = DEFAULT_FAMILY
    font_size: float = 16.0
    bold: bool = False
    italic: bool = False
    leading: float = 1.42  # line height as a multiple of the font size
    space_before: float = 0.0
    space_after: float = 0.0
    left_indent: float = 0.0
    color: str = '#000000'
    back_color: Optional[str] = None


# Editor heading scale (em of the 16px body)
HEADING_SCALE = {1: 2.0, 2: 1.5, 3: 1.17, 4: 1.0, 5: 0.83, 6: 0.67}

BODY_FONT_SIZE = 16.0
LIST_INDENT = 24.0
QUOTE_INDENT = 16.0
BULLET_GAP = 18.0

PARAGRAPH_ALIGNMENT = {
    Alignment.LEFT: TA_LEFT,
    Alignment.CENTER: TA_CENTER,
    Alignment.RIGHT: TA_RIGHT,
    Alignment.JUSTIFY: TA_JUSTIFY,
}


class StyleBuilder:
    """
    Builds ReportLab ParagraphStyles for content blocks.

    A BlockStyle describes a block type; build_paragraph_style() turns it
    into the ParagraphStyle that lays the block out.

    Usage:
        builder = StyleBuilder(FontManager())
        style = builder.paragraph_style(block)
        paragraph = Paragraph(markup, style)
    """

    def __init__(self, font_manager: Optional[FontManager] = None, body_font_size: float = BODY_FONT_SIZE):
        self.font_manager = font_manager or FontManager()
        self.body_font_size = body_font_size
        self._block_styles: Dict[Tuple[BlockType, int], BlockStyle] = {}
        self._paragraph_styles: Dict[tuple, ParagraphStyle] = {}

    def block_style(self, block: ContentBlock) -> BlockStyle:
        """Get the style for a block (cached per type and level)."""
        key = (block.type, block.level)
        if key not in self._block_styles:
            self._block_styles[key] = self._build(block.type, block.level)
        return self._block_styles[key]

    def _build(self, block_type: BlockType, level: int) -> BlockStyle:
        body = self.body_font_size

        if block_type == BlockType.HEADING:
            scale = HEADING_SCALE.get(level, 1.0)
            return BlockStyle(font_size=round(body * scale, 2), bold=True)

        if block_type == BlockType.LIST_ITEM:
            return BlockStyle(font_size=body, left_indent=LIST_INDENT * max(level, 1))

        if block_type == BlockType.QUOTE:
            return BlockStyle(
                font_size=body,
                space_before=5.0,
                space_after=5.0,
                left_indent=QUOTE_INDENT,
                color='#444444',
            )

        if block_type == BlockType.CODE:
            return BlockStyle(
                family='mono',
                font_size=round(body * 0.85, 2),
                leading=1.3,
                space_before=5.0,
                space_after=5.0,
                left_indent=10.0,
                back_color='#f0f0f0',
            )

        return BlockStyle(font_size=body)

    def paragraph_style(self, block: ContentBlock) -> ParagraphStyle:
        """
        Get the ParagraphStyle for a block.

        Lines are as tall as the largest inline font of the block needs,
        so styles are cached per type, level, alignment and that size.
        """
        largest = max((run.style.font_size or 0.0 for run in block.runs), default=0.0)
        key = (block.type, block.level, block.alignment, largest)
        if key not in self._paragraph_styles:
            name = f"{block.type.value}_{block.level}"
            self._paragraph_styles[key] = self.build_paragraph_style(
                name, self.block_style(block), block.alignment, largest
            )
        return self._paragraph_styles[key]

    def build_paragraph_style(
        self,
        name: str,
        spec: BlockStyle,
        alignment: Alignment = Alignment.LEFT,
        largest_font_size: float = 0.0,
    ) -> ParagraphStyle:
        """
        Build a ReportLab ParagraphStyle from a BlockStyle.

        Args:
            name: Style name
            spec: Block style
            alignment: Text alignment of the block
            largest_font_size: Largest inline font size used in the block

        Returns:
            ReportLab ParagraphStyle
        """
        font_name = self.font_manager.resolve(spec.family, bold=spec.bold, italic=spec.italic)
        line_size = max(spec.font_size, largest_font_size)

        return ParagraphStyle(
            name=name,
            fontName=font_name,
            fontSize=spec.font_size,
            leading=line_size * spec.leading,
            textColor=HexColor(spec.color),
            backColor=HexColor(spec.back_color) if spec.back_color else None,
            alignment=PARAGRAPH_ALIGNMENT[alignment],
            spaceBefore=spec.space_before,
            spaceAfter=spec.space_after,
            leftIndent=spec.left_indent,
            bulletFontName=font_name,
            bulletFontSize=spec.font_size,
            bulletIndent=max(spec.left_indent - BULLET_GAP, 0.0),
        )

    def inline_face(self, block_style: BlockStyle, inline: InlineStyle) -> Optional[str]:
        """
        Regular face of a run's own font family, or None if the run uses
        the block's family. Bold and italic are applied by markup tags.
        """
        if inline.code:
            family = 'mono'
        elif inline.font_family:
            family = self.font_manager.family_for(inline.font_family)
        else:
            return None
        if family == block_style.family:
            return None
        return self.font_manager.resolve(family)
