"""
Tests for page geometry and fonts
"""

from types import SimpleNamespace

import pytest

from core.pdf_engine import FontManager, PageGeometry, PageSpec


class TestPageGeometry:

    def test_defaults(self):
        geometry = PageGeometry.default()
        assert geometry.page.size == pytest.approx((595.2756, 841.8898), abs=1e-3)
        assert geometry.layout_width == pytest.approx(643.75)
        assert geometry.content_height == pytest.approx(841.8898 - 80, abs=1e-3)

    def test_layout_wider_than_window(self):
        with pytest.raises(ValueError):
            PageGeometry(page=PageSpec.a4(), x=40, y=40, content_width=515, window_width=650, scale=0.5)

    def test_content_wider_than_page(self):
        with pytest.raises(ValueError):
            PageGeometry(page=PageSpec.a4(), x=100, y=40, content_width=515, window_width=2000)

    def test_non_positive_scale(self):
        with pytest.raises(ValueError):
            PageGeometry(page=PageSpec.a4(), x=40, y=40, content_width=515, window_width=650, scale=0)

    def test_from_settings(self):
        settings = SimpleNamespace(
            margin_x=30, margin_y=50, content_width=500,
            window_width=700, render_scale=0.75, auto_paging="slice",
        )
        geometry = PageGeometry.from_settings(settings)
        assert (geometry.x, geometry.y) == (30, 50)
        assert geometry.layout_width == pytest.approx(500 / 0.75)
        assert geometry.page.margins == (50, 30, 50, 30)


class TestFontManager:

    def test_standard_fonts(self, font_manager):
        assert font_manager.resolve("sans") == "Helvetica"
        assert font_manager.resolve("sans", bold=True, italic=True) == "Helvetica-BoldOblique"
        assert font_manager.resolve("serif", italic=True) == "Times-Italic"
        assert font_manager.resolve("mono", bold=True) == "Courier-Bold"

    @pytest.mark.parametrize("name,family", [
        ("Arial", "sans"),
        ("Times New Roman", "serif"),
        ("'Courier New', monospace", "mono"),
        ("Georgia", "serif"),
        ("Comic Sans", "sans"),
        (None, "sans"),
    ])
    def test_family_aliases(self, font_manager, name, family):
        assert font_manager.family_for(name) == family

    def test_missing_font_file(self, font_manager):
        assert font_manager.find_font_file("NoSuchFont.ttf") is None
