"""
Tests for the page writer, save_output and PdfRenderer
"""

import re
from unittest.mock import MagicMock

import pytest

from core.exceptions import RenderTargetMissing, RenderWriteError
from core.pdf_engine import (
    Alignment,
    BlockType,
    Page,
    PageGeometry,
    PageSlice,
    PdfRenderer,
    RenderNode,
    ReportLabPageWriter,
    save_output,
)

PAGE_OBJECT = re.compile(rb"/Type\s*/Page\b")


def count_pages(path):
    return len(PAGE_OBJECT.findall(path.read_bytes()))


def make_page(flowable, height=40.0):
    node = RenderNode(
        index=0, block_type=BlockType.PARAGRAPH, start=0, end=1,
        height=height, width=643.75, flowable=flowable,
    )
    return Page(number=1, slices=[PageSlice(node=node, top=0, bottom=height, start=0, end=1, scale=0.8)])


class TestReportLabPageWriter:

    def test_draws_each_slice(self, tmp_path, geometry):
        flowable = MagicMock()
        path = ReportLabPageWriter().write([make_page(flowable)], geometry, tmp_path / "out.pdf")

        assert path.read_bytes().startswith(b"%PDF")
        flowable.drawOn.assert_called_once()
        _, x, y = flowable.drawOn.call_args[0]
        assert (x, y) == (0, -40.0)

    def test_page_count(self, tmp_path, geometry):
        pages = [make_page(MagicMock()), make_page(MagicMock())]
        path = ReportLabPageWriter().write(pages, geometry, tmp_path / "out.pdf")
        assert count_pages(path) == 2

    def test_failure_removes_file(self, tmp_path, geometry):
        flowable = MagicMock()
        flowable.drawOn.side_effect = RuntimeError("draw failed")
        output = tmp_path / "out.pdf"

        with pytest.raises(RenderWriteError) as exc_info:
            ReportLabPageWriter().write([make_page(flowable)], geometry, output)

        assert exc_info.value.message == "An error occurred during conversion."
        assert not output.exists()

    def test_node_without_flowable(self, tmp_path, geometry):
        with pytest.raises(RenderWriteError):
            ReportLabPageWriter().write([make_page(None)], geometry, tmp_path / "out.pdf")


class TestShrunkSlice:

    @staticmethod
    def image_slice(alignment, fit, flowable=None):
        node = RenderNode(
            index=0, block_type=BlockType.IMAGE, start=0, end=2, height=2000, width=643.75,
            atomic=True, flowable=flowable, alignment=alignment, content_width=200,
        )
        return PageSlice(node=node, top=0, bottom=2000, start=0, end=2, scale=0.8, fit=fit)

    @pytest.mark.parametrize("alignment,ratio", [
        (Alignment.LEFT, 0.0),
        (Alignment.CENTER, 0.5),
        (Alignment.RIGHT, 1.0),
    ])
    def test_alignment_kept_when_shrunk(self, alignment, ratio):
        piece = self.image_slice(alignment, fit=0.5)
        # Left edge in layout units once the shrink is applied
        left = piece.draw_x * piece.fit
        assert left == pytest.approx((643.75 - 200 * 0.5) * ratio)

    def test_unshrunk_offset(self):
        piece = self.image_slice(Alignment.CENTER, fit=1.0)
        assert piece.draw_x == pytest.approx((643.75 - 200) / 2)

    def test_writer_draws_at_aligned_x(self, tmp_path, geometry):
        flowable = MagicMock()
        piece = self.image_slice(Alignment.RIGHT, fit=0.25, flowable=flowable)
        ReportLabPageWriter().write([Page(number=1, slices=[piece])], geometry, tmp_path / "out.pdf")

        _, x, _ = flowable.drawOn.call_args[0]
        assert x == pytest.approx(piece.draw_x)
        assert x * 0.25 + 200 * 0.25 == pytest.approx(643.75)


class TestSaveOutput:

    def test_moves_into_place(self, tmp_path):
        source = tmp_path / "tmp.pdf.part"
        source.write_bytes(b"%PDF-1.4")
        destination = tmp_path / "nested" / "doc.pdf"

        assert save_output(source, destination) == destination
        assert destination.read_bytes() == b"%PDF-1.4"
        assert not source.exists()

    def test_overwrites_previous_output(self, tmp_path):
        destination = tmp_path / "doc.pdf"
        destination.write_bytes(b"old")
        source = tmp_path / "tmp.pdf.part"
        source.write_bytes(b"new")

        save_output(source, destination)
        assert destination.read_bytes() == b"new"

    def test_missing_source(self, tmp_path):
        with pytest.raises(RenderWriteError):
            save_output(tmp_path / "missing.part", tmp_path / "doc.pdf")


class TestPdfRenderer:

    def test_none_markup(self, renderer):
        with pytest.raises(RenderTargetMissing):
            renderer.build_tree(None)

    def test_render_writes_pdf(self, renderer, tmp_path):
        result = renderer.render("<h1>Title</h1><p>Xin chào</p>", tmp_path / "out.pdf")
        assert result.page_count == 1
        assert result.path.read_bytes().startswith(b"%PDF")
        assert count_pages(result.path) == 1

    def test_render_to_temp(self, renderer, tmp_path):
        result = renderer.render_to_temp("hello", tmp_path / "session")
        assert result.path.parent == tmp_path / "session"
        assert result.path.name.endswith(".pdf.part")
        assert result.path.exists()

    def test_render_to_temp_cleans_up_on_failure(self, geometry, font_manager, tmp_path):
        writer = MagicMock()
        writer.write.side_effect = RenderWriteError()
        renderer = PdfRenderer(geometry=geometry, writer=writer, font_manager=font_manager)

        with pytest.raises(RenderWriteError):
            renderer.render_to_temp("hello", tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_uses_geometry(self, font_manager):
        geometry = PageGeometry.default()
        renderer = PdfRenderer(geometry=geometry, font_manager=font_manager)
        assert renderer.layout_engine.layout_width == pytest.approx(643.75)
