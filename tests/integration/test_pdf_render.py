"""
Integration tests: editor content to a real PDF on disk.
"""

import re

import pytest

from core.conversion import ConversionSession, JobState, SessionConfig, Severity
from core.ingest import UploadedSource
from core.pdf_engine import PdfRenderer

PAGE_OBJECT = re.compile(rb"/Type\s*/Page\b")


def page_count(path):
    return len(PAGE_OBJECT.findall(path.read_bytes()))


@pytest.fixture
def integration_session(renderer, center, tmp_path, fast_sleep):
    return ConversionSession(
        renderer=renderer,
        sink=center,
        config=SessionConfig(output_dir=tmp_path),
        sleep=fast_sleep,
    )


class TestRichDocument:

    def test_every_block_type_renders(self, renderer, tmp_path, make_png_uri):
        markup = (
            "<h1>Báo cáo</h1>"
            '<p style="text-align: justify">' + "Lorem ipsum dolor sit amet. " * 40 + "</p>"
            "<ul><li><b>bold</b> item</li><li><i>italic</i> item</li></ul>"
            "<ol><li>first</li><li>second</li></ol>"
            "<blockquote>quoted</blockquote>"
            "<pre>code  block\n  indented</pre>"
            f'<p style="text-align: center"><img src="{make_png_uri(200, 100)}"></p>'
            '<p><font size="6" color="#cc0000">big red</font> <u>under</u> <s>gone</s></p>'
            '<img src="http://example.com/remote.png" alt="remote">'
        )
        result = renderer.render(markup, tmp_path / "rich.pdf")

        assert result.page_count >= 1
        assert page_count(result.path) == result.page_count

    def test_long_text_paginates(self, renderer, tmp_path):
        markup = "".join(f"<p>Paragraph line {i} " + "text " * 30 + "</p>" for i in range(200))
        result = renderer.render(markup, tmp_path / "long.pdf")
        assert result.page_count > 3
        assert page_count(result.path) == result.page_count

    def test_tall_image_gets_its_own_page(self, renderer, tmp_path, make_png_uri):
        markup = f'<p>before</p><img src="{make_png_uri(10, 10)}" width="600" height="3000"><p>after</p>'
        tree = renderer.build_tree(markup)
        pages = renderer.paginate(tree)

        assert len(pages) == 3
        image_slice = pages[1].slices[0]
        assert image_slice.node.atomic
        assert image_slice.fit < 1
        assert renderer.render(markup, tmp_path / "tall.pdf").page_count == 3


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_upload_then_convert(self, integration_session, center):
        await integration_session.upload(UploadedSource("notes.txt", "Xin chào\nthế giới".encode("utf-8")))
        path = await integration_session.convert()

        assert path.exists()
        assert page_count(path) == 1
        assert integration_session.state == JobState.UNLOCKED
        assert center.current.severity == Severity.SUCCESS

    @pytest.mark.asyncio
    async def test_docx_format_convert(self, integration_session, make_docx):
        await integration_session.upload(UploadedSource("a.docx", make_docx(["Title", "Body text"])))
        integration_session.apply_format("formatBlock", "h2")
        integration_session.apply_format("justifyCenter")

        assert integration_session.content.is_rich
        path = await integration_session.convert()
        assert path.read_bytes().startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_second_convert_replaces_file(self, integration_session):
        integration_session.edit("first")
        first = await integration_session.convert()
        size_before = first.stat().st_size

        integration_session.edit("second version " * 200)
        second = await integration_session.convert()

        assert second == first
        assert second.stat().st_size != size_before

    def test_dejavu_fallback_renders(self, tmp_path):
        # Default FontManager: DejaVu when installed, standard fonts otherwise
        result = PdfRenderer().render("<p>Tiếng Việt có dấu</p>", tmp_path / "vi.pdf")
        assert result.page_count == 1
