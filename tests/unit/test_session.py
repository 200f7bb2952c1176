"""
Tests for ConversionSession
"""

import asyncio
import threading
import time
from unittest.mock import call, patch

import pytest

from core.content import CanonicalContent
from core.conversion import ConversionSession, JobState, SessionConfig, Severity
from core.exceptions import (
    EmptyContent,
    ExtractionError,
    IoError,
    RenderWriteError,
    UnsupportedFormat,
)
from core.ingest import UploadedSource
from core.pdf_engine import PageGeometry


def two_long_paragraphs():
    lines = "<br>".join(f"Line {i}" for i in range(30))
    return f"<p>{lines}</p><p>{lines}</p>"


async def wait_for_state(session, state, attempts=500):
    for _ in range(attempts):
        if session.state == state:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"session never reached {state}")


@pytest.fixture
def gated_session(renderer, center, session_config):
    """Session whose download delay only ends when the gate is set."""
    gate = asyncio.Event()

    async def sleep(seconds):
        if seconds == session_config.download_delay_ms / 1000:
            await gate.wait()

    session = ConversionSession(
        renderer=renderer, sink=center, config=session_config,
        sleep=sleep, session_id="gated",
    )
    return session, gate


class TestSessionConfig:

    def test_error_durations(self):
        config = SessionConfig()
        assert config.duration_for(UnsupportedFormat()) == 7000
        assert config.duration_for(EmptyContent()) == 5000
        assert config.duration_for(IoError()) == 5000

    def test_override_duration(self):
        config = SessionConfig(durations={"io_error": 1234})
        assert config.duration_for(IoError()) == 1234

    def test_output_path_per_session(self, session, session_config):
        assert session.output_path == session_config.output_dir / "test-session" / "vpdf-document.pdf"


class TestEditing:

    def test_edit_unlocks(self, session):
        content = session.edit("hello")
        assert content == CanonicalContent("hello")
        assert session.state == JobState.UNLOCKED

    def test_empty_edit(self, session):
        session.edit("")
        assert session.state == JobState.EDITING
        assert not session.job.unlocked

    def test_finalize_with_formatting(self, session):
        content = session.finalize("<b>hi</b>", "hi")
        assert content.is_rich is True
        assert content.content == "<b>hi</b>"

    def test_finalize_without_formatting(self, session):
        content = session.finalize("a<br>b", "a\nb")
        assert content == CanonicalContent("a\nb")

    def test_finalize_derives_text(self, session):
        content = session.finalize("a<br>b")
        assert content == CanonicalContent("a\nb")

    def test_apply_format(self, session):
        session.edit("hello")
        assert session.apply_format("italic").content == "<i>hello</i>"

    def test_snapshot(self, session):
        session.edit("x")
        snapshot = session.snapshot()
        assert snapshot["id"] == "test-session"
        assert snapshot["state"] == "unlocked"
        assert snapshot["content"] == "x"
        assert snapshot["has_output"] is False


class TestUpload:

    @pytest.mark.asyncio
    async def test_text_upload(self, session, center):
        content = await session.upload(UploadedSource("notes.txt", b"line1\nline2"))

        assert content.content == "line1\nline2"
        assert content.is_rich is False
        assert content.html == "line1<br>line2"
        assert session.state == JobState.UNLOCKED
        assert session.job.unlocked
        assert center.history == []

    @pytest.mark.asyncio
    async def test_invalid_type(self, session, center):
        with pytest.raises(UnsupportedFormat):
            await session.upload(UploadedSource("photo.png", b"\x89PNG"))

        assert session.content.is_empty
        assert session.state == JobState.IDLE
        assert center.current.message == "Invalid file type. Please upload a .txt, .md, or .docx file."
        assert center.current.severity == Severity.ERROR
        assert center.current.duration_ms == 7000
        assert len(center.history) == 1

    @pytest.mark.asyncio
    async def test_upload_replaces_content(self, session):
        session.edit("<b>old</b>")
        await session.upload(UploadedSource("a.md", b"new"))
        assert session.content == CanonicalContent("new")

    @pytest.mark.asyncio
    async def test_docx_upload_notifications(self, session, center, make_docx, fast_sleep):
        data = make_docx(["Hello", "World"])
        content = await session.upload(UploadedSource("report.docx", data))

        assert content.content == "Hello\nWorld"
        assert center.messages() == ["Document uploaded: report.docx", "Extracting data..."]
        assert [n.duration_ms for n in center.history] == [3000, 4000]
        assert fast_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_docx_failure_keeps_content(self, session, center):
        session.edit("keep me")
        with pytest.raises(ExtractionError):
            await session.upload(UploadedSource("broken.docx", b"not a zip"))

        assert session.content == CanonicalContent("keep me")
        assert center.current.message == "Failed to extract document content."
        assert center.current.severity == Severity.ERROR


class TestConvert:

    @pytest.mark.asyncio
    async def test_empty_content(self, session, center):
        with patch.object(session.renderer, "render_to_temp") as render:
            with pytest.raises(EmptyContent):
                await session.convert()

        render.assert_not_called()
        assert session.state == JobState.IDLE
        assert center.current.message == "There's no content to convert."
        assert center.current.severity == Severity.WARNING
        assert not session.output_dir.exists()

    @pytest.mark.asyncio
    async def test_whitespace_only_is_empty(self, session):
        session.edit("   \n  ")
        with pytest.raises(EmptyContent):
            await session.convert()

    @pytest.mark.asyncio
    async def test_success(self, session, center, fast_sleep):
        session.edit("Hello world")
        path = await session.convert()

        assert path == session.output_path
        assert path.read_bytes().startswith(b"%PDF")
        assert session.last_output == path
        assert session.state == JobState.UNLOCKED
        assert center.messages() == [
            "Rendering your PDF...",
            "PDF generated! Download will start in 5 seconds...",
            "Download complete!",
        ]
        assert [n.severity for n in center.history] == [Severity.INFO, Severity.INFO, Severity.SUCCESS]
        assert [n.duration_ms for n in center.history] == [3000, 6000, 3000]
        assert call(5.0) in fast_sleep.await_args_list
        # Only the final PDF remains
        assert list(session.output_dir.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_two_long_paragraphs_two_pages(self, session, renderer, center):
        session.edit(two_long_paragraphs())

        pages = renderer.paginate(renderer.build_tree(session.content.html))
        assert len(pages) == 2
        assert [[s.node.index for s in p.slices] for p in pages] == [[0], [1]]

        path = await session.convert()
        assert path.exists()
        assert center.current.message == "Download complete!"
        assert center.current.severity == Severity.SUCCESS

    @pytest.mark.asyncio
    async def test_render_failure(self, session, center):
        session.edit("content")
        with patch.object(session.renderer, "render_to_temp", side_effect=RenderWriteError()):
            with pytest.raises(RenderWriteError):
                await session.convert()

        assert session.state == JobState.UNLOCKED
        assert session.job.error_reason == "An error occurred during conversion."
        assert session.content == CanonicalContent("content")
        assert center.messages() == ["Rendering your PDF...", "An error occurred during conversion."]
        assert center.current.severity == Severity.ERROR

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_write_error(self, session, center):
        session.edit("content")
        with patch.object(session.renderer, "render_to_temp", side_effect=RuntimeError("boom")):
            with pytest.raises(RenderWriteError):
                await session.convert()
        assert session.state == JobState.UNLOCKED

    @pytest.mark.asyncio
    async def test_convert_again_after_failure(self, session):
        session.edit("content")
        with patch.object(session.renderer, "render_to_temp", side_effect=RenderWriteError()):
            with pytest.raises(RenderWriteError):
                await session.convert()
        assert (await session.convert()).exists()

    @pytest.mark.asyncio
    async def test_save_failure(self, session, center):
        session.edit("content")
        with patch("core.conversion.session.save_output", side_effect=RenderWriteError()):
            with pytest.raises(RenderWriteError):
                await session.convert()
        assert session.state == JobState.UNLOCKED
        assert center.current.message == "An error occurred during conversion."

    @pytest.mark.asyncio
    async def test_render_timeout(self, renderer, center, tmp_path, fast_sleep):
        config = SessionConfig(output_dir=tmp_path, render_timeout=0.05)
        session = ConversionSession(renderer=renderer, sink=center, config=config, sleep=fast_sleep)
        session.edit("content")

        render_to_temp = session.renderer.render_to_temp
        finished = threading.Event()

        def slow_render(html, directory):
            time.sleep(0.3)
            try:
                return render_to_temp(html, directory)
            finally:
                finished.set()

        with patch.object(session.renderer, "render_to_temp", side_effect=slow_render):
            with pytest.raises(RenderWriteError):
                await session.convert()
        assert session.state == JobState.UNLOCKED
        assert center.current.message == "An error occurred during conversion."

        # The abandoned render finishes later and its temp file is removed
        for _ in range(200):
            if finished.is_set() and not list(session.output_dir.glob("*.part")):
                break
            await asyncio.sleep(0.01)
        assert finished.is_set()
        assert list(session.output_dir.glob("*.part")) == []
        assert not session.output_path.exists()

    @pytest.mark.asyncio
    async def test_convert_while_busy_is_ignored(self, gated_session, center):
        session, gate = gated_session
        session.edit("content")

        first = asyncio.ensure_future(session.convert())
        await wait_for_state(session, JobState.SUCCESS)

        assert await session.convert() is None
        assert center.messages().count("Rendering your PDF...") == 1

        gate.set()
        assert (await first).exists()
        assert session.state == JobState.UNLOCKED

    @pytest.mark.asyncio
    async def test_edits_during_delivery(self, gated_session):
        session, gate = gated_session
        session.edit("content")

        task = asyncio.ensure_future(session.convert())
        await wait_for_state(session, JobState.SUCCESS)

        session.edit("")
        assert session.state == JobState.SUCCESS

        gate.set()
        await task
        assert session.state == JobState.UNLOCKED
        assert session.job.unlocked

    @pytest.mark.asyncio
    async def test_aclose_flushes_pending_save(self, gated_session, center):
        session, gate = gated_session
        session.edit("content")

        task = asyncio.ensure_future(session.convert())
        await wait_for_state(session, JobState.SUCCESS)
        assert not session.output_path.exists()

        await session.aclose()

        assert session.output_path.exists()
        assert center.current.message == "Download complete!"
        assert (await task) == session.output_path
        assert session.state == JobState.UNLOCKED

    @pytest.mark.asyncio
    async def test_aclose_without_pending_save(self, session):
        await session.aclose()
        assert session.state == JobState.IDLE


class TestFromSettings:

    def test_wires_settings(self, tmp_path):
        from config.settings import Settings

        settings = Settings(
            output_dir=tmp_path / "out",
            logs_dir=tmp_path / "logs",
            allowed_extensions="txt",
            download_delay_ms=1000,
        )
        session = ConversionSession.from_settings(settings)

        assert session.ingestor.allowed_extensions == (".txt",)
        assert session.config.download_delay_ms == 1000
        assert session.config.output_dir == tmp_path / "out"
        assert session.renderer.geometry == PageGeometry.from_settings(settings)
