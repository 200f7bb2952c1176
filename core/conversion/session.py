"""
Conversion Session - one editing session and its conversion job.

Owns the content model, reacts to edits and uploads, and runs the
convert sequence:

    "Rendering your PDF..."          (info)
    render + paginate + write temp   (executor)
    "PDF generated! ..."             (info)
    download delay
    move temp file into place
    "Download complete!"             (success)

Every VpdfError is surfaced as exactly one notification and re-raised
for the caller; the session stays usable and content is never rolled
back.
"""

import asyncio
import functools
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from core.content import CanonicalContent, ContentModel, SnapshotSurface, html_to_text
from core.exceptions import EmptyContent, RenderWriteError, VpdfError
from core.ingest import FormatIngestor, UploadedSource
from core.pdf_engine import FontManager, PageGeometry, PdfRenderer, save_output
from .job import ConversionJob, JobState
from .notifications import NotificationCenter, NotificationSink, Severity


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

RENDERING_MESSAGE = "Rendering your PDF..."
READY_MESSAGE = "PDF generated! Download will start in {seconds:g} seconds..."
COMPLETE_MESSAGE = "Download complete!"
UPLOADED_MESSAGE = "Document uploaded: {name}"
EXTRACTING_MESSAGE = "Extracting data..."


def _discard_render(future: asyncio.Future):
    """Remove the temp file of a render nobody waits for any more."""
    if future.cancelled() or future.exception() is not None:
        return
    path = future.result().path
    path.unlink(missing_ok=True)
    logger.info("Discarded abandoned render %s", path)


@dataclass
class SessionConfig:
    """Output location and notification pacing for a session"""
    output_dir: Path = Path("data/output")
    output_filename: str = "vpdf-document.pdf"

    rendering_ms: int = 3000
    ready_ms: int = 6000
    download_delay_ms: int = 5000
    complete_ms: int = 3000
    default_ms: int = 5000
    error_ms: int = 5000
    invalid_type_ms: int = 7000
    upload_ms: int = 3000
    extracting_ms: int = 4000

    render_timeout: Optional[float] = None

    durations: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        self.durations = {
            "unsupported_format": self.invalid_type_ms,
            "empty_content": self.default_ms,
            **self.durations,
        }

    def duration_for(self, error: VpdfError) -> int:
        if error.kind in self.durations:
            return self.durations[error.kind]
        return self.error_ms if error.severity == "error" else error.duration_ms

    @classmethod
    def from_settings(cls, settings) -> 'SessionConfig':
        return cls(
            output_dir=settings.output_dir,
            output_filename=settings.output_filename,
            rendering_ms=settings.notify_rendering_ms,
            ready_ms=settings.notify_ready_ms,
            download_delay_ms=settings.download_delay_ms,
            complete_ms=settings.notify_complete_ms,
            default_ms=settings.notify_default_ms,
            error_ms=settings.notify_error_ms,
            invalid_type_ms=settings.notify_invalid_type_ms,
            upload_ms=settings.notify_upload_ms,
            extracting_ms=settings.notify_extracting_ms,
            render_timeout=settings.render_timeout_s,
        )


class ConversionSession:
    """
    Editing session with a single conversion job.

    Usage:
        session = ConversionSession(config=SessionConfig(output_dir=tmp))
        await session.upload(UploadedSource("notes.txt", b"line1\\nline2"))
        path = await session.convert()
    """

    def __init__(
        self,
        model: Optional[ContentModel] = None,
        ingestor: Optional[FormatIngestor] = None,
        renderer: Optional[PdfRenderer] = None,
        sink: Optional[NotificationSink] = None,
        config: Optional[SessionConfig] = None,
        sleep: Sleep = asyncio.sleep,
        session_id: Optional[str] = None,
    ):
        """
        Args:
            model: Content model (default: fresh, backed by an HtmlSurface)
            ingestor: Upload reader (default: .txt/.md/.docx)
            renderer: PDF compositor (default geometry)
            sink: Where notifications go (default: a NotificationCenter)
            config: Output and pacing settings
            sleep: Awaitable delay, injectable for tests
            session_id: Identifier (default: random hex)
        """
        self.id = session_id or uuid.uuid4().hex
        self.model = model or ContentModel()
        self.ingestor = ingestor or FormatIngestor()
        self.renderer = renderer or PdfRenderer()
        self.sink = sink if sink is not None else NotificationCenter()
        self.config = config or SessionConfig()
        self.job = ConversionJob()
        self.last_output: Optional[Path] = None

        self._sleep = sleep
        self._delivery: Optional[asyncio.Future] = None
        self._delay: Optional[asyncio.Future] = None
        self._flushing = False

        self.model.subscribe(self._on_content)

    @classmethod
    def from_settings(
        cls,
        settings,
        sink: Optional[NotificationSink] = None,
        font_manager: Optional[FontManager] = None,
        **kwargs,
    ) -> 'ConversionSession':
        """
        Build a session wired to application settings.

        Pass a shared font_manager to avoid registering fonts per session.
        """
        ingestor = FormatIngestor(
            allowed_extensions=settings.get_allowed_extensions(),
            max_size_bytes=settings.max_upload_size_bytes,
            extract_timeout=settings.extract_timeout_s,
        )
        renderer = PdfRenderer(geometry=PageGeometry.from_settings(settings), font_manager=font_manager)
        return cls(
            ingestor=ingestor,
            renderer=renderer,
            sink=sink,
            config=SessionConfig.from_settings(settings),
            **kwargs,
        )

    # ==================== State ====================

    @property
    def content(self) -> CanonicalContent:
        return self.model.content

    @property
    def state(self) -> JobState:
        return self.job.state

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir / self.id

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.config.output_filename

    def _on_content(self, content: CanonicalContent):
        self.job.content_changed(content.is_empty)

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            **self.job.to_dict(),
            **self.content.to_dict(),
            "has_output": self.last_output is not None and self.last_output.exists(),
        }

    # ==================== Notifications ====================

    def _notify(self, message: str, severity: Severity, duration_ms: int):
        self.sink.notify(message, severity, duration_ms)

    def _notify_error(self, error: VpdfError):
        self._notify(error.message, Severity(error.severity), self.config.duration_for(error))

    async def _hold(self, since: float, duration_ms: int):
        """Keep the current notification up for at least duration_ms."""
        elapsed = asyncio.get_running_loop().time() - since
        remaining = duration_ms / 1000 - elapsed
        if remaining > 0:
            await self._sleep(remaining)

    # ==================== Editing ====================

    def edit(self, raw: Optional[str]) -> CanonicalContent:
        """Replace content with editor output (plain or HTML)."""
        return self.model.set_raw(raw)

    def finalize(self, markup: Optional[str] = None, text: Optional[str] = None) -> CanonicalContent:
        """
        Editing finished: decide between rich markup and plain text.

        With no arguments the model's own surface is read; otherwise the
        given surface snapshot is.
        """
        if markup is None and text is None:
            return self.model.finalize()
        markup = markup or ""
        surface = SnapshotSurface(markup, text if text is not None else html_to_text(markup))
        return self.model.replace(self.model.normalizer.finalize(surface))

    def apply_format(self, command: str, value: Optional[str] = None) -> CanonicalContent:
        return self.model.apply_format(command, value)

    # ==================== Upload ====================

    async def upload(self, source: UploadedSource) -> CanonicalContent:
        """
        Ingest a file and replace the content with its text.

        Raises:
            UnsupportedFormat / IoError / ExtractionError: after notifying;
            content and job state are left untouched
        """
        try:
            self.ingestor.validate(source)
            if self.ingestor.is_binary(source):
                text = await self._ingest_binary(source)
            else:
                text = await self.ingestor.ingest(source)
        except VpdfError as e:
            logger.warning("Upload of %s failed: %s", source.filename, e.message)
            self._notify_error(e)
            raise

        content = self.model.set_plain(text)
        logger.info("Session %s: loaded %s (%d chars)", self.id, source.filename, len(text))
        return content

    async def _ingest_binary(self, source: UploadedSource) -> str:
        loop = asyncio.get_running_loop()
        self._notify(UPLOADED_MESSAGE.format(name=source.filename), Severity.INFO, self.config.upload_ms)
        uploaded_at = loop.time()

        extraction = asyncio.ensure_future(self.ingestor.ingest(source))
        try:
            await self._hold(uploaded_at, self.config.upload_ms)
            self._notify(EXTRACTING_MESSAGE, Severity.INFO, self.config.extracting_ms)
            extracting_at = loop.time()
            text = await extraction
            await self._hold(extracting_at, self.config.extracting_ms)
        finally:
            if not extraction.done():
                extraction.cancel()
        return text

    # ==================== Convert ====================

    async def convert(self) -> Optional[Path]:
        """
        Run the conversion job.

        Returns:
            Path of the saved PDF, or None when a conversion is already
            running (the call is ignored)

        Raises:
            EmptyContent: No content; state is unchanged
            VpdfError: Render or save failed; the job is back to UNLOCKED
        """
        if self.job.busy:
            logger.info("Session %s: convert ignored, job is %s", self.id, self.job.state.value)
            return None

        content = self.content
        if content.is_empty:
            error = EmptyContent()
            self._notify_error(error)
            raise error

        self.job.start()
        loop = asyncio.get_running_loop()
        self._notify(RENDERING_MESSAGE, Severity.INFO, self.config.rendering_ms)
        started = loop.time()

        try:
            result = await self._render(content.html)
            await self._hold(started, self.config.rendering_ms)
        except asyncio.CancelledError:
            self.job.fail("cancelled")
            self.job.finish()
            raise
        except VpdfError as e:
            self._fail(e)
            raise
        except asyncio.TimeoutError as e:
            logger.error("Session %s: rendering timed out after %ss", self.id, self.config.render_timeout)
            error = RenderWriteError()
            self._fail(error)
            raise error from e
        except Exception as e:
            logger.exception("Session %s: rendering failed", self.id)
            error = RenderWriteError()
            self._fail(error)
            raise error from e

        self.job.succeed()
        delay_s = self.config.download_delay_ms / 1000
        self._notify(READY_MESSAGE.format(seconds=delay_s), Severity.INFO, self.config.ready_ms)
        logger.info("Session %s: rendered %d pages", self.id, result.page_count)

        self._delivery = asyncio.ensure_future(self._deliver(result.path, delay_s))
        # The save survives cancellation of the caller
        return await asyncio.shield(self._delivery)

    async def _render(self, html: str):
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(
            None, functools.partial(self.renderer.render_to_temp, html, self.output_dir)
        )
        try:
            return await asyncio.wait_for(asyncio.shield(call), timeout=self.config.render_timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            # The worker thread cannot be stopped; drop its file once it ends
            call.add_done_callback(_discard_render)
            raise

    async def _deliver(self, temp_path: Path, delay_s: float) -> Path:
        self._delay = asyncio.ensure_future(self._sleep(delay_s))
        try:
            await self._delay
        except asyncio.CancelledError:
            if not self._flushing:
                temp_path.unlink(missing_ok=True)
                self.job.finish()
                raise
            logger.info("Session %s: flushing pending save", self.id)
        finally:
            self._delay = None

        loop = asyncio.get_running_loop()
        try:
            path = await loop.run_in_executor(None, save_output, temp_path, self.output_path)
        except VpdfError as e:
            self._fail(e)
            raise

        self.last_output = path
        self._notify(COMPLETE_MESSAGE, Severity.SUCCESS, self.config.complete_ms)
        self.job.finish()
        return path

    def _fail(self, error: VpdfError):
        self.job.fail(error.message)
        self._notify_error(error)
        self.job.finish()

    async def aclose(self):
        """
        End the session. A save still waiting for its download delay is
        performed immediately instead of being dropped.
        """
        delivery = self._delivery
        if delivery is None or delivery.done():
            return
        self._flushing = True
        if self._delay is not None and not self._delay.done():
            self._delay.cancel()
        try:
            await delivery
        except VpdfError as e:
            # Already reported by _deliver
            logger.warning("Session %s: pending save failed on close: %s", self.id, e.message)
        finally:
            self._flushing = False
