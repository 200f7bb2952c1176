"""
Shared fixtures for the vpdf test suite.
"""

import base64
import io
from unittest.mock import AsyncMock

import pytest
from docx import Document
from PIL import Image

from core.conversion import ConversionSession, NotificationCenter, SessionConfig
from core.pdf_engine import FontManager, PageGeometry, PdfRenderer, StyleBuilder


@pytest.fixture
def font_manager():
    """Standard PDF fonts only, so measurements do not depend on installed TTFs."""
    return FontManager(use_dejavu=False)


@pytest.fixture
def style_builder(font_manager):
    return StyleBuilder(font_manager)


@pytest.fixture
def geometry():
    return PageGeometry.default()


@pytest.fixture
def renderer(geometry, font_manager):
    return PdfRenderer(geometry=geometry, font_manager=font_manager)


@pytest.fixture
def fast_sleep():
    """Stand-in for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def session_config(tmp_path):
    return SessionConfig(output_dir=tmp_path / "output")


@pytest.fixture
def center():
    return NotificationCenter()


@pytest.fixture
def session(renderer, center, session_config, fast_sleep):
    return ConversionSession(
        renderer=renderer,
        sink=center,
        config=session_config,
        sleep=fast_sleep,
        session_id="test-session",
    )


@pytest.fixture
def make_docx():
    """Build .docx bytes from paragraphs and optional table rows."""

    def _make(paragraphs, table_rows=None):
        doc = Document()
        for text in paragraphs:
            doc.add_paragraph(text)
        if table_rows:
            table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
            for r, row in enumerate(table_rows):
                for c, value in enumerate(row):
                    table.cell(r, c).text = value
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_bytes():
    """A 20x10 red PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (20, 10), (255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_png_uri():
    """data: URI of a solid PNG of the given size."""

    def _make(width, height):
        buffer = io.BytesIO()
        Image.new("RGB", (width, height), (0, 128, 255)).save(buffer, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")

    return _make


@pytest.fixture
def api_store(renderer, tmp_path, fast_sleep):
    """Session store for the API, rendering into tmp_path without delays."""
    from api.deps import SessionStore

    def factory(sink):
        return ConversionSession(
            renderer=renderer,
            sink=sink,
            config=SessionConfig(output_dir=tmp_path / "output"),
            sleep=fast_sleep,
        )

    return SessionStore(max_sessions=5, factory=factory)


@pytest.fixture
def client(api_store):
    from fastapi.testclient import TestClient

    from api.deps import get_store
    from api.main import app
    from api.rate_limiter import limiter

    app.dependency_overrides[get_store] = lambda: api_store
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True
