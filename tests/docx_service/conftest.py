"""
Pytest fixtures for conversion service tests.
"""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

# IMPORTANT: Set environment variables BEFORE any imports from docx_service
# so ConverterSettings is configured correctly when first loaded.
os.environ["ENVIRONMENT"] = "development"
os.environ["VALIDATE_RENDERER_ON_STARTUP"] = "false"
os.environ["PLAYWRIGHT_TIMEOUT"] = "5000"

import pytest
from docx import Document


@pytest.fixture(autouse=True)
def temp_upload_dir(tmp_path, monkeypatch):
    """Point the scratch directory at a per-test location."""
    from docx_service.config import get_settings

    upload_dir = tmp_path / "uploads" / "temp"
    monkeypatch.setenv("TEMP_UPLOAD_DIR", str(upload_dir))
    get_settings.cache_clear()
    yield upload_dir
    get_settings.cache_clear()


@pytest.fixture
def leftover_files(temp_upload_dir):
    """Return a callable listing whatever is still in the scratch directory."""
    def _list():
        if not temp_upload_dir.exists():
            return []
        return sorted(p.name for p in temp_upload_dir.iterdir())
    return _list


@pytest.fixture
def docx_bytes(tmp_path):
    """A small well-formed .docx with a heading, a paragraph and a table."""
    document = Document()
    document.add_heading("Informe trimestral", level=1)
    document.add_paragraph("Ventas por región durante el trimestre.")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Región"
    table.cell(0, 1).text = "Total"
    table.cell(1, 0).text = "Norte"
    table.cell(1, 1).text = "1200"

    path = tmp_path / "fixture.docx"
    document.save(str(path))
    return path.read_bytes()


@pytest.fixture
def docx_file(tmp_path, docx_bytes):
    """The well-formed .docx written to disk."""
    path = tmp_path / "report.docx"
    path.write_bytes(docx_bytes)
    return path


@pytest.fixture
def empty_docx_file(tmp_path):
    """A valid .docx without any body content."""
    path = tmp_path / "empty.docx"
    Document().save(str(path))
    return path


def build_chromium_mock(pdf_bytes=b"%PDF-1.4 fake pdf content"):
    """
    Mock the async_playwright() -> chromium.launch() -> new_page() chain.

    Returns a namespace holding the page and browser mocks so tests can
    tweak and inspect them.
    """
    mock_page = AsyncMock()
    mock_page.set_default_timeout = MagicMock()
    mock_page.pdf = AsyncMock(return_value=pdf_bytes)

    mock_browser = AsyncMock()
    mock_browser.new_page = AsyncMock(return_value=mock_page)

    mock_chromium = MagicMock(launch=AsyncMock(return_value=mock_browser))
    return SimpleNamespace(page=mock_page, browser=mock_browser, chromium=mock_chromium)


@pytest.fixture
def mock_chromium():
    """Patch Playwright so no real browser is launched."""
    mocks = build_chromium_mock()
    with patch("playwright.async_api.async_playwright") as mock_playwright:
        mock_playwright.return_value.__aenter__ = AsyncMock(
            return_value=MagicMock(chromium=mocks.chromium)
        )
        mock_playwright.return_value.__aexit__ = AsyncMock(return_value=False)
        mocks.playwright = mock_playwright
        yield mocks
