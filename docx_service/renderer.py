"""
PDF renderer.

Renders the printable HTML to an A4 PDF with a dedicated headless Chromium
per call. The browser is always closed before returning.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from .exceptions import RenderError

logger = logging.getLogger(__name__)

PDF_FORMAT = "A4"
PDF_MARGIN = {"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"}
PDF_SIGNATURE = b"%PDF"


async def _render_bytes(html: str, timeout_ms: int, headless: bool) -> bytes:
    # Import here so the app starts even without the browser installed
    from playwright.async_api import async_playwright

    async with async_playwright() as p:
        try:
            browser = await p.chromium.launch(headless=headless)
        except Exception as exc:
            logger.error(f"Chromium launch failed: {exc}")
            raise RenderError(f"No se pudo iniciar el navegador: {exc}") from exc

        try:
            page = await browser.new_page()
            page.set_default_timeout(timeout_ms)

            # Wait for embedded images and other resources to settle
            await page.set_content(html, wait_until="networkidle", timeout=timeout_ms)
            await page.wait_for_load_state("networkidle", timeout=timeout_ms)

            return await page.pdf(
                format=PDF_FORMAT,
                print_background=True,
                margin=PDF_MARGIN,
            )
        finally:
            await browser.close()


async def render_pdf(
    html: str,
    output_path: Path,
    timeout_ms: int = 30000,
    headless: bool = True,
    overall_timeout: Optional[float] = None,
) -> int:
    """
    Render HTML to PDF and write it to ``output_path``.

    Args:
        html: Complete HTML document
        output_path: Destination of the PDF artifact
        timeout_ms: Playwright timeout for content load and PDF generation
        headless: Launch Chromium headless
        overall_timeout: Bound on the whole render in seconds
            (defaults to twice ``timeout_ms``)

    Returns:
        Number of PDF bytes written

    Raises:
        RenderError: Launch failure, load timeout, empty output or write failure
    """
    if overall_timeout is None:
        overall_timeout = timeout_ms * 2 / 1000

    from playwright.async_api import TimeoutError as PlaywrightTimeoutError

    try:
        pdf_bytes = await asyncio.wait_for(
            _render_bytes(html, timeout_ms, headless), timeout=overall_timeout
        )
    except RenderError:
        raise
    except (asyncio.TimeoutError, PlaywrightTimeoutError) as exc:
        logger.error("PDF rendering timed out")
        raise RenderError(f"Rendering timed out after {timeout_ms}ms") from exc
    except Exception as exc:
        logger.error(f"PDF rendering failed: {exc}")
        raise RenderError(f"Rendering failed: {exc}") from exc

    if not pdf_bytes:
        logger.error("PDF rendering returned an empty result")
        raise RenderError("Rendering produced an empty PDF")

    try:
        await run_in_threadpool(Path(output_path).write_bytes, pdf_bytes)
    except OSError as exc:
        logger.error(f"Could not write PDF to {output_path}: {exc}")
        raise RenderError(f"Could not write PDF: {exc}") from exc

    logger.info(f"Rendered {len(pdf_bytes)} byte PDF to {Path(output_path).name}")
    return len(pdf_bytes)


async def check_renderer(
    headless: bool = True,
    timeout_ms: int = 30000,
    overall_timeout: Optional[float] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Validate Playwright/Chromium by rendering a tiny test page.

    Uses the same bounds as a real render: ``timeout_ms`` per Playwright
    call and ``overall_timeout`` seconds in total (twice ``timeout_ms``
    when not given).

    Returns:
        (ready, error message or None)
    """
    if overall_timeout is None:
        overall_timeout = timeout_ms * 2 / 1000

    try:
        pdf_bytes = await asyncio.wait_for(
            _render_bytes("<html><body><h1>Test</h1></body></html>", timeout_ms, headless),
            timeout=overall_timeout,
        )
    except Exception as exc:
        return False, str(exc) or type(exc).__name__

    if not pdf_bytes:
        return False, "Test PDF generation returned empty result"
    return True, None
