"""
Content extractor.

Turns a Word document into semantic HTML with mammoth. Legacy ``.doc``
files are first converted to ``.docx`` by a headless LibreOffice run.
"""

import asyncio
import logging
import re
import tempfile
from pathlib import Path

import mammoth
from fastapi.concurrency import run_in_threadpool

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


def has_content(markup: str) -> bool:
    """True if the markup carries visible text or at least one image."""
    if not markup:
        return False
    if "<img" in markup:
        return True
    return bool(_TAG_RE.sub("", markup).strip())


def _convert_docx(path: Path) -> str:
    """Run mammoth on a .docx file (blocking)."""
    with open(path, "rb") as docx_file:
        result = mammoth.convert_to_html(docx_file)

    for message in result.messages:
        logger.debug(f"mammoth {message.type} for {path.name}: {message.message}")
    if result.messages:
        logger.info(f"mammoth reported {len(result.messages)} message(s) for {path.name}")

    return result.value


async def convert_doc_to_docx(
    path: Path,
    out_dir: Path,
    soffice_binary: str = "soffice",
    timeout_seconds: int = 60,
) -> Path:
    """
    Convert a legacy .doc file to .docx with LibreOffice.

    Each run gets its own LibreOffice profile inside ``out_dir`` so
    concurrent conversions do not fight over the default profile lock.

    Returns:
        Path of the generated .docx inside ``out_dir``

    Raises:
        ExtractionError: LibreOffice missing, timed out or produced nothing
    """
    profile_dir = out_dir / "lo-profile"
    cmd = [
        soffice_binary,
        f"-env:UserInstallation={profile_dir.as_uri()}",
        "--headless",
        "--convert-to",
        "docx",
        "--outdir",
        str(out_dir),
        str(path),
    ]

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        logger.error(f"Could not start LibreOffice ({soffice_binary}): {exc}")
        raise ExtractionError(
            "No se pudo procesar el archivo .doc: LibreOffice no está disponible en el servidor."
        ) from exc

    try:
        output, _ = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        # Kill the process on timeout
        process.kill()
        await process.wait()
        logger.error(f"LibreOffice timed out after {timeout_seconds}s on {path.name}")
        raise ExtractionError(f"La conversión del archivo .doc excedió {timeout_seconds}s")
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            # Reap the child even though this task is being cancelled
            await asyncio.shield(process.wait())
        raise

    converted = out_dir / f"{path.stem}.docx"
    if process.returncode != 0 or not converted.exists():
        detail = (output or b"").decode(errors="replace").strip()
        logger.error(f"LibreOffice failed on {path.name} (exit {process.returncode}): {detail}")
        raise ExtractionError("No se pudo leer el archivo .doc")

    return converted


async def extract_markup(
    path: Path,
    soffice_binary: str = "soffice",
    soffice_timeout: int = 60,
) -> str:
    """
    Extract the document body of a Word file as HTML.

    Args:
        path: Uploaded .doc/.docx file (not modified)
        soffice_binary: LibreOffice executable for .doc input
        soffice_timeout: Bound on the .doc pre-conversion in seconds

    Returns:
        Non-empty HTML fragment (headings, paragraphs, lists, tables and
        images embedded as data URIs)

    Raises:
        ExtractionError: Unreadable, corrupt or empty document
    """
    path = Path(path)
    if not path.is_file():
        raise ExtractionError("No se encontró el archivo subido")

    try:
        if path.suffix.lower() == ".doc":
            with tempfile.TemporaryDirectory(prefix="doc2docx-") as scratch:
                docx_path = await convert_doc_to_docx(
                    path, Path(scratch), soffice_binary, soffice_timeout
                )
                markup = await run_in_threadpool(_convert_docx, docx_path)
        else:
            markup = await run_in_threadpool(_convert_docx, path)
    except ExtractionError:
        raise
    except Exception as exc:
        logger.error(f"Extraction failed for {path.name}: {type(exc).__name__}: {exc}")
        raise ExtractionError(
            "El documento está dañado o no es un archivo Word válido"
        ) from exc

    if not has_content(markup):
        logger.warning(f"Extraction produced no content for {path.name}")
        raise ExtractionError("El documento no contiene contenido para convertir")

    logger.info(f"Extracted {len(markup)} characters of HTML from {path.name}")
    return markup
