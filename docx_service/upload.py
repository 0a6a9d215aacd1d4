"""
Upload receiver.

Validates the uploaded Word document and copies it into the scratch
directory under a collision-free name.
"""

import logging
import os
import random
import time
from pathlib import Path
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from .config import ALLOWED_EXTENSIONS, MAX_UPLOAD_BYTES
from .exceptions import ValidationError
from .models import UploadedArtifact

logger = logging.getLogger(__name__)

MISSING_FILE_MESSAGE = "No se subió ningún archivo"
BAD_EXTENSION_MESSAGE = "Solo se permiten archivos Word (.doc, .docx)"
TOO_LARGE_MESSAGE = "El archivo es demasiado grande. Máximo 10MB."

# Attempts at finding a free name before giving up
_MAX_NAME_ATTEMPTS = 5


def generate_stored_name(extension: str) -> str:
    """
    Build a unique temp filename: ``<epoch-ms>-<random 9 digits><ext>``.

    Example:
        >>> generate_stored_name(".docx")
        "1733400000123-482913004.docx"
    """
    return f"{time.time_ns() // 1_000_000}-{random.randint(0, 999_999_999)}{extension}"


def validate_extension(original_filename: Optional[str]) -> str:
    """
    Return the lower-cased extension of an accepted Word filename.

    Raises:
        ValidationError: If the filename is missing or not .doc/.docx
    """
    if not original_filename or not original_filename.strip():
        raise ValidationError(MISSING_FILE_MESSAGE)

    extension = os.path.splitext(original_filename.strip())[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(BAD_EXTENSION_MESSAGE)
    return extension


def _open_exclusive(directory: Path, extension: str):
    """Create a new file that did not exist before. Returns (path, handle)."""
    for _ in range(_MAX_NAME_ATTEMPTS):
        path = directory / generate_stored_name(extension)
        try:
            return path, open(path, "xb")
        except FileExistsError:
            logger.warning(f"Temp name collision on {path.name}, regenerating")
    raise OSError(f"Could not allocate a unique temp file in {directory}")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


async def receive_upload(
    stream,
    original_filename: Optional[str],
    temp_dir: Path,
    declared_size: Optional[int] = None,
    chunk_size: int = 64 * 1024,
) -> UploadedArtifact:
    """
    Validate an upload and persist it to ``temp_dir``.

    Args:
        stream: Object with an awaitable ``read(size)`` (e.g. FastAPI UploadFile)
        original_filename: Filename declared by the client
        temp_dir: Scratch directory, created if missing
        declared_size: Size reported by the client/parser, if known
        chunk_size: Bytes read per iteration

    Returns:
        The persisted UploadedArtifact

    Raises:
        ValidationError: Missing file, wrong extension or more than 10 MiB.
            No file is left behind.
    """
    extension = validate_extension(original_filename)

    if declared_size is not None and declared_size > MAX_UPLOAD_BYTES:
        logger.warning(f"Rejecting {original_filename!r}: declared size {declared_size} bytes")
        raise ValidationError(TOO_LARGE_MESSAGE)

    temp_dir = Path(temp_dir)
    await run_in_threadpool(temp_dir.mkdir, parents=True, exist_ok=True)

    path, handle = await run_in_threadpool(_open_exclusive, temp_dir, extension)
    written = 0
    try:
        with handle:
            while True:
                chunk = await stream.read(chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > MAX_UPLOAD_BYTES:
                    raise ValidationError(TOO_LARGE_MESSAGE)
                await run_in_threadpool(handle.write, chunk)
    except BaseException:
        # Partial file must not outlive a failed upload; no await here so a
        # cancelled request still removes it
        _discard(path)
        if written > MAX_UPLOAD_BYTES:
            logger.warning(f"Rejecting {original_filename!r}: exceeded {MAX_UPLOAD_BYTES} bytes while streaming")
        raise

    logger.info(f"Stored upload {original_filename!r} as {path.name} ({written} bytes)")

    return UploadedArtifact(
        stored_name=path.name,
        original_filename=original_filename,
        extension=extension,
        size_bytes=written,
        directory=temp_dir,
    )
