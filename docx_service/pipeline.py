"""
Conversion pipeline coordinator.

Runs one upload through receive -> extract -> wrap -> render, streams the
PDF back and removes both temporary artifacts on every exit path.
"""

import asyncio
import logging
from contextlib import ExitStack
from pathlib import Path

from fastapi import UploadFile
from fastapi.responses import FileResponse

from .config import ConverterSettings
from .exceptions import ConversionError, DeliveryError
from .extractor import extract_markup
from .html_helpers import build_print_html, derive_output_path, to_pdf_filename
from .models import ConversionJob, JobStage
from .renderer import render_pdf
from .upload import receive_upload

logger = logging.getLogger(__name__)


def release_artifacts(job: ConversionJob) -> None:
    """
    Remove the job's input and output files.

    Safe to call more than once and on jobs that never created a file.
    Removal errors are logged and swallowed so they never mask the job's
    own outcome.
    """
    if job.artifacts_released:
        return
    job.artifacts_released = True

    for path in job.artifact_paths():
        try:
            path.unlink()
            logger.debug(f"[{job.job_id}] Removed {path.name}")
        except FileNotFoundError:
            logger.debug(f"[{job.job_id}] {path.name} already removed")
        except OSError as exc:
            logger.error(f"[{job.job_id}] Cleanup error for {path}: {exc}")


class ArtifactFileResponse(FileResponse):
    """
    FileResponse that owns a finished job.

    The job's artifacts are released once sending ends, whether the
    transfer completed, failed or was cancelled.
    """

    def __init__(self, job: ConversionJob, filename: str):
        super().__init__(
            job.output_path,
            media_type="application/pdf",
            filename=filename,
        )
        self.job = job

    async def __call__(self, scope, receive, send) -> None:
        completed = False

        async def tracking_send(message) -> None:
            nonlocal completed
            await send(message)
            if message["type"] == "http.response.pathsend" or (
                message["type"] == "http.response.body" and not message.get("more_body", False)
            ):
                completed = True

        try:
            await super().__call__(scope, receive, tracking_send)
        except asyncio.CancelledError:
            self._delivery_failed(DeliveryError("Delivery cancelled"))
            raise
        except Exception as exc:
            # Response already started; nothing more can be sent to the caller
            self._delivery_failed(DeliveryError(f"{type(exc).__name__}: {exc}"))
        else:
            # Starlette may absorb a disconnect and return normally
            if completed:
                self.job.advance(JobStage.DELIVERED)
                logger.info(f"[{self.job.job_id}] Delivered {self.job.output_path.name}")
            else:
                self._delivery_failed(DeliveryError("Client disconnected before the PDF was fully sent"))
        finally:
            release_artifacts(self.job)

    def _delivery_failed(self, error: DeliveryError) -> None:
        self.job.fail(error.message)
        logger.error(f"[{self.job.job_id}] Delivery failed: {error.message}")


async def run_conversion(upload: UploadFile, settings: ConverterSettings) -> ArtifactFileResponse:
    """
    Convert an uploaded Word document into a streaming PDF response.

    Args:
        upload: Multipart file from the request
        settings: Service configuration

    Returns:
        ArtifactFileResponse that cleans up after itself once sent

    Raises:
        ConversionError: Any stage failure. Artifacts created so far are
            already removed when this propagates.
    """
    job = ConversionJob()
    logger.info(f"[{job.job_id}] Conversion requested for {upload.filename!r}")

    with ExitStack() as cleanup:
        cleanup.callback(release_artifacts, job)

        try:
            job.artifact = await receive_upload(
                upload,
                upload.filename,
                settings.temp_upload_dir,
                declared_size=getattr(upload, "size", None),
                chunk_size=settings.upload_chunk_size,
            )
            job.advance(JobStage.VALIDATED)

            job.extracted_markup = await extract_markup(
                job.artifact.path,
                soffice_binary=settings.soffice_binary,
                soffice_timeout=settings.soffice_timeout_seconds,
            )
            job.advance(JobStage.EXTRACTED)

            job.styled_markup = build_print_html(
                job.extracted_markup,
                title=Path(job.artifact.original_filename).stem,
            )
            # Registered before rendering so a partial PDF is cleaned up too
            job.output_path = derive_output_path(job.artifact.path)
            await render_pdf(
                job.styled_markup,
                job.output_path,
                timeout_ms=settings.playwright_timeout,
                headless=settings.playwright_headless,
                overall_timeout=settings.render_timeout_seconds,
            )
            job.advance(JobStage.RENDERED)

        except ConversionError as exc:
            logger.warning(
                f"[{job.job_id}] {type(exc).__name__} after stage {job.stage.value}: {exc.message}"
            )
            job.fail(exc.message)
            raise
        except asyncio.CancelledError:
            job.fail("Request cancelled")
            logger.warning(f"[{job.job_id}] Conversion cancelled")
            raise
        except Exception as exc:
            job.fail(str(exc))
            logger.exception(f"[{job.job_id}] Unexpected conversion failure")
            raise ConversionError() from exc

        response = ArtifactFileResponse(
            job, filename=to_pdf_filename(job.artifact.original_filename)
        )
        # Ownership of the artifacts moves to the response
        cleanup.pop_all()

    return response
