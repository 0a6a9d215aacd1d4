"""
Shared models for the conversion service.

Dataclasses hold the transient per-request state (never persisted);
Pydantic models define the HTTP response bodies.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStage(str, Enum):
    """Pipeline stage of a conversion job."""

    RECEIVED = "received"
    VALIDATED = "validated"
    EXTRACTED = "extracted"
    RENDERED = "rendered"
    DELIVERED = "delivered"
    FAILED = "failed"


# Forward-only order for the success path
_STAGE_ORDER = [
    JobStage.RECEIVED,
    JobStage.VALIDATED,
    JobStage.EXTRACTED,
    JobStage.RENDERED,
    JobStage.DELIVERED,
]

TERMINAL_STAGES = frozenset({JobStage.DELIVERED, JobStage.FAILED})


@dataclass
class UploadedArtifact:
    """Temporary input file written by the upload receiver."""

    stored_name: str
    original_filename: str
    extension: str
    size_bytes: int
    directory: Path
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def path(self) -> Path:
        return self.directory / self.stored_name


@dataclass
class ConversionJob:
    """In-memory record of one conversion request."""

    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    artifact: Optional[UploadedArtifact] = None
    extracted_markup: Optional[str] = None
    styled_markup: Optional[str] = None
    output_path: Optional[Path] = None
    stage: JobStage = JobStage.RECEIVED
    outcome: Optional[str] = None
    failure_reason: Optional[str] = None
    artifacts_released: bool = False
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: JobStage) -> None:
        """
        Move the job to the next stage of the success path.

        Raises:
            ValueError: If ``stage`` is not the immediate successor of the
                current stage.
        """
        if self.is_terminal or stage is JobStage.FAILED:
            raise ValueError(f"Cannot move job {self.job_id} from {self.stage.value} to {stage.value}")

        current = _STAGE_ORDER.index(self.stage)
        if current + 1 >= len(_STAGE_ORDER) or _STAGE_ORDER[current + 1] is not stage:
            raise ValueError(f"Cannot move job {self.job_id} from {self.stage.value} to {stage.value}")

        self.stage = stage
        if stage is JobStage.DELIVERED:
            self.outcome = "success"

    def fail(self, reason: str) -> None:
        """Mark the job as failed. No-op once the job is terminal."""
        if self.is_terminal:
            return
        self.stage = JobStage.FAILED
        self.outcome = "failure"
        self.failure_reason = reason

    def artifact_paths(self) -> List[Path]:
        """Input and output paths registered on this job, in creation order."""
        paths = []
        if self.artifact is not None:
            paths.append(self.artifact.path)
        if self.output_path is not None:
            paths.append(self.output_path)
        return paths


class ErrorResponse(BaseModel):
    """Failure body returned for every pipeline error."""

    success: bool = False
    message: str = Field(..., description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    timestamp: datetime
    playwright_ready: bool = True
    playwright_error: Optional[str] = None
    temp_dir: str
