from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

MappedFieldSet = dict[str, str]


class PipelineStage(str, Enum):
    """Stages of one document pipeline run, in execution order."""

    LOADING = "LOADING"
    VALIDATING_PAGE1 = "VALIDATING_PAGE1"
    RENDERING_PAGE1 = "RENDERING_PAGE1"
    VALIDATING_PAGE2 = "VALIDATING_PAGE2"
    RENDERING_PAGE2 = "RENDERING_PAGE2"
    STAGING = "STAGING"
    MERGING = "MERGING"
    PUBLISHING = "PUBLISHING"
    UPDATING_RECORD = "UPDATING_RECORD"
    CLEANING_UP = "CLEANING_UP"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class StagedFile:
    """A document held in the local temp directory during one run."""

    path: Path
    size_bytes: int


@dataclass(slots=True)
class PipelineRun:
    """Execution context of one pipeline invocation. Never persisted."""

    record_id: int
    staged_files: list[StagedFile] = field(default_factory=list)
    completed_stages: list[PipelineStage] = field(default_factory=list)
    stage: PipelineStage = PipelineStage.LOADING
    output_path: Path | None = None

    def enter(self, stage: PipelineStage) -> None:
        """Mark the current stage completed and move to ``stage``."""
        self.completed_stages.append(self.stage)
        self.stage = stage


@dataclass(frozen=True)
class PipelineResult:
    """Successful outcome of a run."""

    record_id: int
    url: str
    completed_stages: tuple[PipelineStage, ...] = ()
