from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import FailureKind, ResultSource, Stage, STAGE_PROGRESS
from .analysis import AnalysisResult


class ProgressUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    stage: Stage = Stage.IDLE
    percent: int = Field(default=0, ge=0, le=100)

    @classmethod
    def for_stage(cls, stage: Stage) -> "ProgressUpdate":
        return cls(stage=stage, percent=STAGE_PROGRESS[stage])


class StageAttempt(BaseModel):
    """What happened at one stage of a fallback chain."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    stage: Stage
    succeeded: bool
    failure_kind: Optional[FailureKind] = None
    detail: str = ""
    # Best-effort normalization of a response that failed the shape check
    partial: Optional[AnalysisResult] = None


class AnalysisOutcome(BaseModel):
    """Terminal value of one orchestration run: a result or a user-facing error, never both."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    source: Optional[ResultSource] = None
    timed_out: bool = False
    caveat: Optional[str] = None
    # Set on legal validation results that should go to a human lawyer
    review_required: bool = False
    attempts: List[StageAttempt] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.result is not None
