from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models.analysis import AnalysisResult
from ..models.drafts import FormDraft
from ..models.outcome import AnalysisOutcome, ProgressUpdate


class SessionState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    draft: FormDraft
    result: Optional[AnalysisResult] = None
    progress: ProgressUpdate
    error: Optional[str] = None
    in_progress: bool = False
    last_outcome: Optional[AnalysisOutcome] = None
    updated_at: datetime

    @classmethod
    def from_session(cls, session) -> "SessionState":
        return cls(
            session_id=session.session_id,
            draft=session.draft,
            result=session.result,
            progress=session.progress,
            error=session.error,
            in_progress=session.in_progress,
            last_outcome=session.last_outcome,
            updated_at=session.updated_at,
        )


class ValidateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    validation_type: str = "assessment"
    context: Optional[Dict[str, Any]] = None
