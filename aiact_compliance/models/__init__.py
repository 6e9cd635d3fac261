# This file makes the 'models' directory a Python package.

from .analysis import AnalysisResult, Issue, LocalAssessment, CANONICAL_WIRE_KEYS
from .drafts import FormDraft
from .knowledge import ArticleRecord, ArticleSuggestion, SuggestionResult
from .outcome import AnalysisOutcome, ProgressUpdate, StageAttempt

__all__ = [
    "AnalysisResult",
    "Issue",
    "LocalAssessment",
    "CANONICAL_WIRE_KEYS",
    "FormDraft",
    "ArticleRecord",
    "ArticleSuggestion",
    "SuggestionResult",
    "AnalysisOutcome",
    "ProgressUpdate",
    "StageAttempt",
]
