# This file makes the 'orchestration' directory a Python package.

from .orchestrator import FallbackOrchestrator, legal_validation_orchestrator, risk_analysis_orchestrator
from .session import (
    AnalysisInProgressError,
    DraftIncompleteError,
    SessionClosedError,
    SessionNotFoundError,
    SessionStore,
    WizardSession,
)
from .state_machine import OrchestratorState, transition

__all__ = [
    "FallbackOrchestrator",
    "legal_validation_orchestrator",
    "risk_analysis_orchestrator",
    "AnalysisInProgressError",
    "DraftIncompleteError",
    "SessionClosedError",
    "SessionNotFoundError",
    "SessionStore",
    "WizardSession",
    "OrchestratorState",
    "transition",
]
