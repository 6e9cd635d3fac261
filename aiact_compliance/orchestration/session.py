import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from ..clients.compliance_api import ComplianceApiClient
from ..constants import Stage
from ..models.analysis import AnalysisResult
from ..models.drafts import FormDraft
from ..models.outcome import AnalysisOutcome, ProgressUpdate
from .orchestrator import legal_validation_orchestrator, risk_analysis_orchestrator

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """No open session with the given id."""


class AnalysisInProgressError(Exception):
    """A second analysis was requested while one is still running for the session."""


class DraftIncompleteError(ValueError):
    """The draft lacks the fields an analysis needs."""


class SessionClosedError(Exception):
    """The session was closed (the user navigated away)."""


class WizardSession:
    """
    State behind one wizard instance: the draft being edited and the latest
    analysis result, progress and error.

    At most one orchestration runs per session. The flag is claimed
    synchronously, before the first await, so two requests racing on the same
    event loop cannot both start a run.
    """

    def __init__(self, client: ComplianceApiClient, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.client = client
        self.draft = FormDraft()
        self.result: Optional[AnalysisResult] = None
        self.last_outcome: Optional[AnalysisOutcome] = None
        self.error: Optional[str] = None
        self.in_progress = False
        self.progress = ProgressUpdate()
        self.closed = False
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = self.created_at

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"Session {self.session_id} is closed")

    # --- Draft ---

    def update_draft(self, updates: Mapping[str, Any]) -> FormDraft:
        self._ensure_open()
        self.draft = self.draft.merged(updates)
        self._touch()
        return self.draft

    def reset_draft(self) -> FormDraft:
        self._ensure_open()
        self.draft = FormDraft()
        self._touch()
        return self.draft

    # --- Error state ---

    def dismiss_error(self) -> None:
        self.error = None
        self._touch()

    # --- Lifecycle ---

    def close(self) -> None:
        """Discards the draft; any orchestration still running will not write back."""
        self.closed = True
        self.draft = FormDraft()
        logger.info(f"Session {self.session_id} closed (in_progress={self.in_progress})")

    # --- Callbacks handed to the orchestrator; all no-ops once closed ---

    def _set_progress(self, update: ProgressUpdate) -> None:
        if self.closed:
            return
        self.progress = update

    def _set_in_progress(self, value: bool) -> None:
        if self.closed:
            return
        self.in_progress = value

    def _apply_outcome(self, outcome: AnalysisOutcome) -> None:
        if self.closed:
            logger.debug(f"Session {self.session_id} closed before completion; discarding outcome")
            return
        self.last_outcome = outcome
        if outcome.result is not None:
            self.result = outcome.result # Single assignment of the frozen result
            self.error = None
        else:
            self.error = outcome.error
        self._touch()

    # --- Runs ---

    def _claim(self) -> None:
        self._ensure_open()
        if self.in_progress:
            raise AnalysisInProgressError(f"An analysis is already running for session {self.session_id}")
        self.in_progress = True
        self.error = None
        self.progress = ProgressUpdate.for_stage(Stage.IDLE)

    async def _run(self, orchestrator) -> AnalysisOutcome:
        try:
            return await orchestrator.run(
                on_progress=self._set_progress,
                on_in_progress=self._set_in_progress,
                on_complete=self._apply_outcome,
            )
        finally:
            self.in_progress = False

    async def run_risk_analysis(self) -> AnalysisOutcome:
        """
        Runs enhanced-risk -> system analysis -> local classifier for the current draft.

        Raises:
            DraftIncompleteError: name or department missing.
            AnalysisInProgressError: another run is in flight.
            SessionClosedError: the session was closed.
        """
        missing = [field for field in ("name", "department") if not (getattr(self.draft, field) or "").strip()]
        if missing:
            raise DraftIncompleteError(f"Draft is missing required fields: {', '.join(missing)}")
        self._claim()
        orchestrator = risk_analysis_orchestrator(self.client, self.draft)
        return await self._run(orchestrator)

    async def run_legal_validation(
        self,
        text: str,
        validation_type: str = "assessment",
        context: Optional[Dict[str, Any]] = None,
    ) -> AnalysisOutcome:
        if not text or not text.strip():
            raise DraftIncompleteError("Validation text must not be empty")
        self._claim()
        orchestrator = legal_validation_orchestrator(
            self.client,
            text,
            validation_type=validation_type,
            context=context if context is not None else self.draft.to_payload(),
            context_risk_level=self.draft.risk_level,
        )
        return await self._run(orchestrator)


class SessionStore:
    """In-memory registry of open wizard sessions."""

    def __init__(self, client_factory: Callable[[], ComplianceApiClient] = ComplianceApiClient):
        self._client_factory = client_factory
        self._sessions: Dict[str, WizardSession] = {}

    def create(self) -> WizardSession:
        session = WizardSession(self._client_factory())
        self._sessions[session.session_id] = session
        logger.info(f"Created wizard session {session.session_id}")
        return session

    def get(self, session_id: str) -> WizardSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Session {session_id} not found") from None

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        session.close()
