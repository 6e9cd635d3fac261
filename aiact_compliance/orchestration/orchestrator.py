import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..analysis.classifier import local_assessment_payload
from ..analysis.legal_validator import requires_expert_review, validate_legal_output
from ..analysis.normalizer import (
    has_recognized_fields,
    legal_response_usable,
    normalize,
    normalize_legal_validation,
)
from ..clients.compliance_api import ComplianceApiClient, ComplianceApiError
from ..constants import FailureKind, Stage
from ..core.config import api_settings
from ..models.analysis import AnalysisResult
from ..models.drafts import FormDraft
from ..models.outcome import AnalysisOutcome, ProgressUpdate
from .state_machine import (
    Effect,
    EffectKind,
    OrchestratorState,
    Start,
    StageFailed,
    StageSucceeded,
    transition,
)

logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Awaitable[Any]]
LocalCall = Callable[[], Any]
Normalizer = Callable[[Any], AnalysisResult]
ShapeCheck = Callable[[Any], bool]
ReviewCheck = Callable[[AnalysisResult], bool]

ProgressCallback = Callable[[ProgressUpdate], None]
InProgressCallback = Callable[[bool], None]
CompleteCallback = Callable[[AnalysisOutcome], None]


class FallbackOrchestrator:
    """
    Drives a primary -> secondary -> local chain using the pure transition function.

    Each stage is attempted once. Remote stages fail on any ComplianceApiError,
    on the stage timeout, or when the decoded body does not pass `shape_check`;
    the local stage only fails if it raises.
    """

    def __init__(
        self,
        primary: RemoteCall,
        secondary: RemoteCall,
        local: LocalCall,
        normalizer: Normalizer = normalize,
        shape_check: ShapeCheck = has_recognized_fields,
        stage_timeout: Optional[float] = None,
        name: str = "analysis",
        review_check: Optional[ReviewCheck] = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.local = local
        self.normalizer = normalizer
        self.shape_check = shape_check
        self.stage_timeout = stage_timeout if stage_timeout is not None else api_settings.request_timeout
        self.name = name
        self.review_check = review_check

    async def run(
        self,
        on_progress: Optional[ProgressCallback] = None,
        on_in_progress: Optional[InProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
    ) -> AnalysisOutcome:
        state, effect = transition(OrchestratorState(), Start())
        if on_in_progress:
            on_in_progress(True)
        try:
            while effect.kind != EffectKind.DELIVER:
                if on_progress:
                    on_progress(ProgressUpdate.for_stage(state.stage))
                event = await self._perform(effect)
                state, effect = transition(state, event)
        finally:
            if on_in_progress:
                on_in_progress(False)

        outcome = effect.outcome
        if self.review_check and outcome.succeeded:
            outcome = outcome.model_copy(update={"review_required": self.review_check(outcome.result)})
        if on_progress:
            on_progress(ProgressUpdate.for_stage(Stage.DONE))
        if outcome.succeeded:
            logger.info(
                f"{self.name} chain finished from {outcome.source.value} stage "
                f"(attempts={len(outcome.attempts)}, timed_out={outcome.timed_out})"
            )
        else:
            logger.error(f"{self.name} chain failed at every stage: {[a.detail for a in outcome.attempts]}")
        if on_complete:
            on_complete(outcome)
        return outcome

    async def _perform(self, effect: Effect):
        if effect.kind == EffectKind.CALL_PRIMARY:
            return await self._call_remote(Stage.PRIMARY, self.primary)
        if effect.kind == EffectKind.CALL_SECONDARY:
            return await self._call_remote(Stage.SECONDARY, self.secondary)
        if effect.kind == EffectKind.RUN_LOCAL:
            return self._run_local()
        raise ValueError(f"Orchestrator cannot perform effect {effect.kind}")

    async def _call_remote(self, stage: Stage, call: RemoteCall):
        logger.debug(f"{self.name}: entering {stage.value} stage")
        try:
            body = await asyncio.wait_for(call(), timeout=self.stage_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name}: {stage.value} stage timed out after {self.stage_timeout}s")
            return StageFailed(FailureKind.TIMEOUT, f"{stage.value} stage timed out after {self.stage_timeout}s")
        except ComplianceApiError as e:
            logger.warning(f"{self.name}: {stage.value} stage failed ({e.kind.value}): {e}")
            return StageFailed(e.kind, str(e))
        except Exception as e:
            logger.error(f"{self.name}: unexpected error in {stage.value} stage: {e}", exc_info=True)
            return StageFailed(FailureKind.TRANSPORT, f"Unexpected error: {e}")

        if not self.shape_check(body):
            partial = self.normalizer(body)
            logger.warning(f"{self.name}: {stage.value} response has no recognizable fields; falling through")
            return StageFailed(FailureKind.SHAPE, f"{stage.value} response has no recognizable fields", partial)

        return StageSucceeded(self.normalizer(body))

    def _run_local(self):
        logger.debug(f"{self.name}: entering local fallback stage")
        try:
            return StageSucceeded(self.normalizer(self.local()))
        except Exception as e:
            logger.error(f"{self.name}: local fallback failed: {e}", exc_info=True)
            return StageFailed(FailureKind.LOCAL, f"Local fallback failed: {e}")


# --- Wired chains ---

def risk_analysis_orchestrator(
    client: ComplianceApiClient,
    draft: FormDraft,
    stage_timeout: Optional[float] = None,
) -> FallbackOrchestrator:
    """enhanced-risk -> system analysis -> local rule-based classifier."""
    payload = draft.to_payload()
    return FallbackOrchestrator(
        primary=lambda: client.analyze_enhanced_risk(payload),
        secondary=lambda: client.analyze_system(payload),
        local=lambda: local_assessment_payload(draft),
        normalizer=normalize,
        stage_timeout=stage_timeout if stage_timeout is not None else client.settings.request_timeout,
        name="risk analysis",
    )


def legal_validation_orchestrator(
    client: ComplianceApiClient,
    text: str,
    validation_type: str = "assessment",
    context: Optional[Dict[str, Any]] = None,
    context_risk_level: Any = None,
    stage_timeout: Optional[float] = None,
) -> FallbackOrchestrator:
    """legal/validate -> legal-validation/validate -> local legal validator."""
    return FallbackOrchestrator(
        primary=lambda: client.validate_legal(text, validation_type, context),
        secondary=lambda: client.validate_legal_fallback(text, validation_type, context),
        local=lambda: validate_legal_output(text),
        normalizer=lambda raw: normalize_legal_validation(raw, context_risk_level),
        shape_check=legal_response_usable,
        stage_timeout=stage_timeout if stage_timeout is not None else client.settings.request_timeout,
        name="legal validation",
        review_check=lambda result: requires_expert_review(result, context_risk_level),
    )
