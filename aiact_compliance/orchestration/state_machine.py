"""
Pure transition function for the three-stage fallback chain.

    IDLE --Start--> PRIMARY --ok--> DONE
                       |fail
                       v
                   SECONDARY --ok--> DONE
                       |fail
                       v
                 LOCAL_FALLBACK --ok/fail--> DONE

`transition` never performs I/O. It returns the next state and the effect the
driver has to carry out (call a stage, or deliver the final outcome), which
keeps the chain testable without any network mocking.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from ..constants import FailureKind, ResultSource, Stage
from ..models.analysis import AnalysisResult
from ..models.outcome import AnalysisOutcome, StageAttempt

GENERIC_FAILURE_MESSAGE = "The analysis could not be completed. Please try again."
TIMEOUT_CAVEAT = (
    "The analysis service did not respond in time. "
    "This result comes from the offline rule-based assessment and may be less accurate."
)
UNAVAILABLE_CAVEAT = (
    "The analysis service was unavailable. "
    "This result comes from the offline rule-based assessment and may be less accurate."
)

REMOTE_STAGES = (Stage.PRIMARY, Stage.SECONDARY)

_SOURCE_FOR_STAGE = {
    Stage.PRIMARY: ResultSource.PRIMARY,
    Stage.SECONDARY: ResultSource.SECONDARY,
    Stage.LOCAL_FALLBACK: ResultSource.LOCAL,
}

_NEXT_STAGE = {
    Stage.PRIMARY: Stage.SECONDARY,
    Stage.SECONDARY: Stage.LOCAL_FALLBACK,
}


class InvalidTransitionError(Exception):
    """An event arrived that the current stage does not accept."""


# --- Events ---

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class StageSucceeded:
    result: AnalysisResult


@dataclass(frozen=True)
class StageFailed:
    kind: FailureKind
    detail: str = ""
    partial: Optional[AnalysisResult] = None


Event = Union[Start, StageSucceeded, StageFailed]


# --- Effects ---

class EffectKind(str, Enum):
    CALL_PRIMARY = "call_primary"
    CALL_SECONDARY = "call_secondary"
    RUN_LOCAL = "run_local"
    DELIVER = "deliver"
    NONE = "none"


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    outcome: Optional[AnalysisOutcome] = None


_EFFECT_FOR_STAGE = {
    Stage.PRIMARY: EffectKind.CALL_PRIMARY,
    Stage.SECONDARY: EffectKind.CALL_SECONDARY,
    Stage.LOCAL_FALLBACK: EffectKind.RUN_LOCAL,
}


# --- State ---

@dataclass(frozen=True)
class OrchestratorState:
    stage: Stage = Stage.IDLE
    attempts: Tuple[StageAttempt, ...] = field(default_factory=tuple)
    outcome: Optional[AnalysisOutcome] = None

    def remote_failures(self) -> Tuple[StageAttempt, ...]:
        return tuple(a for a in self.attempts if a.stage in REMOTE_STAGES and not a.succeeded)

    def all_remote_timed_out(self) -> bool:
        failures = self.remote_failures()
        return bool(failures) and all(a.failure_kind == FailureKind.TIMEOUT for a in failures)


def _local_caveat(state: OrchestratorState) -> str:
    return TIMEOUT_CAVEAT if state.all_remote_timed_out() else UNAVAILABLE_CAVEAT


def _deliver(state: OrchestratorState, outcome: AnalysisOutcome) -> Tuple[OrchestratorState, Effect]:
    done = OrchestratorState(stage=Stage.DONE, attempts=state.attempts, outcome=outcome)
    return done, Effect(EffectKind.DELIVER, outcome)


def transition(state: OrchestratorState, event: Event) -> Tuple[OrchestratorState, Effect]:
    """
    Advances the chain by one event.

    Once DONE, every further event is ignored (EffectKind.NONE), so the
    outcome is delivered exactly once per run.

    Raises:
        InvalidTransitionError: for events the current stage cannot accept
            (e.g. a stage result while IDLE, or Start mid-run).
    """
    if state.stage == Stage.DONE:
        return state, Effect(EffectKind.NONE)

    if state.stage == Stage.IDLE:
        if not isinstance(event, Start):
            raise InvalidTransitionError(f"Chain has not started; cannot accept {type(event).__name__}")
        return OrchestratorState(stage=Stage.PRIMARY), Effect(EffectKind.CALL_PRIMARY)

    if isinstance(event, Start):
        raise InvalidTransitionError(f"Chain already running (stage={state.stage.value})")

    stage = state.stage

    if isinstance(event, StageSucceeded):
        attempts = state.attempts + (StageAttempt(stage=stage, succeeded=True),)
        advanced = OrchestratorState(stage=stage, attempts=attempts)
        is_local = stage == Stage.LOCAL_FALLBACK
        outcome = AnalysisOutcome(
            result=event.result,
            source=_SOURCE_FOR_STAGE[stage],
            timed_out=is_local and advanced.all_remote_timed_out(),
            caveat=_local_caveat(advanced) if is_local else None,
            attempts=list(attempts),
        )
        return _deliver(advanced, outcome)

    if isinstance(event, StageFailed):
        attempt = StageAttempt(
            stage=stage,
            succeeded=False,
            failure_kind=event.kind,
            detail=event.detail,
            partial=event.partial,
        )
        attempts = state.attempts + (attempt,)
        if stage == Stage.LOCAL_FALLBACK:
            failed = OrchestratorState(stage=stage, attempts=attempts)
            outcome = AnalysisOutcome(
                error=GENERIC_FAILURE_MESSAGE,
                timed_out=failed.all_remote_timed_out(),
                attempts=list(attempts),
            )
            return _deliver(failed, outcome)

        next_stage = _NEXT_STAGE[stage]
        return OrchestratorState(stage=next_stage, attempts=attempts), Effect(_EFFECT_FOR_STAGE[next_stage])

    raise InvalidTransitionError(f"Unknown event {event!r}")
