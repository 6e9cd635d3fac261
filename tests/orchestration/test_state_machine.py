# tests/orchestration/test_state_machine.py
import pytest

from aiact_compliance.constants import FailureKind, ResultSource, RiskLevel, Stage
from aiact_compliance.models.analysis import AnalysisResult
from aiact_compliance.orchestration.state_machine import (
    GENERIC_FAILURE_MESSAGE,
    TIMEOUT_CAVEAT,
    UNAVAILABLE_CAVEAT,
    EffectKind,
    InvalidTransitionError,
    OrchestratorState,
    StageFailed,
    StageSucceeded,
    Start,
    transition,
)

RESULT = AnalysisResult(risk_level=RiskLevel.HIGH, confidence_score=80)


def _run(*events):
    """Feed Start plus `events` through the machine; return final state and every effect."""
    state, effect = transition(OrchestratorState(), Start())
    effects = [effect]
    for event in events:
        state, effect = transition(state, event)
        effects.append(effect)
    return state, effects


def test_start_calls_primary():
    state, effect = transition(OrchestratorState(), Start())
    assert state.stage == Stage.PRIMARY
    assert effect.kind == EffectKind.CALL_PRIMARY


def test_primary_success_delivers_immediately():
    state, effects = _run(StageSucceeded(RESULT))

    assert state.stage == Stage.DONE
    assert [e.kind for e in effects] == [EffectKind.CALL_PRIMARY, EffectKind.DELIVER]
    outcome = effects[-1].outcome
    assert outcome.result == RESULT
    assert outcome.source == ResultSource.PRIMARY
    assert outcome.caveat is None
    assert outcome.timed_out is False


def test_primary_failure_falls_back_to_secondary():
    state, effects = _run(StageFailed(FailureKind.STATUS, "HTTP 500"), StageSucceeded(RESULT))

    assert [e.kind for e in effects] == [EffectKind.CALL_PRIMARY, EffectKind.CALL_SECONDARY, EffectKind.DELIVER]
    outcome = effects[-1].outcome
    assert outcome.source == ResultSource.SECONDARY
    assert [(a.stage, a.succeeded) for a in outcome.attempts] == [(Stage.PRIMARY, False), (Stage.SECONDARY, True)]
    assert outcome.attempts[0].failure_kind == FailureKind.STATUS


def test_two_remote_failures_run_local_with_caveat():
    state, effects = _run(
        StageFailed(FailureKind.TRANSPORT, "refused"),
        StageFailed(FailureKind.DECODE, "bad json"),
        StageSucceeded(RESULT),
    )

    assert [e.kind for e in effects] == [
        EffectKind.CALL_PRIMARY, EffectKind.CALL_SECONDARY, EffectKind.RUN_LOCAL, EffectKind.DELIVER,
    ]
    outcome = effects[-1].outcome
    assert outcome.source == ResultSource.LOCAL
    assert outcome.caveat == UNAVAILABLE_CAVEAT
    assert outcome.timed_out is False


def test_all_remote_timeouts_flag_the_outcome():
    _, effects = _run(
        StageFailed(FailureKind.TIMEOUT, "primary timed out"),
        StageFailed(FailureKind.TIMEOUT, "secondary timed out"),
        StageSucceeded(RESULT),
    )

    outcome = effects[-1].outcome
    assert outcome.timed_out is True
    assert outcome.caveat == TIMEOUT_CAVEAT
    assert outcome.result == RESULT


def test_mixed_failures_are_not_flagged_as_timeout():
    _, effects = _run(
        StageFailed(FailureKind.TIMEOUT, "primary timed out"),
        StageFailed(FailureKind.SHAPE, "no fields"),
        StageSucceeded(RESULT),
    )
    assert effects[-1].outcome.timed_out is False


def test_shape_failure_keeps_partial_result():
    partial = AnalysisResult(category="partial")
    _, effects = _run(StageFailed(FailureKind.SHAPE, "no fields", partial), StageSucceeded(RESULT))

    assert effects[-1].outcome.attempts[0].partial == partial


def test_local_failure_delivers_user_facing_error():
    _, effects = _run(
        StageFailed(FailureKind.STATUS, "500"),
        StageFailed(FailureKind.STATUS, "502"),
        StageFailed(FailureKind.LOCAL, "boom"),
    )

    outcome = effects[-1].outcome
    assert effects[-1].kind == EffectKind.DELIVER
    assert outcome.result is None
    assert outcome.error == GENERIC_FAILURE_MESSAGE
    assert len(outcome.attempts) == 3


def test_done_ignores_further_events():
    state, _ = _run(StageSucceeded(RESULT))

    next_state, effect = transition(state, StageSucceeded(RESULT))

    assert next_state is state
    assert effect.kind == EffectKind.NONE


def test_invalid_events_are_rejected():
    with pytest.raises(InvalidTransitionError):
        transition(OrchestratorState(), StageSucceeded(RESULT))

    running, _ = transition(OrchestratorState(), Start())
    with pytest.raises(InvalidTransitionError):
        transition(running, Start())


def test_transition_does_not_mutate_input_state():
    start = OrchestratorState()
    running, _ = transition(start, Start())
    transition(running, StageFailed(FailureKind.TIMEOUT))

    assert start.stage == Stage.IDLE
    assert running.stage == Stage.PRIMARY
    assert running.attempts == ()
