# tests/orchestration/test_orchestrator.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from aiact_compliance.clients.compliance_api import ComplianceApiClient, ComplianceApiError
from aiact_compliance.constants import FailureKind, ResultSource, RiskLevel, Stage, ValidationStatus
from aiact_compliance.orchestration.orchestrator import (
    FallbackOrchestrator,
    legal_validation_orchestrator,
    risk_analysis_orchestrator,
)
from aiact_compliance.models.drafts import FormDraft
from aiact_compliance.orchestration.state_machine import GENERIC_FAILURE_MESSAGE


def _callbacks():
    return MagicMock(), MagicMock(), MagicMock()


@pytest.mark.asyncio
async def test_primary_success_skips_other_stages():
    primary = AsyncMock(return_value={"riskLevel": "minimal", "confidenceScore": 90})
    secondary = AsyncMock()
    local = MagicMock()
    on_progress, on_in_progress, on_complete = _callbacks()

    outcome = await FallbackOrchestrator(primary, secondary, local).run(on_progress, on_in_progress, on_complete)

    assert outcome.source == ResultSource.PRIMARY
    assert outcome.result.confidence_score == 90
    secondary.assert_not_awaited()
    local.assert_not_called()
    on_complete.assert_called_once_with(outcome)
    assert [c.args[0] for c in on_in_progress.call_args_list] == [True, False]
    assert [c.args[0].stage for c in on_progress.call_args_list] == [Stage.PRIMARY, Stage.DONE]
    assert on_progress.call_args_list[-1].args[0].percent == 100


@pytest.mark.asyncio
async def test_api_error_falls_through_to_secondary():
    primary = AsyncMock(side_effect=ComplianceApiError(FailureKind.STATUS, "HTTP 500", "/p", 500))
    secondary = AsyncMock(return_value={"result": {"riskLevel": "limited"}})
    on_progress, on_in_progress, on_complete = _callbacks()

    outcome = await FallbackOrchestrator(primary, secondary, MagicMock()).run(on_progress, on_in_progress, on_complete)

    assert outcome.source == ResultSource.SECONDARY
    assert outcome.result.risk_level == RiskLevel.LIMITED
    assert outcome.attempts[0].failure_kind == FailureKind.STATUS
    assert [c.args[0].stage for c in on_progress.call_args_list] == [Stage.PRIMARY, Stage.SECONDARY, Stage.DONE]


@pytest.mark.asyncio
async def test_unusable_shape_is_a_failure_with_partial_result():
    primary = AsyncMock(return_value={"message": "ok", "foo": "bar"})
    secondary = AsyncMock(return_value=["not", "an", "object"])
    local = MagicMock(return_value={"riskLevel": "limited"})

    outcome = await FallbackOrchestrator(primary, secondary, local).run()

    assert outcome.source == ResultSource.LOCAL
    assert [a.failure_kind for a in outcome.attempts[:2]] == [FailureKind.SHAPE, FailureKind.SHAPE]
    assert outcome.attempts[0].partial.issues[0].description == "ok"
    assert outcome.caveat is not None
    assert outcome.timed_out is False


@pytest.mark.asyncio
async def test_stage_timeout_is_enforced_and_flagged():
    async def hang():
        await asyncio.sleep(5)

    local = MagicMock(return_value={"riskLevel": "high"})

    outcome = await FallbackOrchestrator(hang, hang, local, stage_timeout=0.01).run()

    assert outcome.timed_out is True
    assert outcome.source == ResultSource.LOCAL
    assert outcome.result.risk_level == RiskLevel.HIGH
    assert [a.failure_kind for a in outcome.attempts[:2]] == [FailureKind.TIMEOUT, FailureKind.TIMEOUT]


@pytest.mark.asyncio
async def test_unexpected_remote_exception_is_contained():
    primary = AsyncMock(side_effect=RuntimeError("bug"))
    secondary = AsyncMock(return_value={"riskLevel": "minimal"})

    outcome = await FallbackOrchestrator(primary, secondary, MagicMock()).run()

    assert outcome.source == ResultSource.SECONDARY
    assert outcome.attempts[0].failure_kind == FailureKind.TRANSPORT


@pytest.mark.asyncio
async def test_local_failure_reports_error_exactly_once():
    failing = AsyncMock(side_effect=ComplianceApiError(FailureKind.TRANSPORT, "down"))
    local = MagicMock(side_effect=RuntimeError("no rules"))
    on_progress, on_in_progress, on_complete = _callbacks()

    outcome = await FallbackOrchestrator(failing, failing, local).run(on_progress, on_in_progress, on_complete)

    assert outcome.result is None
    assert outcome.error == GENERIC_FAILURE_MESSAGE
    on_complete.assert_called_once_with(outcome)
    on_in_progress.assert_called_with(False)


@pytest.mark.asyncio
async def test_risk_chain_wires_client_endpoints(complete_draft):
    client = MagicMock(spec=ComplianceApiClient)
    client.settings = MagicMock(request_timeout=30.0)
    client.analyze_enhanced_risk = AsyncMock(side_effect=ComplianceApiError(FailureKind.TIMEOUT, "slow"))
    client.analyze_system = AsyncMock(side_effect=ComplianceApiError(FailureKind.TIMEOUT, "slow"))

    outcome = await risk_analysis_orchestrator(client, complete_draft).run()

    client.analyze_enhanced_risk.assert_awaited_once_with(complete_draft.to_payload())
    client.analyze_system.assert_awaited_once_with(complete_draft.to_payload())
    assert outcome.source == ResultSource.LOCAL
    assert outcome.result.risk_level == RiskLevel.LIMITED
    assert outcome.timed_out is True


@pytest.mark.asyncio
async def test_legal_chain_treats_success_false_as_failure():
    client = MagicMock(spec=ComplianceApiClient)
    client.settings = MagicMock(request_timeout=30.0)
    client.validate_legal = AsyncMock(return_value={"success": False, "message": "validator offline"})
    client.validate_legal_fallback = AsyncMock(
        return_value={"success": True, "result": {"isValid": True, "warnings": ["Cite Article 13"]}}
    )

    outcome = await legal_validation_orchestrator(client, "Assessment text", context={"a": 1}).run()

    client.validate_legal.assert_awaited_once_with("Assessment text", "assessment", {"a": 1})
    assert outcome.source == ResultSource.SECONDARY
    assert outcome.result.status == ValidationStatus.VALID_WITH_WARNINGS
    assert outcome.attempts[0].partial.status == ValidationStatus.INVALID
    assert outcome.review_required is False


@pytest.mark.asyncio
async def test_legal_chain_flags_high_risk_context_for_review():
    client = MagicMock(spec=ComplianceApiClient)
    client.settings = MagicMock(request_timeout=30.0)
    client.validate_legal = AsyncMock(return_value={"success": True, "result": {"isValid": True}})
    client.validate_legal_fallback = AsyncMock()

    outcome = await legal_validation_orchestrator(client, "Assessment text", context_risk_level="high").run()

    assert outcome.source == ResultSource.PRIMARY
    assert outcome.result.confidence_score == 65
    assert outcome.review_required is True


@pytest.mark.asyncio
async def test_risk_chain_never_sets_review_flag():
    client = MagicMock(spec=ComplianceApiClient)
    client.settings = MagicMock(request_timeout=30.0)
    client.analyze_enhanced_risk = AsyncMock(return_value={"riskLevel": "high", "confidenceScore": 40})
    client.analyze_system = AsyncMock()

    outcome = await risk_analysis_orchestrator(client, FormDraft(name="Bot", department="HR")).run()

    assert outcome.result.risk_level == RiskLevel.HIGH
    assert outcome.review_required is False
