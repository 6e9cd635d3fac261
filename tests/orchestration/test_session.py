# tests/orchestration/test_session.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from aiact_compliance.clients.compliance_api import ComplianceApiClient, ComplianceApiError
from aiact_compliance.constants import FailureKind, ResultSource, RiskLevel, Stage
from aiact_compliance.orchestration.session import (
    AnalysisInProgressError,
    DraftIncompleteError,
    SessionClosedError,
    SessionNotFoundError,
    SessionStore,
    WizardSession,
)


@pytest.fixture
def mock_client():
    client = MagicMock(spec=ComplianceApiClient)
    client.settings = MagicMock(request_timeout=30.0)
    client.analyze_enhanced_risk = AsyncMock(return_value={"riskLevel": "minimal", "confidenceScore": 88})
    client.analyze_system = AsyncMock(return_value={"riskLevel": "minimal"})
    client.validate_legal = AsyncMock(return_value={"success": True, "result": {"isValid": True}})
    client.validate_legal_fallback = AsyncMock()
    return client


@pytest.fixture
def session(mock_client, complete_draft):
    s = WizardSession(mock_client)
    s.update_draft(complete_draft.to_payload())
    return s


def test_update_draft_merges_camel_and_snake_keys(mock_client):
    s = WizardSession(mock_client)

    s.update_draft({"name": "Bot", "aiCapabilities": "NLP"})
    s.update_draft({"department": "Support", "uses_personal_data": True, "vendorNotes": "kept"})

    assert s.draft.name == "Bot"
    assert s.draft.ai_capabilities == "NLP"
    assert s.draft.uses_personal_data is True
    assert s.draft.to_payload()["vendorNotes"] == "kept"


def test_reset_draft(session):
    session.reset_draft()
    assert session.draft.name is None


@pytest.mark.asyncio
async def test_run_risk_analysis_stores_result(session):
    outcome = await session.run_risk_analysis()

    assert outcome.source == ResultSource.PRIMARY
    assert session.result == outcome.result
    assert session.result.confidence_score == 88
    assert session.last_outcome is outcome
    assert session.error is None
    assert session.in_progress is False
    assert session.progress.stage == Stage.DONE


@pytest.mark.asyncio
async def test_analysis_requires_name_and_department(mock_client):
    s = WizardSession(mock_client)
    s.update_draft({"name": "Bot"})

    with pytest.raises(DraftIncompleteError, match="department"):
        await s.run_risk_analysis()
    assert s.in_progress is False
    mock_client.analyze_enhanced_risk.assert_not_awaited()


@pytest.mark.asyncio
async def test_validation_requires_text(session):
    with pytest.raises(DraftIncompleteError):
        await session.run_legal_validation("  ")


@pytest.mark.asyncio
async def test_second_run_while_in_flight_is_rejected(session, mock_client):
    release = asyncio.Event()

    async def slow_analysis(payload):
        await release.wait()
        return {"riskLevel": "high", "confidenceScore": 99}

    mock_client.analyze_enhanced_risk = AsyncMock(side_effect=slow_analysis)

    first = asyncio.create_task(session.run_risk_analysis())
    await asyncio.sleep(0)
    assert session.in_progress is True

    with pytest.raises(AnalysisInProgressError):
        await session.run_risk_analysis()
    with pytest.raises(AnalysisInProgressError):
        await session.run_legal_validation("Some text")

    release.set()
    outcome = await first

    assert session.result == outcome.result
    assert session.result.risk_level == RiskLevel.HIGH
    assert session.result.confidence_score == 85
    assert mock_client.analyze_enhanced_risk.await_count == 1


@pytest.mark.asyncio
async def test_result_is_replaced_as_a_whole(session, mock_client):
    await session.run_risk_analysis()
    previous = session.result

    mock_client.analyze_enhanced_risk = AsyncMock(return_value={"riskLevel": "high", "issues": ["No oversight"]})
    await session.run_risk_analysis()

    assert session.result is not previous
    assert previous.risk_level == RiskLevel.MINIMAL # Old object untouched
    assert session.result.risk_level == RiskLevel.HIGH
    assert session.result.recommendations == []


@pytest.mark.asyncio
async def test_total_failure_sets_dismissible_error(session, mock_client, mocker):
    down = ComplianceApiError(FailureKind.TRANSPORT, "down")
    mock_client.analyze_enhanced_risk = AsyncMock(side_effect=down)
    mock_client.analyze_system = AsyncMock(side_effect=down)
    mocker.patch(
        "aiact_compliance.orchestration.orchestrator.local_assessment_payload",
        side_effect=RuntimeError("rules unavailable"),
    )

    outcome = await session.run_risk_analysis()

    assert outcome.result is None
    assert session.error == outcome.error
    assert session.result is None

    session.dismiss_error()
    assert session.error is None

    # Re-triggerable: the next run can succeed
    mocker.stopall()
    mock_client.analyze_enhanced_risk = AsyncMock(return_value={"riskLevel": "limited"})
    await session.run_risk_analysis()
    assert session.error is None
    assert session.result.risk_level == RiskLevel.LIMITED


@pytest.mark.asyncio
async def test_close_mid_flight_discards_the_outcome(session, mock_client):
    release = asyncio.Event()

    async def slow_analysis(payload):
        await release.wait()
        return {"riskLevel": "high"}

    mock_client.analyze_enhanced_risk = AsyncMock(side_effect=slow_analysis)
    task = asyncio.create_task(session.run_risk_analysis())
    await asyncio.sleep(0)

    session.close()
    release.set()
    outcome = await task

    assert outcome.result.risk_level == RiskLevel.HIGH
    assert session.result is None
    assert session.last_outcome is None
    assert session.draft.name is None

    with pytest.raises(SessionClosedError):
        session.update_draft({"name": "again"})
    with pytest.raises(SessionClosedError):
        await session.run_legal_validation("text")


@pytest.mark.asyncio
async def test_legal_validation_uses_draft_as_context(session, mock_client):
    session.update_draft({"riskLevel": "limited"})

    outcome = await session.run_legal_validation("Risk classification text")

    args = mock_client.validate_legal.await_args.args
    assert args[0] == "Risk classification text"
    assert args[2]["riskLevel"] == "limited"
    assert outcome.result.confidence_score == 85 # limited baseline 80 plus the limited-risk boost
    assert outcome.review_required is False
    assert session.result == outcome.result


def test_store_create_get_close(mock_client):
    store = SessionStore(client_factory=lambda: mock_client)

    session = store.create()
    assert store.get(session.session_id) is session

    store.close(session.session_id)
    assert session.closed is True
    with pytest.raises(SessionNotFoundError):
        store.get(session.session_id)
    with pytest.raises(SessionNotFoundError):
        store.close(session.session_id)


def test_sessions_do_not_share_state(mock_client):
    store = SessionStore(client_factory=lambda: mock_client)
    a, b = store.create(), store.create()

    a.update_draft({"name": "A"})

    assert a.session_id != b.session_id
    assert b.draft.name is None
