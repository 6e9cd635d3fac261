import pytest

from aiact_compliance.core.config import ComplianceApiSettings
from aiact_compliance.models.drafts import FormDraft

TEST_BASE_URL = "http://analysis.test"


@pytest.fixture
def api_test_settings():
    return ComplianceApiSettings(base_url=TEST_BASE_URL, request_timeout=30.0, api_key=None)


@pytest.fixture
def complete_draft():
    """A registration draft with no high-risk signal at all."""
    return FormDraft(
        name="Meeting Summarizer",
        department="Operations",
        purpose="Summarize internal meeting notes",
        ai_capabilities="Natural Language Processing",
        description="Generates short summaries of recorded team meetings",
        is_transparent=True,
        humans_in_loop=True,
    )


@pytest.fixture
def radiology_draft():
    """High risk by domain keyword only; every structural flag is off."""
    return FormDraft(
        name="Chest X-ray Triage",
        department="Radiology",
        purpose="Flag chest x-ray images that need urgent review",
        ai_capabilities="Image classification",
        description="Assists radiologists",
        is_transparent=True,
        humans_in_loop=True,
    )
