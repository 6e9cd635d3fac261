"""
Local, rule-based risk classification.

Used when no remote analysis endpoint produced a usable answer. Deterministic
and order-sensitive: the first structural indicator or domain keyword that
fires decides the level, so the same draft always yields the same tier.
"""
import logging
from typing import Any, List, Mapping, Union

from ..constants import RiskLevel
from ..models.analysis import NO_VULNERABILITIES_NOTE, LocalAssessment
from ..models.drafts import FormDraft

logger = logging.getLogger(__name__)

# Checked in order; the first substring found in the draft text forces HIGH
HIGH_RISK_DOMAIN_TERMS = (
    'healthcare', 'medical', 'legal', 'judicial', 'law enforcement',
    'education', 'employment', 'critical infrastructure', 'banking',
    'financial', 'insurance', 'credit', 'pneumonia', 'diagnostic', 'radiology',
    'hospital', 'clinic', 'x-ray', 'xray', 'chest', 'computer vision', 'image analysis',
)

# Draft fields concatenated for keyword matching, in this order
TEXT_FIELDS = ("purpose", "department", "ai_capabilities", "name", "description")

DEFAULT_LOCAL_RISK = RiskLevel.LIMITED

LIMITED_RISK_ARTICLES = ["Article 52 - Transparency Obligations"]
LIMITED_RISK_IMPROVEMENTS = [
    "Document transparency measures",
    "Provide clear information to users about AI interaction",
    "Document system limitations",
]
HIGH_RISK_IMPROVEMENTS = [
    "Implement comprehensive documentation in line with Article 11",
    "Establish formal human oversight protocols (Article 14)",
    "Develop transparent documentation of system capabilities (Article 13)",
    "Create detailed risk management procedures (Article 9)",
]


def _as_draft(draft: Union[FormDraft, Mapping[str, Any], None]) -> FormDraft:
    if isinstance(draft, FormDraft):
        return draft
    return FormDraft.model_validate(dict(draft or {}))


def structural_indicator(draft: FormDraft) -> str:
    """Name of the first structural high-risk indicator present, or ''."""
    if draft.impacts_vulnerable_groups:
        return "impacts_vulnerable_groups"
    if draft.uses_deep_learning and not draft.is_transparent:
        return "opaque_deep_learning"
    if draft.uses_personal_data and draft.uses_sensitive_data:
        return "sensitive_personal_data"
    if draft.impacts_autonomous and not draft.humans_in_loop:
        return "autonomous_without_oversight"
    return ""


def combined_text(draft: FormDraft) -> str:
    return " ".join(str(getattr(draft, field) or "") for field in TEXT_FIELDS).lower()


def matched_domain_term(draft: FormDraft) -> str:
    """First high-risk domain term found in the draft text, or ''."""
    text = combined_text(draft)
    for term in HIGH_RISK_DOMAIN_TERMS:
        if term in text:
            return term
    return ""


def classify_locally(draft: Union[FormDraft, Mapping[str, Any], None]) -> RiskLevel:
    """
    Derives a risk level from the form flags and free text alone.

    Never returns UNKNOWN: with no signal the system is treated as
    limited-risk.
    """
    draft = _as_draft(draft)

    indicator = structural_indicator(draft)
    if indicator:
        logger.debug(f"Local classification: high (structural indicator '{indicator}')")
        return RiskLevel.HIGH

    term = matched_domain_term(draft)
    if term:
        logger.debug(f"Local classification: high (domain term '{term}')")
        return RiskLevel.HIGH

    return DEFAULT_LOCAL_RISK


def _high_risk_articles(draft: FormDraft) -> List[str]:
    articles = [
        "Article 6 - Classification Rules for High-Risk AI Systems",
        "Article 9 - Risk Management System",
    ]
    if draft.uses_personal_data:
        articles.append("Article 10 - Data and Data Governance")
    if not draft.is_transparent:
        articles.append("Article 13 - Transparency and Provision of Information to Users")
    if not draft.humans_in_loop:
        articles.append("Article 14 - Human Oversight")
    return articles


def assess_locally(draft: Union[FormDraft, Mapping[str, Any], None]) -> LocalAssessment:
    """Full rule-based baseline: risk level plus the articles and improvements that go with it."""
    draft = _as_draft(draft)
    risk_level = classify_locally(draft)
    category = draft.ai_capabilities or "Generic AI System"
    vulnerabilities = (draft.vulnerabilities or "").strip() or NO_VULNERABILITIES_NOTE

    if risk_level == RiskLevel.HIGH:
        if draft.impacts_vulnerable_groups:
            impact = "May have significant impact on vulnerable groups, requiring detailed assessment"
        else:
            impact = "Potential impact on fundamental rights or critical activities requiring formal risk management"
        return LocalAssessment(
            risk_level=risk_level,
            relevant_articles=_high_risk_articles(draft),
            suggested_improvements=list(HIGH_RISK_IMPROVEMENTS),
            potential_impact=impact,
            category=category,
            vulnerabilities=vulnerabilities,
        )

    return LocalAssessment(
        risk_level=risk_level,
        relevant_articles=list(LIMITED_RISK_ARTICLES),
        suggested_improvements=list(LIMITED_RISK_IMPROVEMENTS),
        potential_impact="Limited impact on fundamental rights or critical activities",
        category=category,
        vulnerabilities=vulnerabilities,
    )


def local_assessment_payload(draft: Union[FormDraft, Mapping[str, Any], None]) -> dict:
    """
    The local baseline in the same loose shape the remote endpoints return,
    so it goes through the normalizer like any other response.
    """
    assessment = assess_locally(draft)
    return {
        "riskLevel": assessment.risk_level.value,
        "category": assessment.category,
        "relevantArticles": assessment.relevant_articles,
        "suggestedImprovements": assessment.suggested_improvements,
        "potentialImpact": assessment.potential_impact,
        "vulnerabilities": assessment.vulnerabilities,
        "riskFactors": assessment.risk_factors,
        "analysisMethod": "rule_based",
    }
