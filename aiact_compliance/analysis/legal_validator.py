"""
Offline checks for AI-generated legal assessments.

This is the last stage of the legal-validation fallback chain. It looks only
at the assessment text: hedging vs. assertive language, whether cited
articles exist in the EU AI Act, obviously contradictory statements and the
sections every assessment is expected to contain.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..constants import ConfidenceLabel, ReviewStatus, RiskLevel, Severity, ValidationStatus
from ..models.analysis import AnalysisResult
from .normalizer import parse_risk_level

logger = logging.getLogger(__name__)

UNCERTAINTY_PHRASES = (
    'might be', 'possibly', 'could be', 'unclear', 'uncertain',
    'may be', 'potential', 'arguably', 'seems', 'appears to be',
    'not entirely clear', 'ambiguous', 'open to interpretation',
)

CERTAINTY_PHRASES = (
    'definitely', 'certainly', 'clearly', 'without doubt', 'unquestionably',
    'is required', 'must be', 'explicitly states', 'according to article',
    'precisely', 'specifically mandates', 'is prohibited',
)

MAX_ARTICLE_NUMBER = 85
MAX_PARAGRAPH_NUMBER = 10

ARTICLE_REFERENCE_PATTERN = re.compile(
    r"Article (\d+)(?:\((\d+)\))?(?:\s*(?:of the EU AI Act|of Regulation|EU AI Act))?",
    re.IGNORECASE,
)

CONTRADICTION_PATTERNS = (
    (re.compile(r"is high risk.*is not high risk", re.IGNORECASE | re.DOTALL),
     "Contradicting statements about high risk classification"),
    (re.compile(r"is prohibited.*is allowed", re.IGNORECASE | re.DOTALL),
     "Contradicting statements about prohibition"),
    (re.compile(r"must comply.*exempt from", re.IGNORECASE | re.DOTALL),
     "Contradicting statements about compliance requirements"),
    (re.compile(r"Article \d+ applies.*Article \d+ does not apply", re.IGNORECASE | re.DOTALL),
     "Contradicting statements about applicable articles"),
)

REQUIRED_SECTIONS = (
    ("Risk Classification", re.compile(r"risk (classification|category|level)", re.IGNORECASE)),
    ("Required Actions", re.compile(r"(required|recommended|necessary) (actions|steps|measures)", re.IGNORECASE)),
    ("Legal Basis", re.compile(r"(legal basis|according to article|based on the EU AI Act)", re.IGNORECASE)),
    ("Limitations", re.compile(r"(limitations|constraints|restrictions|this (assessment|analysis) (does not|is not))", re.IGNORECASE)),
)


def analyze_confidence(text: str) -> ConfidenceLabel:
    """Confidence of an assessment judged from its hedging vs. assertive phrases."""
    lowered = (text or "").lower()
    uncertainty_count = sum(1 for phrase in UNCERTAINTY_PHRASES if phrase in lowered)
    certainty_count = sum(1 for phrase in CERTAINTY_PHRASES if phrase in lowered)

    if uncertainty_count > 3 and certainty_count < 2:
        return ConfidenceLabel.LOW
    if uncertainty_count > 1 and certainty_count >= 2:
        return ConfidenceLabel.MEDIUM
    if uncertainty_count <= 1 and certainty_count >= 3:
        return ConfidenceLabel.HIGH
    return ConfidenceLabel.MEDIUM


def validate_legal_references(text: str) -> Dict[str, Any]:
    """Flags article references outside Articles 1-85 or with paragraph numbers above 10."""
    invalid_references: List[str] = []
    for match in ARTICLE_REFERENCE_PATTERN.finditer(text or ""):
        article, paragraph = match.group(1), match.group(2)
        article_ok = 1 <= int(article) <= MAX_ARTICLE_NUMBER
        paragraph_ok = paragraph is None or int(paragraph) <= MAX_PARAGRAPH_NUMBER
        if not (article_ok and paragraph_ok):
            invalid_references.append(f"Article {article}({paragraph})" if paragraph else f"Article {article}")
    return {"valid": not invalid_references, "invalid_references": invalid_references}


def check_for_contradictions(text: str) -> List[str]:
    return [message for pattern, message in CONTRADICTION_PATTERNS if pattern.search(text or "")]


def check_required_sections(text: str) -> List[str]:
    return [name for name, pattern in REQUIRED_SECTIONS if not pattern.search(text or "")]


def validate_legal_output(text: str) -> Dict[str, Any]:
    """
    Runs every local check over an assessment text.

    Returns a dict in the same loose shape as the remote validation
    endpoints (isValid / confidenceLevel / issues / warnings ...) so the
    result goes through the normal response normalizer.
    """
    result: Dict[str, Any] = {
        "isValid": True,
        "confidenceLevel": ConfidenceLabel.MEDIUM.value,
        "reviewStatus": ReviewStatus.VALIDATED.value,
        "issues": [],
        "warnings": [],
        "reviewRequired": False,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "validator": "system",
    }

    if not text or not text.strip():
        result.update({
            "isValid": False,
            "confidenceLevel": ConfidenceLabel.UNCERTAIN.value,
            "reviewStatus": ReviewStatus.REQUIRES_LEGAL_REVIEW.value,
            "issues": ["Empty assessment text"],
            "reviewRequired": True,
        })
        return result

    # 1. Confidence
    confidence = analyze_confidence(text)
    result["confidenceLevel"] = confidence.value
    if confidence == ConfidenceLabel.LOW:
        result["warnings"].append("Assessment contains high uncertainty language")
        result["reviewStatus"] = ReviewStatus.REQUIRES_LEGAL_REVIEW.value
        result["reviewRequired"] = True

    # 2. Article references
    references = validate_legal_references(text)
    if not references["valid"]:
        result["issues"].append(f"Invalid legal references: {', '.join(references['invalid_references'])}")
        result["isValid"] = False
        result["reviewRequired"] = True

    # 3. Contradictions
    contradictions = check_for_contradictions(text)
    if contradictions:
        result["issues"].extend(contradictions)
        result["isValid"] = False
        result["reviewStatus"] = ReviewStatus.REQUIRES_LEGAL_REVIEW.value
        result["reviewRequired"] = True

    # 4. Required sections
    missing_sections = check_required_sections(text)
    if missing_sections:
        result["issues"].append(f"Missing required sections: {', '.join(missing_sections)}")
        result["isValid"] = False
        result["reviewRequired"] = True

    logger.info(
        f"Local legal validation finished: valid={result['isValid']}, "
        f"confidence={result['confidenceLevel']}, issues={len(result['issues'])}"
    )
    return result


# Scores at or below the "low" label need a lawyer's eye
REVIEW_CONFIDENCE_THRESHOLD = 55


def requires_expert_review(result: AnalysisResult, context_risk_level: Any = None) -> bool:
    """High/unacceptable risk, low confidence, or any critical finding means a human lawyer looks at it."""
    levels = {result.risk_level, parse_risk_level(context_risk_level)}
    if RiskLevel.HIGH in levels or RiskLevel.UNACCEPTABLE in levels:
        return True

    if result.confidence_score <= REVIEW_CONFIDENCE_THRESHOLD:
        return True

    if result.status == ValidationStatus.INVALID:
        return True
    return any(issue.severity == Severity.CRITICAL for issue in result.issues)
