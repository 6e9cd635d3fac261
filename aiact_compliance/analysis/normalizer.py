"""
Tolerant normalization of analysis / validation responses.

The external analysis endpoints do not agree on a response shape: the same
logical field shows up under different keys, sometimes inside a nested
`result` container, sometimes as a qualitative label instead of a number.
Each canonical field is therefore resolved from an ordered table of
`(alias key, parser)` probes; the first probe whose parser returns a value
wins. Parsers return None for anything they cannot interpret, so a malformed
value simply falls through to the next probe or to the field's default.
"""
import json
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..constants import RiskLevel, Severity, ValidationStatus
from ..models.analysis import CANONICAL_WIRE_KEYS, AnalysisResult, Issue, clamp_score

logger = logging.getLogger(__name__)

Probe = Tuple[str, Callable[[Any], Any]]

# --- Lookup tables ---

CONFIDENCE_LABEL_SCORES = {
    "high": 95,
    "medium": 75,
    "low": 55,
    "uncertain": 35,
}
UNKNOWN_LABEL_SCORE = 70

# Used when the response carries no confidence signal at all
RISK_DEFAULT_CONFIDENCE = {
    RiskLevel.HIGH: 65,
    RiskLevel.LIMITED: 80,
}
NO_SIGNAL_CONFIDENCE = 70

HIGH_RISK_CONFIDENCE_CAP = 85
LIMITED_RISK_CONFIDENCE_BOOST = 5
LIMITED_RISK_CONFIDENCE_CAP = 95

NESTED_CONTAINER_KEYS = ("result", "data", "analysis")
MAX_NESTING_DEPTH = 3

# Substring checks run in this order; "unacceptable" contains none of the others
RISK_TEXT_ORDER = (
    ("high", RiskLevel.HIGH),
    ("unacceptable", RiskLevel.UNACCEPTABLE),
    ("prohibited", RiskLevel.UNACCEPTABLE),
    ("limited", RiskLevel.LIMITED),
    ("minimal", RiskLevel.MINIMAL),
)

# (alias key, severity) in extraction order
ISSUE_SOURCES = (
    ("issues", Severity.CRITICAL),
    ("violations", Severity.CRITICAL),
    ("criticalIssues", Severity.CRITICAL),
    ("warnings", Severity.WARNING),
    ("concerns", Severity.WARNING),
    ("recommendations", Severity.INFO),
    ("suggestions", Severity.INFO),
)

ITEM_TEXT_KEYS = ("description", "text", "message", "issue", "title", "name", "implementation")
ITEM_ARTICLE_KEYS = ("articleRef", "article", "articleId", "euAiActArticle", "reference")


# --- Coercion helpers (shared with the knowledge layer) ---

def coerce_text(value: Any, text_keys: Sequence[str] = ITEM_TEXT_KEYS) -> Optional[str]:
    """
    Best-effort string for a list item: strings as-is, objects via their
    first text-like key, otherwise the JSON serialization of the object.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, Mapping):
        for key in text_keys:
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        try:
            return json.dumps(value, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return str(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_item_list(value: Any) -> List[Any]:
    """Lists pass through; a lone string or object becomes a one-item list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, Mapping)):
        return [value]
    return []


def coerce_text_list(value: Any, text_keys: Sequence[str] = ITEM_TEXT_KEYS) -> List[str]:
    texts = []
    for item in as_item_list(value):
        text = coerce_text(item, text_keys)
        if text:
            texts.append(text)
    return texts


def coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


# --- Field parsers ---

def parse_risk_level(value: Any) -> Optional[RiskLevel]:
    if isinstance(value, RiskLevel):
        return None if value == RiskLevel.UNKNOWN else value
    if not isinstance(value, str) or not value.strip():
        return None
    lowered = value.strip().lower()
    for needle, level in RISK_TEXT_ORDER:
        if needle in lowered:
            return level
    return None


def risk_level_from_factors(value: Any) -> Optional[RiskLevel]:
    """Average the `score` of each risk factor and bucket it into a tier."""
    if not isinstance(value, list) or not value:
        return None
    scores = []
    for factor in value:
        score = coerce_number(factor.get("score")) if isinstance(factor, Mapping) else None
        scores.append(score or 0.0)
    average = sum(scores) / len(scores)
    if average < 30:
        return RiskLevel.UNACCEPTABLE
    if average < 50:
        return RiskLevel.HIGH
    if average < 80:
        return RiskLevel.LIMITED
    return RiskLevel.MINIMAL


def parse_numeric_confidence(value: Any) -> Optional[int]:
    # Non-numeric strings fall through to the label table
    number = coerce_number(value)
    if number is None:
        return None
    return clamp_score(number)


def parse_confidence_label(value: Any) -> Optional[int]:
    if not isinstance(value, str) or not value.strip():
        return None
    label = value.strip().lower()
    numeric = coerce_number(label)
    if numeric is not None:
        return clamp_score(numeric)
    return CONFIDENCE_LABEL_SCORES.get(label, UNKNOWN_LABEL_SCORE)


def parse_status_text(value: Any) -> Optional[ValidationStatus]:
    if not isinstance(value, str) or not value.strip():
        return None
    status = value.strip().lower().replace("-", "_").replace(" ", "_")
    if status.startswith(("not_", "non_", "notvalid", "nonvalid")):
        return ValidationStatus.INVALID
    if "invalid" in status or "not_valid" in status or "fail" in status or "reject" in status:
        return ValidationStatus.INVALID
    if "warning" in status:
        return ValidationStatus.VALID_WITH_WARNINGS
    if "valid" in status or status in ("ok", "pass", "passed", "success"):
        return ValidationStatus.VALID
    return None


def parse_compliance_status(value: Any) -> Optional[ValidationStatus]:
    if not isinstance(value, str) or not value.strip():
        return None
    status = value.strip().lower().replace("-", "_").replace(" ", "_")
    # Negative forms contain "compliant", so they are checked first
    if status.startswith(("non", "not")) or "noncompliant" in status:
        return ValidationStatus.INVALID
    if "partial" in status or "attention" in status or "review" in status:
        return ValidationStatus.VALID_WITH_WARNINGS
    if "compliant" in status:
        return ValidationStatus.VALID
    return None


def parse_category(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# --- Probe tables ---

RISK_LEVEL_PROBES: List[Probe] = [
    ("riskLevel", parse_risk_level),
    ("riskClassification", parse_risk_level),
    ("risk_level", parse_risk_level),
    ("riskFactors", risk_level_from_factors),
]

NUMERIC_CONFIDENCE_PROBES: List[Probe] = [
    ("confidenceScore", parse_numeric_confidence),
    ("confidence_score", parse_numeric_confidence),
    ("confidence", parse_numeric_confidence),
]

LABEL_CONFIDENCE_PROBES: List[Probe] = [
    ("confidenceLevel", parse_confidence_label),
    ("confidence_level", parse_confidence_label),
    ("confidence", parse_confidence_label),
]

RECOMMENDATION_PROBES: List[Probe] = [
    ("recommendations", lambda v: coerce_text_list(v) or None),
    ("suggestions", lambda v: coerce_text_list(v) or None),
    ("suggestedImprovements", lambda v: coerce_text_list(v) or None),
    ("suggestedRemediation", lambda v: coerce_text_list(v) or None),
    ("mitigationStrategies", lambda v: coerce_text_list(v) or None),
    ("improvements", lambda v: coerce_text_list(v) or None),
]

CATEGORY_PROBES: List[Probe] = [
    ("category", parse_category),
    ("systemCategory", parse_category),
]

# Every alias the normalizer understands; used for the orchestrator's shape check
RECOGNIZED_KEYS = frozenset(
    [key for key, _ in RISK_LEVEL_PROBES + NUMERIC_CONFIDENCE_PROBES + LABEL_CONFIDENCE_PROBES
     + RECOMMENDATION_PROBES + CATEGORY_PROBES]
    + [key for key, _ in ISSUE_SOURCES]
    + ["status", "isValid", "complianceStatus"]
)


# --- Probing machinery ---

def collect_scopes(raw: Any) -> List[Mapping]:
    """
    Mappings to probe, deepest nested container first, top level last.
    Non-mapping input yields no scopes.
    """
    if not isinstance(raw, Mapping):
        return []

    scopes: List[Mapping] = []

    def walk(node: Mapping, depth: int) -> None:
        if depth < MAX_NESTING_DEPTH:
            for key in NESTED_CONTAINER_KEYS:
                child = node.get(key)
                if isinstance(child, Mapping) and child is not node:
                    walk(child, depth + 1)
        scopes.append(node)

    walk(raw, 0)
    return scopes


def probe(scopes: Iterable[Mapping], probes: Sequence[Probe]) -> Any:
    """Return the first non-None parser result across scopes, then probes."""
    for scope in scopes:
        for key, parser in probes:
            if key not in scope:
                continue
            try:
                value = parser(scope[key])
            except (TypeError, ValueError, AttributeError, KeyError) as e:
                logger.debug(f"Probe '{key}' could not parse value: {e}")
                continue
            if value is not None:
                return value
    return None


def _first_present(scopes: Sequence[Mapping], key: str) -> Any:
    for scope in scopes:
        if key in scope and scope[key] is not None:
            return scope[key]
    return None


# --- Field resolvers ---

def resolve_status(scopes: Sequence[Mapping]) -> ValidationStatus:
    for scope in scopes:
        status = parse_status_text(scope.get("status"))
        if status is not None:
            return status

        is_valid = scope.get("isValid")
        if isinstance(is_valid, bool):
            if not is_valid:
                return ValidationStatus.INVALID
            warnings = scope.get("warnings")
            if isinstance(warnings, list) and warnings:
                return ValidationStatus.VALID_WITH_WARNINGS
            return ValidationStatus.VALID

        status = parse_compliance_status(scope.get("complianceStatus"))
        if status is not None:
            return status
    return ValidationStatus.UNKNOWN


def _article_ref(item: Any) -> Optional[str]:
    if not isinstance(item, Mapping):
        return None
    for key in ITEM_ARTICLE_KEYS:
        value = item.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
            return str(value).strip()
    return None


def extract_issues(scopes: Sequence[Mapping]) -> List[Issue]:
    issues: List[Issue] = []
    for key, severity in ISSUE_SOURCES:
        for item in as_item_list(_first_present(scopes, key)):
            try:
                description = coerce_text(item)
                if not description:
                    continue
                issues.append(Issue(description=description, severity=severity, article_ref=_article_ref(item)))
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed '{key}' item: {e}")

    if not issues:
        message = _first_present(scopes, "message")
        if isinstance(message, str) and message.strip():
            issues.append(Issue(description=message.strip(), severity=Severity.INFO))
    return issues


def resolve_confidence(scopes: Sequence[Mapping], context_risk: RiskLevel) -> int:
    score = probe(scopes, NUMERIC_CONFIDENCE_PROBES)
    if score is None:
        score = probe(scopes, LABEL_CONFIDENCE_PROBES)
    if score is None:
        score = RISK_DEFAULT_CONFIDENCE.get(context_risk, NO_SIGNAL_CONFIDENCE)
    return adjust_for_risk(score, context_risk)


def adjust_for_risk(score: int, context_risk: RiskLevel) -> int:
    """High-risk systems never show more than 85; limited-risk gets a small boost."""
    if context_risk == RiskLevel.HIGH:
        return min(score, HIGH_RISK_CONFIDENCE_CAP)
    if context_risk == RiskLevel.LIMITED:
        return min(score + LIMITED_RISK_CONFIDENCE_BOOST, LIMITED_RISK_CONFIDENCE_CAP)
    return score


# --- Public API ---

def is_canonical_shape(raw: Any) -> bool:
    return isinstance(raw, Mapping) and set(raw.keys()) == CANONICAL_WIRE_KEYS


def has_recognized_fields(raw: Any) -> bool:
    """Minimal shape check: an object carrying at least one known alias."""
    return any(RECOGNIZED_KEYS.intersection(scope.keys()) for scope in collect_scopes(raw))


def cap_high_risk(result: AnalysisResult, context_risk: Optional[RiskLevel] = None) -> AnalysisResult:
    """Re-applies the high-risk ceiling; a no-op on anything this module produced."""
    high = RiskLevel.HIGH in (result.risk_level, context_risk)
    if high and result.confidence_score > HIGH_RISK_CONFIDENCE_CAP:
        return result.model_copy(update={"confidence_score": HIGH_RISK_CONFIDENCE_CAP})
    return result


def normalize(raw: Any, context_risk_level: Any = None) -> AnalysisResult:
    """
    Converts an arbitrarily shaped response into an AnalysisResult.

    Args:
        raw: The decoded JSON body (any type, including None).
        context_risk_level: Risk level already known to the caller (for example
            the wizard's current selection). It drives the confidence
            adjustment and stands in for the risk level when the response
            carries none.

    Returns:
        An AnalysisResult. This function does not raise.
    """
    if isinstance(raw, AnalysisResult):
        return raw
    context_risk = parse_risk_level(context_risk_level) if context_risk_level is not None else None

    # A body already in wire shape is not adjusted a second time, but the
    # high-risk ceiling still holds.
    if is_canonical_shape(raw):
        try:
            return cap_high_risk(AnalysisResult.model_validate(raw), context_risk)
        except ValueError as e:
            logger.debug(f"Canonical-looking payload failed validation, probing instead: {e}")

    scopes = collect_scopes(raw)
    if not scopes and raw is not None:
        logger.warning(f"Expected an object to normalize, received {type(raw).__name__}")

    try:
        risk_level = probe(scopes, RISK_LEVEL_PROBES)
        effective_risk = context_risk or risk_level or RiskLevel.UNKNOWN

        return cap_high_risk(AnalysisResult(
            risk_level=risk_level or context_risk or RiskLevel.UNKNOWN,
            confidence_score=resolve_confidence(scopes, effective_risk),
            status=resolve_status(scopes),
            issues=extract_issues(scopes),
            recommendations=probe(scopes, RECOMMENDATION_PROBES) or [],
            category=probe(scopes, CATEGORY_PROBES),
        ))
    except Exception as e:
        # Last line of defence: a response must never break the caller
        logger.error(f"Unexpected error normalizing analysis response: {e}", exc_info=True)
        return AnalysisResult()


def normalize_legal_validation(raw: Any, context_risk_level: Any = None) -> AnalysisResult:
    """
    Legal validation endpoints wrap their payload as {success, result}; an
    explicit `success: false` with nothing else to go on is a negative signal.
    """
    result = normalize(raw, context_risk_level)
    if (
        isinstance(raw, Mapping)
        and raw.get("success") is False
        and result.status == ValidationStatus.UNKNOWN
    ):
        return result.model_copy(update={"status": ValidationStatus.INVALID})
    return result


def legal_response_usable(raw: Any) -> bool:
    """Shape check for the legal chain: `success: false` counts as a failed stage."""
    if isinstance(raw, Mapping) and raw.get("success") is False:
        return False
    return has_recognized_fields(raw)
