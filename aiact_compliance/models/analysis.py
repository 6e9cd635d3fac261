from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import RiskLevel, Severity, ValidationStatus


def clamp_score(value: float, low: int = 0, high: int = 100) -> int:
    """Round a numeric score and clamp it into [low, high]."""
    return max(low, min(high, int(round(value))))


class Issue(BaseModel):
    """A single finding attached to an analysis or validation result."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    description: str
    severity: Severity
    article_ref: Optional[str] = None


class AnalysisResult(BaseModel):
    """
    Canonical, post-normalization view of an analysis or validation response.

    Instances are frozen: a session replaces its result as a whole instead
    of patching fields one by one.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    risk_level: RiskLevel = RiskLevel.UNKNOWN
    confidence_score: int = Field(default=70, ge=0, le=100)
    status: ValidationStatus = ValidationStatus.UNKNOWN
    issues: List[Issue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    category: Optional[str] = None

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if isinstance(v, bool):
            raise ValueError("confidence_score must be numeric")
        if isinstance(v, (int, float)):
            return clamp_score(v)
        return v

    def to_wire(self) -> dict:
        """Serialize with the camelCase keys the UI consumes."""
        return self.model_dump(mode="json", by_alias=True)


# Exact key set of AnalysisResult.to_wire(); a mapping with these keys is already canonical
CANONICAL_WIRE_KEYS = frozenset({
    "riskLevel", "confidenceScore", "status", "issues", "recommendations", "category",
})


NO_VULNERABILITIES_NOTE = "No specific vulnerabilities identified"


class LocalAssessment(BaseModel):
    """Rule-based baseline produced without any remote call."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    risk_level: RiskLevel
    relevant_articles: List[str] = Field(default_factory=list)
    suggested_improvements: List[str] = Field(default_factory=list)
    potential_impact: str = ""
    category: str = "Generic AI System"
    vulnerabilities: str = NO_VULNERABILITIES_NOTE
    risk_factors: List[str] = Field(default_factory=list)
