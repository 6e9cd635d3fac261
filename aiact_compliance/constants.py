# aiact_compliance/constants.py
from enum import Enum


class RiskLevel(str, Enum):
    MINIMAL = "minimal"
    LIMITED = "limited"
    HIGH = "high"
    UNACCEPTABLE = "unacceptable"
    UNKNOWN = "unknown" # Internal only, never shown as an EU AI Act tier


class ValidationStatus(str, Enum):
    VALID = "valid"
    VALID_WITH_WARNINGS = "valid_with_warnings"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ConfidenceLabel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNCERTAIN = "uncertain"


class ReviewStatus(str, Enum):
    VALIDATED = "validated"
    PENDING_REVIEW = "pending_review"
    REQUIRES_LEGAL_REVIEW = "requires_legal_review"
    OUTDATED = "outdated"


class Stage(str, Enum):
    IDLE = "idle"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    LOCAL_FALLBACK = "local_fallback"
    DONE = "done"


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    STATUS = "status"
    DECODE = "decode"
    TIMEOUT = "timeout"
    SHAPE = "shape"
    LOCAL = "local" # The offline fallback itself failed


class ResultSource(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    LOCAL = "local"


# Progress reported to the UI when a stage is entered
STAGE_PROGRESS = {
    Stage.IDLE: 0,
    Stage.PRIMARY: 10,
    Stage.SECONDARY: 45,
    Stage.LOCAL_FALLBACK: 80,
    Stage.DONE: 100,
}
