# This file makes the 'analysis' directory a Python package.

from .normalizer import normalize, normalize_legal_validation, has_recognized_fields, legal_response_usable
from .classifier import classify_locally, assess_locally, local_assessment_payload
from .legal_validator import validate_legal_output, requires_expert_review

__all__ = [
    "normalize",
    "normalize_legal_validation",
    "has_recognized_fields",
    "legal_response_usable",
    "classify_locally",
    "assess_locally",
    "local_assessment_payload",
    "validate_legal_output",
    "requires_expert_review",
]
