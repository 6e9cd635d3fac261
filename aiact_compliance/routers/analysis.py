import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status

from ..analysis.classifier import assess_locally
from ..analysis.normalizer import normalize, normalize_legal_validation
from ..models.analysis import AnalysisResult, LocalAssessment
from ..models.drafts import FormDraft
from ..schemas.analysis import NormalizeRequest

router = APIRouter(prefix="/api/v1/analysis", tags=["Analysis"])
logger = logging.getLogger(__name__)


@router.post("/normalize", response_model=AnalysisResult)
async def normalize_payload(request: NormalizeRequest):
    """Normalizes an arbitrary analysis or validation response into the canonical shape."""
    if request.legal_validation:
        return normalize_legal_validation(request.payload, request.context_risk_level)
    return normalize(request.payload, request.context_risk_level)


@router.post("/classify", response_model=LocalAssessment)
async def classify_draft(draft: Dict[str, Any] = Body(...)):
    """Offline rule-based classification of a draft; no remote calls."""
    try:
        parsed = FormDraft.model_validate(draft)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    assessment = assess_locally(parsed)
    logger.info(f"Local classification requested: {assessment.risk_level.value}")
    return assessment
