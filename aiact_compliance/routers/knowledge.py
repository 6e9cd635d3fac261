import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..clients.compliance_api import ComplianceApiClient, ComplianceApiError
from ..knowledge.articles import article_from_payload, normalize_suggestions
from ..models.knowledge import ArticleRecord, SuggestionResult
from ..schemas.knowledge import SuggestionRequest
from .dependencies import get_api_client

router = APIRouter(prefix="/api/v1/knowledge", tags=["Knowledge"])
logger = logging.getLogger(__name__)


def _upstream_error(e: ComplianceApiError, what: str) -> HTTPException:
    if e.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Knowledge service error ({e.kind.value}) while fetching {what}",
    )


@router.get("/articles/{article_id}", response_model=ArticleRecord)
async def get_article(article_id: str, client: ComplianceApiClient = Depends(get_api_client)):
    """Fetches an article and returns it with its HTML sanitized."""
    try:
        raw = await client.get_article(article_id)
    except ComplianceApiError as e:
        logger.error(f"Failed to fetch article {article_id}: {e}")
        raise _upstream_error(e, f"Article {article_id}")

    article = article_from_payload(raw, article_id)
    if article is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Article {article_id} not found")
    return article


@router.post("/suggestions", response_model=SuggestionResult)
async def suggest_articles(request: SuggestionRequest, client: ComplianceApiClient = Depends(get_api_client)):
    try:
        raw = await client.suggest_for_system(request.system_id, request.system_desc, request.search_query)
    except ComplianceApiError as e:
        logger.error(f"Suggestion request failed: {e}")
        raise _upstream_error(e, "suggestions")
    return normalize_suggestions(raw)
