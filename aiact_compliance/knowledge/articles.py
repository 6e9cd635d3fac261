"""
Parsing of knowledge-base responses: single articles and system suggestions.

Both endpoints are as loosely shaped as the analysis ones, so fields are
looked up through alias lists, and any HTML is passed through the
sanitizer before it leaves this module.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from ..analysis.normalizer import as_item_list, coerce_number, coerce_text, coerce_text_list
from ..models.analysis import clamp_score
from ..models.knowledge import ArticleRecord, ArticleSuggestion, SuggestionResult
from .sanitizer import sanitize_html

logger = logging.getLogger(__name__)

ARTICLE_CONTAINER_KEYS = ("article", "data", "result")
SUGGESTION_CONTAINER_KEYS = ("result", "data", "suggestions")

ARTICLE_ID_KEYS = ("articleId", "article_id", "id", "number")
TITLE_KEYS = ("title", "name")
CONTENT_KEYS = ("content", "html", "body", "text")
KEY_POINT_KEYS = ("keyPoints", "key_points", "highlights")
OFFICIAL_URL_KEYS = ("officialUrl", "official_url", "url", "officialLink")
IMAGE_URL_KEYS = ("imageUrl", "image_url", "image")
LAST_UPDATED_KEYS = ("lastUpdated", "last_updated", "updatedAt")

SUGGESTED_ARTICLE_KEYS = ("relevantArticles", "euAiActArticles", "articles")
COMPLIANCE_SCORE_KEYS = ("complianceScore", "compliance_score", "score")
REMEDIATION_KEYS = ("suggestedRemediation", "remediation", "recommendations", "suggestedImprovements")
GAP_KEYS = ("gaps", "complianceGaps", "missingRequirements")
RELEVANCE_KEYS = ("relevance", "relevanceScore", "score")
EXCERPT_KEYS = ("excerpt", "summary", "snippet", "description")


def _unwrap(raw: Any, container_keys: Iterable[str]) -> Mapping:
    """Return the innermost mapping reachable through the container keys."""
    if not isinstance(raw, Mapping):
        return {}
    node = raw
    for _ in range(3):
        for key in container_keys:
            child = node.get(key)
            if isinstance(child, Mapping):
                node = child
                break
        else:
            break
    return node


def _first_text(node: Mapping, keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = node.get(key)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value).strip()
            if text:
                return text
    return None


def _first_value(node: Mapping, keys: Iterable[str]) -> Any:
    for key in keys:
        if node.get(key) is not None:
            return node[key]
    return None


def _safe_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if urlparse(value).scheme.lower() in ("http", "https"):
        return value
    if value.startswith("/") and not value.startswith("//"):
        return value
    logger.debug(f"Discarding non-http URL from article payload: {value!r}")
    return None


def article_from_payload(raw: Any, article_id: Optional[str] = None) -> Optional[ArticleRecord]:
    """
    Builds an ArticleRecord from an article-by-id response.

    `content` and the worked example's details are always sanitized. Returns
    None when the payload carries neither an id (and none was requested) nor
    any content, i.e. nothing worth rendering.
    """
    node = _unwrap(raw, ARTICLE_CONTAINER_KEYS)
    if not node:
        return None

    resolved_id = _first_text(node, ARTICLE_ID_KEYS) or article_id
    content = _first_text(node, CONTENT_KEYS)
    title = _first_text(node, TITLE_KEYS)
    if not resolved_id or not (content or title):
        return None

    example = node.get("example") if isinstance(node.get("example"), Mapping) else {}
    example_summary = _first_text(node, ("exampleSummary",)) or _first_text(example, ("summary", "title"))
    example_details = _first_text(node, ("exampleDetails",)) or _first_text(example, ("details", "content"))

    return ArticleRecord(
        article_id=resolved_id,
        title=title or resolved_id,
        content=sanitize_html(content),
        risk_level=_first_text(node, ("riskLevel", "risk_level")),
        key_points=coerce_text_list(_first_value(node, KEY_POINT_KEYS)),
        official_url=_safe_url(_first_text(node, OFFICIAL_URL_KEYS)),
        version=_first_text(node, ("version",)),
        last_updated=_first_text(node, LAST_UPDATED_KEYS),
        change_description=_first_text(node, ("changeDescription", "change_description")),
        example_summary=example_summary,
        example_details=sanitize_html(example_details) if example_details else None,
        image_url=_safe_url(_first_text(node, IMAGE_URL_KEYS)),
    )


def _relevance(value: Any) -> float:
    number = coerce_number(value)
    if number is None:
        return 0.0
    if number > 1:
        number = number / 100 # Percent scale
    return max(0.0, min(1.0, number))


def _suggestion_from_item(item: Any) -> Optional[ArticleSuggestion]:
    if isinstance(item, str):
        text = item.strip()
        return ArticleSuggestion(article_id=text, title=text) if text else None
    if not isinstance(item, Mapping):
        return None
    article_id = _first_text(item, ARTICLE_ID_KEYS + ("article",))
    title = _first_text(item, TITLE_KEYS)
    if not article_id and not title:
        return None
    return ArticleSuggestion(
        article_id=article_id or title,
        title=title or article_id,
        relevance=_relevance(_first_value(item, RELEVANCE_KEYS)),
        excerpt=coerce_text(_first_value(item, EXCERPT_KEYS)) or "",
    )


def normalize_suggestions(raw: Any) -> SuggestionResult:
    """
    Converts a suggest-endpoint response into a SuggestionResult.

    Article items may be bare strings ("Article 52") or objects; items that
    yield neither an id nor a title are skipped. Never raises.
    """
    node = _unwrap(raw, SUGGESTION_CONTAINER_KEYS)
    if not node:
        if raw is not None:
            logger.warning(f"Expected an object from the suggestion endpoint, received {type(raw).__name__}")
        return SuggestionResult()

    articles: List[ArticleSuggestion] = []
    seen = set()
    for item in as_item_list(_first_value(node, SUGGESTED_ARTICLE_KEYS)):
        suggestion = _suggestion_from_item(item)
        if suggestion is None or suggestion.article_id in seen:
            continue
        seen.add(suggestion.article_id)
        articles.append(suggestion)

    score = coerce_number(_first_value(node, COMPLIANCE_SCORE_KEYS))
    return SuggestionResult(
        relevant_articles=articles,
        compliance_score=clamp_score(score) if score is not None else 0,
        suggested_remediation=coerce_text_list(_first_value(node, REMEDIATION_KEYS)),
        gaps=coerce_text_list(_first_value(node, GAP_KEYS)),
    )
