from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArticleRecord(BaseModel):
    """
    EU AI Act article as served to the UI.

    `content` and `example_details` hold HTML that has already been through
    the allow-list sanitizer; build instances with
    `knowledge.articles.article_from_payload` rather than directly.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    article_id: str
    title: str = ""
    content: str = ""
    risk_level: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    official_url: Optional[str] = None
    version: Optional[str] = None
    last_updated: Optional[str] = None
    change_description: Optional[str] = None
    example_summary: Optional[str] = None
    example_details: Optional[str] = None
    image_url: Optional[str] = None


class ArticleSuggestion(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    article_id: str
    title: str = ""
    relevance: float = 0.0
    excerpt: str = ""


class SuggestionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    relevant_articles: List[ArticleSuggestion] = Field(default_factory=list)
    compliance_score: int = Field(default=0, ge=0, le=100)
    suggested_remediation: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
