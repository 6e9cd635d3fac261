# This file makes the 'knowledge' directory a Python package.

from .articles import article_from_payload, normalize_suggestions
from .sanitizer import sanitize_html

__all__ = ["article_from_payload", "normalize_suggestions", "sanitize_html"]
