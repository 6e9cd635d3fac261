"""
Allow-list HTML sanitizer for article content served by the knowledge base.

Article bodies and worked examples arrive as HTML and end up rendered as
markup in the browser, so nothing outside a small set of formatting tags may
pass through. Anything not on the list is unwrapped (its text is kept,
escaped) except for elements whose content is executable or embedded, which
are dropped together with their content.
"""
import logging
from typing import Dict, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.dammit import EntitySubstitution
from bs4.element import CData, Comment, Declaration, Doctype, ProcessingInstruction
from bs4.formatter import HTMLFormatter

logger = logging.getLogger(__name__)

ALLOWED_TAGS = {
    "p", "br", "hr", "div", "span",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "strong", "b", "em", "i", "u", "small", "sub", "sup", "mark",
    "blockquote", "code", "pre",
    "ul", "ol", "li", "dl", "dt", "dd",
    "table", "thead", "tbody", "tr", "th", "td", "caption",
    "a",
}

# Dropped along with everything inside them
DROP_CONTENT_TAGS = ["script", "style", "iframe", "object", "embed", "noscript", "template", "svg", "math"]

ALLOWED_ATTRIBUTES: Dict[str, set] = {
    "a": {"href", "title"},
    "th": {"colspan", "rowspan", "scope"},
    "td": {"colspan", "rowspan"},
}

ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}

# Non-element nodes html.parser keeps in the tree; none of them are rendered
HIDDEN_NODE_TYPES = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

# Escape only &, < and >; void elements render as <br>, not <br/>
OUTPUT_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def _is_safe_url(value: str) -> bool:
    candidate = value.strip()
    if not candidate:
        return False
    # Relative links inside the knowledge base
    if candidate.startswith(("/", "#")) and not candidate.startswith("//"):
        return True
    scheme = urlparse(candidate).scheme.lower()
    return scheme in ALLOWED_URL_SCHEMES


def _clean_attributes(tag) -> None:
    allowed = ALLOWED_ATTRIBUTES.get(tag.name, set())
    kept = {}
    for name, value in tag.attrs.items():
        if name not in allowed:
            continue
        if isinstance(value, list):
            value = " ".join(value)
        if name == "href" and not _is_safe_url(value):
            continue
        kept[name] = value
    if tag.name == "a" and "href" in kept:
        kept["rel"] = "noopener noreferrer"
    tag.attrs = kept


def sanitize_html(raw_html: Optional[str]) -> str:
    """
    Returns `raw_html` reduced to the allow-listed tags and attributes.

    Comments, processing instructions and doctype declarations are dropped.
    Unclosed elements are closed and stray close tags ignored, as
    BeautifulSoup's tree building does. Non-string input yields an empty
    string.
    """
    if not raw_html or not isinstance(raw_html, str):
        return ""

    soup = BeautifulSoup(raw_html, "html.parser")
    removed: Dict[str, int] = {}

    for node in soup.find_all(string=lambda s: isinstance(s, HIDDEN_NODE_TYPES)):
        node.extract()

    tag = soup.find(DROP_CONTENT_TAGS)
    while tag is not None:
        removed[tag.name] = removed.get(tag.name, 0) + 1
        tag.decompose()
        tag = soup.find(DROP_CONTENT_TAGS)

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            removed[tag.name] = removed.get(tag.name, 0) + 1
            tag.unwrap()
        else:
            _clean_attributes(tag)

    if removed:
        logger.debug(f"Sanitizer removed tags: {removed}")
    return soup.decode(formatter=OUTPUT_FORMATTER)
