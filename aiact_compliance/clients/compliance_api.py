import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from ..constants import FailureKind
from ..core.config import ComplianceApiSettings, api_settings

logger = logging.getLogger(__name__)

# External endpoints (paths relative to the configured base URL)
ENHANCED_RISK_PATH = "/api/analyze/enhanced-risk"
SYSTEM_ANALYSIS_PATH = "/api/analyze/system"
LEGAL_VALIDATE_PATH = "/api/legal/validate"
LEGAL_VALIDATE_FALLBACK_PATH = "/api/legal-validation/validate"
SUGGEST_SYSTEM_PATH = "/api/suggest/system"
ARTICLE_BY_ID_PATH = "/api/knowledge/articles/by-article-id/{article_id}"


class ComplianceApiError(Exception):
    """Raised when an external endpoint cannot give us a decodable answer."""

    def __init__(self, kind: FailureKind, message: str, endpoint: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.endpoint = endpoint
        self.status_code = status_code


class ComplianceApiClient:
    """
    Async client for the analysis, legal validation and knowledge endpoints.

    Every call either returns the decoded JSON body (whatever its shape) or
    raises ComplianceApiError with one of the transport / status / decode /
    timeout failure kinds. Interpreting the body is left to the normalizer.
    """

    def __init__(self, settings: Optional[ComplianceApiSettings] = None):
        self.settings = settings or api_settings

    def _headers(self) -> Dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if self.settings.api_key:
            headers['X-Api-Key'] = self.settings.api_key
        return headers

    async def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.settings.base_url.rstrip('/')}{path}"
        async with httpx.AsyncClient() as client:
            try:
                logger.debug(f"Sending {method} request to {url}")
                if method == "GET":
                    response = await client.get(url, headers=self._headers(), timeout=self.settings.request_timeout)
                else:
                    response = await client.post(
                        url,
                        headers=self._headers(),
                        content=json.dumps(payload or {}),
                        timeout=self.settings.request_timeout,
                    )
                response.raise_for_status() # Raise for 4xx / 5xx
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                logger.error(f"HTTP error from {path}: {status_code} - {e.response.text}")
                raise ComplianceApiError(FailureKind.STATUS, f"{path} returned HTTP {status_code}", path, status_code) from e
            except httpx.TimeoutException as e:
                logger.error(f"Request to {path} timed out after {self.settings.request_timeout}s: {e}")
                raise ComplianceApiError(FailureKind.TIMEOUT, f"{path} timed out", path) from e
            except httpx.RequestError as e:
                logger.error(f"Request error calling {path}: {e}")
                raise ComplianceApiError(FailureKind.TRANSPORT, f"Could not reach {path}: {e}", path) from e

            try:
                body = response.json()
            except ValueError as e:
                logger.error(f"Invalid JSON in response from {path}: {e}")
                raise ComplianceApiError(FailureKind.DECODE, f"{path} returned invalid JSON", path, response.status_code) from e

        logger.info(f"Received response from {path} (type: {type(body).__name__})")
        return body

    # --- Risk analysis ---

    async def analyze_enhanced_risk(self, draft_payload: Dict[str, Any]) -> Any:
        return await self._request("POST", ENHANCED_RISK_PATH, {**draft_payload, "analysisType": "detailed_risk_parameters"})

    async def analyze_system(self, draft_payload: Dict[str, Any]) -> Any:
        return await self._request("POST", SYSTEM_ANALYSIS_PATH, draft_payload)

    # --- Legal validation ---

    @staticmethod
    def _validation_payload(text: str, validation_type: str, context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {"text": text, "type": validation_type, "context": context or {}}

    async def validate_legal(self, text: str, validation_type: str = "assessment", context: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("POST", LEGAL_VALIDATE_PATH, self._validation_payload(text, validation_type, context))

    async def validate_legal_fallback(self, text: str, validation_type: str = "assessment", context: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("POST", LEGAL_VALIDATE_FALLBACK_PATH, self._validation_payload(text, validation_type, context))

    # --- Knowledge base ---

    async def get_article(self, article_id: str) -> Any:
        path = ARTICLE_BY_ID_PATH.format(article_id=quote(article_id, safe=""))
        return await self._request("GET", path)

    async def suggest_for_system(
        self,
        system_id: Optional[str] = None,
        system_desc: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> Any:
        payload = {
            key: value for key, value in (
                ("systemId", system_id),
                ("systemDesc", system_desc),
                ("searchQuery", search_query),
            ) if value is not None
        }
        return await self._request("POST", SUGGEST_SYSTEM_PATH, payload)
