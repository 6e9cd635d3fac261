from ..clients.compliance_api import ComplianceApiClient
from ..orchestration.session import SessionStore

# One store per process; sessions live only in memory
_session_store = SessionStore()


def get_session_store() -> SessionStore:
    return _session_store


def get_api_client() -> ComplianceApiClient:
    return ComplianceApiClient()
