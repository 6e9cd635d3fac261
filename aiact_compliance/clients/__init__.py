# This file makes the 'clients' directory a Python package.

from .compliance_api import ComplianceApiClient, ComplianceApiError

__all__ = ["ComplianceApiClient", "ComplianceApiError"]
