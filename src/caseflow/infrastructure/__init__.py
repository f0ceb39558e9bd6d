"""Infrastructure: backend HTTP client and the process-wide case cache."""

from caseflow.infrastructure.api_client import CaseApiClient
from caseflow.infrastructure.case_store import CaseStore

__all__ = ["CaseApiClient", "CaseStore"]
