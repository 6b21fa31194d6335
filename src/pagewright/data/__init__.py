"""Data requirement fetching, caching and page-level data."""

from .cache import RequirementCache, requirement_cache_key, requirement_state_key
from .orchestrator import DataRequirementOrchestrator, RequirementState
from .page_data import PageDataSource, build_page_info, build_user_info
from .sources import SourceFetcher
from .transport import HttpClient, HttpQueryTransport, HttpResponse, QueryTransport, UrllibHttpClient

__all__ = [
    "DataRequirementOrchestrator",
    "HttpClient",
    "HttpQueryTransport",
    "HttpResponse",
    "PageDataSource",
    "QueryTransport",
    "RequirementCache",
    "RequirementState",
    "SourceFetcher",
    "UrllibHttpClient",
    "build_page_info",
    "build_user_info",
    "requirement_cache_key",
    "requirement_state_key",
]
