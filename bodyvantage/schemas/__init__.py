"""Pydantic models for backend payloads, request state and view models."""

from bodyvantage.schemas.request_state import RequestState
from bodyvantage.schemas.profile import Profile, ProfileListResponse, ClickCounterResponse
from bodyvantage.schemas.search import HighlightRun, ProfileCard, SearchResults
from bodyvantage.schemas.pagination import Pagination

__all__ = [
    "RequestState",
    "Profile",
    "ProfileListResponse",
    "ClickCounterResponse",
    "HighlightRun",
    "ProfileCard",
    "SearchResults",
    "Pagination",
]
