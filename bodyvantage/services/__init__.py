from .request_state import CancelToken, RequestStateMachine, flatten_error, reduce_request_state
from .search import SearchEngine, highlight, normalize_query, truncate_description
from .image_pool import BrokenImageCache, ImagePoolSelector, candidate_urls, pool_identity
from .pagination import PaginationController, change_page
from .directory import DirectoryService, get_directory_service

__all__ = [
    "CancelToken",
    "RequestStateMachine",
    "flatten_error",
    "reduce_request_state",
    "SearchEngine",
    "highlight",
    "normalize_query",
    "truncate_description",
    "BrokenImageCache",
    "ImagePoolSelector",
    "candidate_urls",
    "pool_identity",
    "PaginationController",
    "change_page",
    "DirectoryService",
    "get_directory_service",
]
