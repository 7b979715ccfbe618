"""Data-synchronization and search core of the BodyVantage trainer directory client."""

from bodyvantage.domain import Operation
from bodyvantage.services import (
    DirectoryService,
    ImagePoolSelector,
    RequestStateMachine,
    SearchEngine,
    change_page,
    get_directory_service,
    highlight,
)
from bodyvantage.services.search import search

__all__ = [
    "Operation",
    "DirectoryService",
    "ImagePoolSelector",
    "RequestStateMachine",
    "SearchEngine",
    "change_page",
    "get_directory_service",
    "highlight",
    "search",
]
