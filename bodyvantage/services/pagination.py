import logging
from typing import Awaitable, Callable, Optional

from bodyvantage.schemas import Pagination, ProfileListResponse, RequestState

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int], Awaitable[object]]


def change_page(current: int, requested: int, total_pages: int) -> int:
    """requested if 1 <= requested <= total_pages, otherwise current (no error)."""
    if 1 <= requested <= total_pages:
        return requested
    return current


class PaginationController:
    """Tracks the page window of a listing and drives a re-fetch on valid page changes."""

    def __init__(self, fetch_page: PageFetcher, page_size: int = 0):
        self._fetch_page = fetch_page
        self._state = Pagination(page=1, page_size=max(0, page_size))

    @property
    def state(self) -> Pagination:
        return self._state

    def update_from_response(self, response: ProfileListResponse) -> Pagination:
        """Adopt the page/pages/total reported by the backend."""
        total_pages = max(0, response.pages)
        page = max(1, response.page)
        if total_pages and page > total_pages:
            page = total_pages
        self._state = Pagination(
            page=page,
            page_size=self._state.page_size,
            total_pages=total_pages,
            total_items=max(0, response.total),
        )
        return self._state

    async def go_to(self, requested: int) -> Optional[int]:
        """Move to requested and re-fetch.

        Returns the new page, or None when the request was out of bounds or the fetch
        did not succeed; in both cases the current page is left as it was. A fetcher
        that raises propagates with the page unchanged.
        """
        current = self._state.page
        target = change_page(current, requested, self._state.total_pages)
        if target == current and requested != current:
            logger.debug("Ignoring page change to %s (pages=%s)", requested, self._state.total_pages)
            return None
        before = self._state
        result = await self._fetch_page(target)
        if isinstance(result, RequestState) and not result.succeeded:
            logger.info("Page %s was not loaded (%s); staying on page %s", target, result.status, current)
            return None
        # The fetcher may already have adopted the backend's page window
        if self._state is before:
            self._state = before.model_copy(update={"page": target})
        return target

    async def next_page(self) -> Optional[int]:
        return await self.go_to(self._state.page + 1)

    async def previous_page(self) -> Optional[int]:
        return await self.go_to(self._state.page - 1)
