import asyncio
import logging
from abc import ABC, abstractmethod

import httpx

from bodyvantage.core import get_settings

logger = logging.getLogger(__name__)


class ImageProbe(ABC):
    """Attempts to load an image URL. A failed load is a normal outcome, not an error."""

    @abstractmethod
    async def is_reachable(self, url: str) -> bool:
        pass


class HttpImageProbe(ImageProbe):
    """Loads the image over HTTP (headers only) and treats any non-2xx or transport error as unreachable."""

    def __init__(
        self,
        timeout: float = 10.0,
        concurrency: int = 8,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def is_reachable(self, url: str) -> bool:
        async with self._semaphore:
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    transport=self._transport,
                    follow_redirects=True,
                ) as client:
                    async with client.stream("GET", url) as r:
                        ok = r.is_success
            except (httpx.RequestError, httpx.InvalidURL) as e:
                logger.debug("Image probe failed for %s: %s", url, e)
                return False
        if not ok:
            logger.debug("Image probe for %s returned %s", url, r.status_code)
        return ok


def get_image_probe() -> ImageProbe:
    s = get_settings()
    return HttpImageProbe(
        timeout=s.image_probe_timeout_seconds,
        concurrency=s.image_probe_concurrency,
    )
