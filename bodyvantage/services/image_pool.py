"""Hero image selection over the images of the current profile collection.

The selector keeps one selection per pool identity (a hash of the distinct candidate
URLs). A refresh that yields the same candidate set returns the cached selection
without probing; only a change in the set triggers validation and re-selection.
URLs that fail to load go into the BrokenImageCache and are never probed again.
"""

import asyncio
import hashlib
import logging
import random
from typing import Literal, Optional, Sequence

from bodyvantage.providers import ImageProbe
from bodyvantage.schemas import Profile

logger = logging.getLogger(__name__)

PoolState = Literal["idle", "validating", "selected", "all_broken"]


class BrokenImageCache:
    """Append-only set of image URLs that failed to load. Lives as long as the session."""

    def __init__(self) -> None:
        self._urls: set[str] = set()

    def add(self, url: str) -> None:
        self._urls.add(url)

    def __contains__(self, url: object) -> bool:
        return url in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def urls(self) -> frozenset[str]:
        return frozenset(self._urls)


def candidate_urls(profiles: Sequence[Profile]) -> list[str]:
    """Distinct non-empty profile image URLs, first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for p in profiles:
        url = (p.profile_image or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


def pool_identity(urls: Sequence[str]) -> str:
    """Content hash of the candidate set; order and duplicates do not matter."""
    if not urls:
        return ""
    joined = "\n".join(sorted(set(urls)))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


class ImagePoolSelector:
    def __init__(
        self,
        probe: ImageProbe,
        broken: BrokenImageCache | None = None,
        rng: random.Random | None = None,
    ):
        self.probe = probe
        self.broken = broken if broken is not None else BrokenImageCache()
        self._rng = rng or random.Random()
        self._identity: Optional[str] = None
        self._selection: Optional[str] = None
        self._requested_identity: Optional[str] = None
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def selection(self) -> Optional[str]:
        return self._selection

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def state(self) -> PoolState:
        if self._requested_identity and self._requested_identity in self._inflight:
            return "validating"
        if not self._identity:
            return "idle"
        return "selected" if self._selection else "all_broken"

    async def select_hero_image(
        self,
        profiles: Sequence[Profile],
        previous_url: Optional[str] = None,
    ) -> Optional[str]:
        """Pick a reachable hero image, avoiding previous_url when an alternative exists.

        The selection belongs to the pool identity, not the caller: callers that arrive
        while a validation of the same identity is in flight share its result, which was
        chosen against the previous_url of the caller that started it.
        """
        urls = candidate_urls(profiles)
        identity = pool_identity(urls)
        self._requested_identity = identity
        if not urls:
            self._identity = None
            self._selection = None
            return None
        if identity == self._identity:
            if self._selection is None or self._selection not in self.broken:
                return self._selection
            logger.debug("Cached hero image %s has since failed to load; revalidating", self._selection)
            self._identity = None
            self._selection = None

        task = self._inflight.get(identity)
        if task is None:
            task = asyncio.ensure_future(self._validate(identity, urls, previous_url))
            self._inflight[identity] = task
            task.add_done_callback(lambda _t, key=identity: self._inflight.pop(key, None))
        # Shared by every caller waiting on this identity; one caller going away must not cancel it
        return await asyncio.shield(task)

    async def _validate(self, identity: str, urls: list[str], previous_url: Optional[str]) -> Optional[str]:
        eligible = [u for u in urls if u not in self.broken]
        if eligible:
            outcomes = await asyncio.gather(
                *(self.probe.is_reachable(u) for u in eligible),
                return_exceptions=True,
            )
        else:
            outcomes = []
        reachable: list[str] = []
        for url, outcome in zip(eligible, outcomes):
            if outcome is True:
                reachable.append(url)
                continue
            if isinstance(outcome, BaseException):
                logger.debug("Image probe raised for %s: %s", url, outcome)
            self.broken.add(url)
        # Another validation may have marked a URL broken while this one ran
        reachable = [u for u in reachable if u not in self.broken]

        selection = self._choose(reachable, previous_url)
        if not reachable:
            logger.info("All %d hero image candidates are unreachable", len(urls))

        if identity == self._requested_identity:
            self._identity = identity
            self._selection = selection
        else:
            logger.debug("Pool changed during validation; not caching selection for %s", identity[:12])
            if self._selection is not None and self._selection in self.broken:
                # The committed pool's image failed here; its next request revalidates
                self._identity = None
                self._selection = None
        return selection

    def _choose(self, reachable: list[str], previous_url: Optional[str]) -> Optional[str]:
        if not reachable:
            return None
        alternatives = [u for u in reachable if u != previous_url]
        return self._rng.choice(alternatives or reachable)
