"""Hero image selection: validation, broken memo, stability and repetition avoidance."""

import asyncio
import random

import pytest

from bodyvantage.providers import ImageProbe
from bodyvantage.services import BrokenImageCache, ImagePoolSelector, candidate_urls, pool_identity
from conftest import FakeImageProbe, GatedImageProbe, make_profile


def pool(*urls):
    return [make_profile(profileImage=u) for u in urls]


class TestPoolIdentity:

    def test_order_and_duplicates_do_not_matter(self):
        assert pool_identity(["a.png", "b.png"]) == pool_identity(["b.png", "a.png", "a.png"])

    def test_different_sets_differ(self):
        assert pool_identity(["a.png"]) != pool_identity(["a.png", "b.png"])

    def test_candidates_skip_blank_and_duplicates(self):
        profiles = pool("a.png", "", "a.png", "b.png") + [make_profile()]
        assert candidate_urls(profiles) == ["a.png", "b.png"]


class TestBrokenImageCache:

    def test_append_only_membership(self):
        cache = BrokenImageCache()
        cache.add("a.png")
        cache.add("a.png")
        assert "a.png" in cache
        assert len(cache) == 1
        assert cache.urls() == frozenset({"a.png"})


class TestSelection:

    @pytest.mark.asyncio
    async def test_empty_pool_is_idle(self):
        probe = FakeImageProbe()
        selector = ImagePoolSelector(probe)
        assert await selector.select_hero_image([]) is None
        assert selector.state == "idle"
        assert probe.calls == []

    @pytest.mark.asyncio
    async def test_broken_candidate_is_skipped_and_selection_is_stable(self):
        probe = FakeImageProbe(reachable={"b.png"})
        selector = ImagePoolSelector(probe)

        first = await selector.select_hero_image(pool("a.png", "b.png"))
        assert first == "b.png"
        assert "a.png" in selector.broken
        assert sorted(probe.calls) == ["a.png", "b.png"]

        second = await selector.select_hero_image(pool("a.png", "b.png"), previous_url="b.png")
        assert second == "b.png"
        assert len(probe.calls) == 2
        assert selector.state == "selected"

    @pytest.mark.asyncio
    async def test_single_valid_candidate_reselected_even_if_previous(self):
        probe = FakeImageProbe(reachable={"b.png"})
        selector = ImagePoolSelector(probe)
        assert await selector.select_hero_image(pool("a.png", "b.png"), previous_url="b.png") == "b.png"

    @pytest.mark.asyncio
    async def test_avoids_previous_when_alternative_exists(self):
        for seed in range(25):
            probe = FakeImageProbe(reachable={"a.png", "b.png", "c.png"})
            selector = ImagePoolSelector(probe, rng=random.Random(seed))
            chosen = await selector.select_hero_image(pool("a.png", "b.png", "c.png"), previous_url="a.png")
            assert chosen in {"b.png", "c.png"}

    @pytest.mark.asyncio
    async def test_all_broken_returns_none_without_reprobing(self):
        probe = FakeImageProbe(reachable=set())
        selector = ImagePoolSelector(probe)
        assert await selector.select_hero_image(pool("a.png", "b.png")) is None
        assert selector.state == "all_broken"
        assert await selector.select_hero_image(pool("b.png", "a.png")) is None
        assert len(probe.calls) == 2

    @pytest.mark.asyncio
    async def test_broken_urls_never_reprobed_after_pool_change(self):
        probe = FakeImageProbe(reachable={"b.png", "c.png"})
        selector = ImagePoolSelector(probe)
        await selector.select_hero_image(pool("a.png", "b.png"))
        probe.calls.clear()

        chosen = await selector.select_hero_image(pool("a.png", "b.png", "c.png"))
        assert "a.png" not in probe.calls
        assert sorted(probe.calls) == ["b.png", "c.png"]
        assert chosen in {"b.png", "c.png"}

    @pytest.mark.asyncio
    async def test_broken_cache_outlives_selector(self):
        broken = BrokenImageCache()
        broken.add("a.png")
        probe = FakeImageProbe(reachable={"a.png", "b.png"})
        selector = ImagePoolSelector(probe, broken=broken)
        assert await selector.select_hero_image(pool("a.png", "b.png")) == "b.png"
        assert probe.calls == ["b.png"]

    @pytest.mark.asyncio
    async def test_selection_never_in_broken_set(self):
        probe = FakeImageProbe(reachable={"a.png", "c.png"})
        selector = ImagePoolSelector(probe, rng=random.Random(1))
        chosen = await selector.select_hero_image(pool("a.png", "b.png", "c.png"))
        assert chosen not in selector.broken

    @pytest.mark.asyncio
    async def test_probe_exception_counts_as_unreachable(self):
        class ExplodingProbe(FakeImageProbe):
            async def is_reachable(self, url):
                if url == "a.png":
                    raise RuntimeError("decoder crashed")
                return await super().is_reachable(url)

        probe = ExplodingProbe(reachable={"b.png"})
        selector = ImagePoolSelector(probe)
        assert await selector.select_hero_image(pool("a.png", "b.png")) == "b.png"
        assert "a.png" in selector.broken


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_validation(self):
        probe = FakeImageProbe(reachable={"a.png", "b.png"})
        selector = ImagePoolSelector(probe)
        profiles = pool("a.png", "b.png")
        first, second = await asyncio.gather(
            selector.select_hero_image(profiles),
            selector.select_hero_image(profiles),
        )
        assert first == second
        assert sorted(probe.calls) == ["a.png", "b.png"]

    @pytest.mark.asyncio
    async def test_superseded_pool_does_not_overwrite_newer_selection(self):
        probe = GatedImageProbe(slow={"a.png"})
        selector = ImagePoolSelector(probe)

        stale = asyncio.create_task(selector.select_hero_image(pool("a.png")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert selector.state == "validating"

        fresh = await selector.select_hero_image(pool("b.png"))
        assert fresh == "b.png"

        probe.gate.set()
        assert await stale == "a.png"
        assert selector.selection == "b.png"
        assert selector.identity == pool_identity(["b.png"])

    @pytest.mark.asyncio
    async def test_callers_sharing_validation_share_selection(self):
        probe = FakeImageProbe(reachable={"a.png", "b.png", "c.png"})
        selector = ImagePoolSelector(probe, rng=random.Random(3))
        profiles = pool("a.png", "b.png", "c.png")
        first, second = await asyncio.gather(
            selector.select_hero_image(profiles, previous_url="a.png"),
            selector.select_hero_image(profiles, previous_url="b.png"),
        )
        assert first == second
        assert first != "a.png"
        assert len(probe.calls) == 3

    @pytest.mark.asyncio
    async def test_selection_dropped_when_other_pool_finds_it_broken(self):
        class FailsOnRecheck(ImageProbe):
            """x.png loads the first time, then fails once the gate opens."""

            def __init__(self):
                self.gate = asyncio.Event()
                self.calls: list[str] = []

            async def is_reachable(self, url):
                self.calls.append(url)
                if url == "x.png" and self.calls.count("x.png") > 1:
                    await self.gate.wait()
                    return False
                return True

        probe = FailsOnRecheck()
        selector = ImagePoolSelector(probe)
        pool_a = pool("x.png")

        assert await selector.select_hero_image(pool_a) == "x.png"

        other = asyncio.create_task(selector.select_hero_image(pool("x.png", "y.png")))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert await selector.select_hero_image(pool_a) == "x.png"

        probe.gate.set()
        assert await other == "y.png"
        assert "x.png" in selector.broken
        assert selector.selection not in selector.broken

        assert await selector.select_hero_image(pool_a) is None
        assert selector.state == "all_broken"
