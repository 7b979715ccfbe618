"""Shared fixtures: profile factory, fake image probes and a mock backend transport."""

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from bodyvantage.providers import BackendClient, ImageProbe
from bodyvantage.schemas import Profile


# ============================================================================
# Profiles
# ============================================================================

_counter = {"n": 0}


def make_profile(**overrides: Any) -> Profile:
    """Build a Profile from backend-shaped fields; unique _id unless given."""
    _counter["n"] += 1
    data: dict[str, Any] = {
        "_id": f"p{_counter['n']}",
        "name": "Trainer",
        "description": "",
        "location": "",
        "keywords": [],
        "rating": 4.5,
        "numReviews": 3,
    }
    data.update(overrides)
    return Profile.model_validate(data)


@pytest.fixture
def profile_factory() -> Callable[..., Profile]:
    return make_profile


@pytest.fixture
def guildford_profile() -> Profile:
    return make_profile(
        _id="guildford",
        name="Guildford Fitness",
        keywords=["fat-loss-coaching", "guildford-surrey"],
        profileImage="https://img.example/guildford.png",
    )


# ============================================================================
# Image probes
# ============================================================================

class FakeImageProbe(ImageProbe):
    """Reachable iff the URL is in `reachable`. Records every probed URL."""

    def __init__(self, reachable: set[str] | None = None):
        self.reachable = set(reachable or ())
        self.calls: list[str] = []

    async def is_reachable(self, url: str) -> bool:
        self.calls.append(url)
        await asyncio.sleep(0)
        return url in self.reachable


class GatedImageProbe(ImageProbe):
    """Every URL is reachable, but URLs in `slow` wait for `gate` first."""

    def __init__(self, slow: set[str]):
        self.slow = set(slow)
        self.gate = asyncio.Event()
        self.calls: list[str] = []

    async def is_reachable(self, url: str) -> bool:
        self.calls.append(url)
        if url in self.slow:
            await self.gate.wait()
        return True


@pytest.fixture
def fake_probe() -> FakeImageProbe:
    return FakeImageProbe()


# ============================================================================
# Mock backend
# ============================================================================

class RecordingHandler:
    """httpx.MockTransport handler routing (method, path) to canned responses."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if body is None:
                return httpx.Response(status)
            return httpx.Response(status, json=body)

        self.routes[(method, path)] = _respond

    def add_handler(self, method: str, path: str, fn: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = fn

    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def json_body(self, index: int) -> Any:
        return json.loads(self.requests[index].content or b"null")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        fn = self.routes.get((request.method, request.url.path))
        if fn is None:
            return httpx.Response(404, json={"message": f"No route {request.method} {request.url.path}"})
        return fn(request)


@pytest.fixture
def backend_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def backend(backend_handler: RecordingHandler) -> BackendClient:
    return BackendClient(
        base_url="http://backend.test",
        token_provider=lambda: "secret-token",
        transport=httpx.MockTransport(backend_handler),
    )
