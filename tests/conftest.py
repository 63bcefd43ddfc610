from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable

import pytest
import requests

from promriak.api.config import InstanceConfig
from promriak.api.state import Instance


@dataclass(slots=True)
class FakeResponse:
    text: str
    status_code: int = 200

    def json(self, **kwargs):
        return json.loads(self.text, **kwargs)


@dataclass(slots=True)
class SessionCall:
    url: str
    timeout: float | None


@dataclass
class FakeSession:
    """
    Minimal requests.Session stand-in.

    `router(url)` returns the body text or raises (e.g. requests.Timeout).
    """

    router: Callable[[str], str]
    calls: list[SessionCall] = field(default_factory=list)

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append(SessionCall(url=url, timeout=timeout))
        return FakeResponse(text=self.router(url))


def make_descriptor(**overrides) -> InstanceConfig:
    base = dict(
        id="local",
        endpoint="http://127.0.0.1:8098/stats",
        scrape_interval=2.5,
        stale_threshold=20.0,
        prefix="riak_",
        metrics=None,
        special_metrics=True,
    )
    base.update(overrides)
    return InstanceConfig(**base)


@pytest.fixture()
def descriptor() -> InstanceConfig:
    return make_descriptor()


@pytest.fixture()
def instance(descriptor: InstanceConfig) -> Instance:
    return Instance(config=descriptor)


@pytest.fixture()
def fake_session_factory():
    def _factory(router: Callable[[str], str]) -> FakeSession:
        return FakeSession(router=router)

    return _factory


@pytest.fixture()
def timeout_router():
    def _router(url: str) -> str:
        raise requests.Timeout(f"timed out: {url}")

    return _router
