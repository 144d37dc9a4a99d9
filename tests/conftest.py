"""Shared fixtures: test settings, a recording fake upstream and an app client."""

from __future__ import annotations

from typing import Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from counsel.app import create_app
from counsel.config import Settings


class FakeUpstream:
    """Stands in for Groq and ElevenLabs; records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(500, json={"error": {"message": "no handler"}})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        groq_api_key="gsk-test",
        elevenlabs_api_key="el-test",
        upload_dir=tmp_path / "uploads",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_client(upstream) -> Iterator[Callable[[Settings], TestClient]]:
    """Open app clients wired to the fake upstream; all are closed afterwards."""
    clients: list[TestClient] = []

    def _make(settings: Settings) -> TestClient:
        client = TestClient(create_app(settings, transport=httpx.MockTransport(upstream)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def api(make_client, settings) -> TestClient:
    return make_client(settings)
