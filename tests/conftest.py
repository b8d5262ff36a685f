"""Shared fixtures: fake clock, scripted Gemini transport, API client."""
import json
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from coincoach.integrations.gemini import GeminiClient


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class GeminiStub:
    """Records Gemini calls and answers each with the next queued response."""

    def __init__(self, responses: Optional[list] = None):
        self.responses = list(responses or [])
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("unexpected Gemini call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=gemini_body(response))

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)

    def client(self, api_key: str = "test-key") -> GeminiClient:
        return GeminiClient(api_key=api_key, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app():
    from coincoach.main import app, limiter

    limiter.reset()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)
