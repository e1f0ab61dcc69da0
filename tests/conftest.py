import json

import httpx
import pytest

from llmrelay.types import CallKind, ClientConfig, Provider


class MockHTTP:
    """
    Queue canned responses and record every request the adapters send.

    Queued items may be a dict (sent as a 200 JSON body), an httpx.Response,
    or an exception to raise instead of answering.
    """

    def __init__(self):
        self.requests = []
        self._responses = []
        self.transport = httpx.MockTransport(self._handle)

    def queue(self, *responses):
        self._responses.extend(responses)
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def mock_http():
    return MockHTTP()


@pytest.fixture
def mock_env(monkeypatch, tmp_path):
    """Mock environment variables for API keys and run outside any real .env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-openai")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test-anthropic")
    monkeypatch.setenv("GOOGLE_API_KEY", "AIza-test-google")


@pytest.fixture
def openai_config():
    return ClientConfig(
        provider=Provider.OPENAI,
        api_key="sk-test-openai",
        endpoint="https://api.openai.test/v1/",
        default_model="gpt-4o-mini",
    )


@pytest.fixture
def anthropic_config():
    return ClientConfig(
        provider=Provider.ANTHROPIC,
        api_key="sk-test-anthropic",
        endpoint="https://api.anthropic.test/v1",
        default_model="claude-3-5-haiku-latest",
    )


@pytest.fixture
def gemini_config():
    return ClientConfig(
        provider=Provider.GEMINI,
        api_key="AIza-test-google",
        endpoint="https://gemini.test/v1beta/models",
        default_model="gemini-2.5-flash",
    )


@pytest.fixture
def gemini_embedding_config(gemini_config):
    return gemini_config.replace(
        default_model="models/gemini-embedding-001",
        call_kind=CallKind.EMBEDDING,
    )
