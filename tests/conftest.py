import json

import pytest

from trueorscam.detection.cache import ResponseCache
from trueorscam.detection.config import Settings
from trueorscam.detection.inference import GeminiClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None, url=None, headers=None, content=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")
        self.url = url
        self.headers = headers or {}

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def gemini_reply(text, status_code=200):
    return FakeResponse(status_code, {"candidates": [{"content": {"parts": [{"text": text}]}}]})


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_client(sleeps):
    def _make(*replies, api_key="test-key", **kwargs):
        session = FakeSession(*replies)
        client = GeminiClient(api_key=api_key, session=session, sleep=sleeps.append, **kwargs)
        return client, session
    return _make


@pytest.fixture
def cfg():
    s = Settings()
    s.gemini_api_key = None
    s.safe_browsing_key = None
    s.request_timeout = 1
    return s


@pytest.fixture
def cache():
    return ResponseCache()
