"""Shared fixtures: network-free fetcher and generative client fakes."""

import json
from typing import Any, Dict, Iterable, List, Optional

import pytest

from config.settings import Settings
from pipelines.concurrency import RateLimiter
from pipelines.fetcher import FetchError
from synthesis.llm import GenerationError


class FakeFetcher:
    """In-memory stand-in for PageFetcher keyed by exact URL."""

    def __init__(self,
                 pages: Optional[Dict[str, str]] = None,
                 json_responses: Optional[Dict[str, Any]] = None,
                 existing: Optional[Iterable[str]] = None):
        self.pages = dict(pages or {})
        self.json_responses = dict(json_responses or {})
        self.existing = {u.rstrip('/') for u in (existing or [])}
        self.text_calls: List[str] = []
        self.json_calls: List[tuple] = []
        self.exists_calls: List[str] = []
        self.closed = False

    async def get_text(self, url: str, timeout: Optional[float] = None) -> str:
        self.text_calls.append(url)
        if url in self.pages:
            return self.pages[url]
        raise FetchError(url, "HTTP 404", 404)

    async def get_json(self, url: str, params=None, headers=None, timeout=None) -> Any:
        self.json_calls.append((url, dict(params or {}), dict(headers or {})))
        if url in self.json_responses:
            value = self.json_responses[url]
            return value(params or {}) if callable(value) else value
        raise FetchError(url, "HTTP 503", 503)

    async def exists(self, url: str, timeout: Optional[float] = None) -> bool:
        self.exists_calls.append(url)
        return url.rstrip('/') in self.existing

    async def close(self):
        self.closed = True


class FakeLLM:
    """Scripted generative client. Each item is a reply string or an exception to raise."""

    def __init__(self, replies: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.calls: List[List[Dict[str, str]]] = []
        self.closed = False

    async def complete(self, messages, temperature=None) -> str:
        self.calls.append(messages)
        if not self.replies:
            raise GenerationError("no scripted reply left", status=500)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, (dict, list)):
            return json.dumps(reply)
        return reply

    async def close(self):
        self.closed = True


STAGE_REPLIES = [
    {
        'title': 'Acme Guide',
        'sections': [{'id': 'start', 'title': 'Getting Started'}],
        'source_citations': ['https://acme.test/docs/start', 'https://elsewhere.test/not-in-corpus'],
    },
    {
        'title': 'Acme Documentation',
        'description': 'Everything about Acme',
        'sections': [{'id': 'start', 'title': 'Getting Started', 'content': []}],
    },
    {
        'metadata': {'title': 'Acme Docs', 'description': 'Official Acme docs', 'keywords': ['acme']},
        'searchability': {'primary_tags': ['acme']},
        'validation': {'status': 'ok'},
    },
]


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def stage_replies():
    return [dict(r) for r in STAGE_REPLIES]


@pytest.fixture
def fake_llm(stage_replies):
    return FakeLLM(stage_replies)


@pytest.fixture
def settings():
    return Settings(request_timeout=1.0, crawl_delay=0.0)


@pytest.fixture
def no_delay():
    return RateLimiter(0)
