import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from core.entities import Item, MediaImage
from core.schemas import ExtractedFacts

NOW = datetime(2024, 11, 6, 12, 0, tzinfo=timezone.utc)


def make_item(
    title: str,
    url: Optional[str] = None,
    *,
    hours_ago: float = 1.0,
    vendor: Optional[str] = "openai",
    product: Optional[str] = "gpt-4",
    text: Optional[str] = None,
    source: str = "rss",
    now: datetime = NOW,
) -> Item:
    return Item.create(
        source=source,
        url=url or f"https://openai.com/blog/{'-'.join(title.lower().split())}-{int(hours_ago * 10)}",
        title=title,
        published_at=now - timedelta(hours=hours_ago),
        vendor=vendor,
        product=product,
        text=text,
    )


def make_facts(**overrides) -> ExtractedFacts:
    data = {
        "vendor": "openai",
        "product": "gpt-4",
        "version": "4.1",
        "title": "GPT-4.1 release",
        "summary": "GPT-4.1 ships with a larger context window and lower prices for developers using the API today.",
        "features": ["128K context window", "JSON mode"],
        "changes": ["Lower latency on long prompts"],
        "prices": ["$10 per 1M input tokens"],
        "limits": ["500 requests per minute"],
        "date": "2024-11-06",
        "citations": ["https://openai.com/blog/gpt-4-1"],
    }
    data.update(overrides)
    return ExtractedFacts(**data)


class FakeLLM:
    """
    Returns canned responses in order and records every prompt pair.
    An Exception instance in the queue is raised instead of returned.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[tuple] = []

    async def prompt(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeMediaFetcher:
    def __init__(self, image: Optional[MediaImage] = None, error: Optional[Exception] = None):
        self.image = image
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, url: str, product: str, version: Optional[str] = None) -> Optional[MediaImage]:
        self.calls.append(url)
        if self.error:
            raise self.error
        return self.image


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def facts() -> ExtractedFacts:
    return make_facts()


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for key in ("TEST_MODE", "OLLAMA_BASE_URL", "GITHUB_TOKEN"):
        monkeypatch.delenv(key, raising=False)
