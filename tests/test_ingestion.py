from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from conftest import run
from ingestion.github import GitHubReleasesAdapter
from ingestion.rss import RSSAdapter
from ingestion.source_factory import create_adapters_from_config, create_source_adapter
from services.config import Config, GitHubRepoConfig, SourceConfig


def rss_feed(*entries):
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link>"
        f"<pubDate>{format_datetime(published)}</pubDate><description>{title} summary</description></item>"
        for title, link, published in entries
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Blog</title>{body}</channel></rss>'


def test_rss_adapter_keeps_recent_entries():
    now = datetime.now(timezone.utc)
    feed = rss_feed(
        ("GPT-4.1 is here", "https://openai.com/blog/gpt-4-1", now - timedelta(hours=2)),
        ("Old post", "https://openai.com/blog/old", now - timedelta(days=10)),
    )
    adapter = RSSAdapter([feed], "openai-blog", vendor="openai")
    items = run(adapter.fetch_items(hours=48))

    assert [i.title for i in items] == ["GPT-4.1 is here"]
    item = items[0]
    assert item.source == "rss"
    assert item.vendor == "openai"
    assert item.summary == "GPT-4.1 is here summary"
    assert item.raw["source_name"] == "openai-blog"


def releases_handler(request: httpx.Request) -> httpx.Response:
    now = datetime.now(timezone.utc)
    if request.url.path == "/repos/openai/openai-python/releases":
        return httpx.Response(200, json=[
            {
                "html_url": "https://github.com/openai/openai-python/releases/tag/v1.2.0",
                "name": "v1.2.0",
                "tag_name": "v1.2.0",
                "body": "Adds streaming helpers",
                "published_at": (now - timedelta(hours=3)).isoformat(),
            },
            {
                "html_url": "https://github.com/openai/openai-python/releases/tag/v1.0.0",
                "tag_name": "v1.0.0",
                "published_at": (now - timedelta(days=30)).isoformat(),
            },
        ])
    if request.url.path == "/repos/openai/limited/releases":
        return httpx.Response(403)
    return httpx.Response(404)


def test_github_adapter_maps_releases_and_tolerates_errors():
    repos = [
        GitHubRepoConfig(owner="openai", repo="openai-python", vendor="openai", product="openai-python"),
        GitHubRepoConfig(owner="openai", repo="limited"),
        GitHubRepoConfig(owner="openai", repo="missing"),
    ]
    client = httpx.AsyncClient(transport=httpx.MockTransport(releases_handler))
    items = run(GitHubReleasesAdapter(repos, token="abc", client=client).fetch_items(hours=48))

    assert len(items) == 1
    item = items[0]
    assert item.source == "github"
    assert item.title == "v1.2.0"
    assert item.text == "Adds streaming helpers"
    assert (item.vendor, item.product) == ("openai", "openai-python")


def test_github_adapter_sends_token():
    seen = []

    def handler(request):
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json=[])

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    repos = [GitHubRepoConfig(owner="openai", repo="openai-python")]
    run(GitHubReleasesAdapter(repos, token="abc", client=client).fetch_items(hours=1))
    assert seen == ["token abc"]


def test_source_factory():
    rss = create_source_adapter(SourceConfig(type="rss", name="blog", feeds=["https://openai.com/rss"]))
    assert isinstance(rss, RSSAdapter) and rss.name == "blog"

    github = create_source_adapter(
        SourceConfig(type="GitHub", repos=[GitHubRepoConfig(owner="openai", repo="openai-python")]),
        github_token="abc",
    )
    assert isinstance(github, GitHubReleasesAdapter) and github.token == "abc"

    with pytest.raises(ValueError):
        create_source_adapter(SourceConfig(type="rss"))
    with pytest.raises(ValueError):
        create_source_adapter(SourceConfig(type="carrier-pigeon"))


def test_adapters_from_config_skip_disabled_and_broken_sources():
    config = Config(sources=[
        SourceConfig(type="rss", feeds=["https://openai.com/rss"]),
        SourceConfig(type="rss", feeds=["https://x.ai/rss"], enabled=False),
        SourceConfig(type="github"),
    ])
    adapters = create_adapters_from_config(config)
    assert len(adapters) == 1
