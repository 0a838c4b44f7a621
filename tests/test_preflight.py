from conftest import make_facts, run
from delivery.preflight import has_official_citation, is_duplicate_post, preflight_check
from services.config import PreflightConfig


class FakeHistory:
    def __init__(self, posts=None, count=0, error=None):
        self.posts = posts or []
        self.count = count
        self.error = error
        self.queries = []

    async def get_recent_posts(self, vendor, product, hours=48):
        self.queries.append((vendor, product, hours))
        if self.error:
            raise self.error
        return self.posts

    async def count_tweets_since(self, hours=24):
        if self.error:
            raise self.error
        return self.count


def test_clean_history_passes():
    history = FakeHistory()
    result = run(preflight_check(make_facts(), history))
    assert result.can_post
    assert result.errors == [] and result.warnings == []
    assert history.queries == [("openai", "gpt-4", 48)]


def test_version_qualified_duplicates():
    assert is_duplicate_post(["Update: GPT-4.1 is here"], "4.1")
    assert not is_duplicate_post(["Update: GPT-4.0 is here"], "4.1")
    assert is_duplicate_post(["anything"], None)
    assert not is_duplicate_post([], None)


def test_duplicate_blocks_posting():
    result = run(preflight_check(make_facts(), FakeHistory(posts=["Release: gpt-4 v4.1 shipped"])))
    assert not result.can_post
    assert not result.duplicate_check
    assert result.errors == ["Duplicate content found for openai gpt-4 4.1 within 48h"]


def test_daily_cap_and_warning():
    capped = run(preflight_check(make_facts(), FakeHistory(count=5)))
    assert not capped.can_post
    assert capped.errors == ["Daily tweet limit exceeded (5/5)"]

    close = run(preflight_check(make_facts(), FakeHistory(count=4)))
    assert close.can_post
    assert close.warnings == ["Approaching daily limit (4/5)"]


def test_citation_domain_required():
    result = run(preflight_check(make_facts(citations=["https://techcrunch.com/x"]), FakeHistory()))
    assert not result.can_post
    assert not result.citation_check
    assert result.errors == ["No official citation domains found in facts.citations"]


def test_history_failures_fail_open_with_warnings():
    result = run(preflight_check(make_facts(), FakeHistory(error=RuntimeError("db locked"))))
    assert result.can_post
    assert len(result.warnings) == 2


def test_missing_history_still_checks_citations():
    assert run(preflight_check(make_facts(), None)).can_post
    assert not run(preflight_check(make_facts(citations=[]), None)).can_post


def test_official_citation_matching():
    domains = PreflightConfig().official_domains
    assert has_official_citation(["https://github.com/openai/x/releases"], domains)
    assert has_official_citation(["https://blog.openai.com/x"], domains)
    assert not has_official_citation(["https://openai.com.evil.net/x", "not a url"], domains)
