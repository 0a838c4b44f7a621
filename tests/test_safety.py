import pytest

from conftest import make_facts
from core.schemas import ExtractedFacts
from processing.deduplicator import is_duplicate_title
from processing.safety import (
    SafetyGate,
    SkipReason,
    contains_rumor_language,
    contains_spam_language,
    get_official_domains,
    has_empty_facts,
    is_official,
    is_trusted_domain,
    is_valid_url,
    validate_content,
)
from services.config import SafetyConfig

OFFICIAL_URL = "https://openai.com/blog/gpt-4-1"
GOOD_TEXT = (
    "OpenAI released GPT-4.1 for developers today. The model ships with a larger context window, "
    "lower prices per token and better instruction following in the API."
)


@pytest.mark.parametrize("url,expected", [
    ("https://openai.com/blog/x", True),
    ("https://platform.openai.com/docs", True),
    ("https://techcrunch.com/x", False),
    ("https://github.com/openai/foo/releases/tag/v1", True),
    ("https://github.com/openai/foo/releases", True),
    ("https://github.com/randomuser/foo/releases", False),
    ("https://github.com/openai/foo", False),
    ("http://github.com/openai/foo/releases/tag/v1", False),
    ("https://notopenai.com/blog", False),
    ("not a url", False),
])
def test_is_official(url, expected):
    assert is_official(url) is expected


def test_is_official_respects_custom_allowlists():
    assert is_official("https://example.org/post", ["example.org"], [])
    assert not is_official("https://github.com/openai/foo/releases", [], [])


def test_empty_facts_with_only_identity():
    assert has_empty_facts(ExtractedFacts(vendor="openai", product="gpt-4"))


def test_two_categories_are_enough():
    assert not has_empty_facts(ExtractedFacts(vendor="openai", product="gpt-4", features=["x"], date="2024-01-01"))


def test_many_entries_in_one_category_still_count_once():
    assert has_empty_facts(ExtractedFacts(vendor="openai", product="gpt-4", features=["a", "b", "c"]))


def test_rumor_and_spam_detection():
    assert contains_rumor_language("GPT-5 reportedly in training")
    assert not contains_rumor_language(GOOD_TEXT)
    assert contains_spam_language("Click here for a free trial")
    assert not contains_spam_language(GOOD_TEXT)


def test_url_helpers():
    assert is_valid_url("https://openai.com")
    assert not is_valid_url("ftp://openai.com")
    assert is_trusted_domain("blog.openai.com")
    assert not is_trusted_domain("openai.com.evil.net")
    assert "openai.com" in get_official_domains()


def test_validate_content_lists_every_issue():
    result = validate_content("", "short", "nope")
    assert not result["valid"]
    assert result["issues"] == ["Title is empty", "Text content too short", "Invalid URL"]
    assert validate_content("GPT-4.1", GOOD_TEXT, OFFICIAL_URL) == {"valid": True, "issues": []}


def test_duplicate_titles():
    assert is_duplicate_title("GPT-4.1  Release", ["gpt-4.1 release"]) == (True, "gpt-4.1 release")
    assert is_duplicate_title("GPT-4.1 release", ["Claude 3.5 release"]) == (False, None)


class TestSafetyGate:
    def check(self, gate=None, facts=None, **kwargs):
        gate = gate or SafetyGate()
        params = {"title": "GPT-4.1 release", "text": GOOD_TEXT, "url": OFFICIAL_URL}
        params.update(kwargs)
        return gate.check(facts or make_facts(), **params)

    def test_clean_content_passes(self):
        result = self.check()
        assert result.skip is False
        assert result.reason is None

    def test_unofficial_source_is_checked_first(self):
        empty = ExtractedFacts(vendor="openai", product="gpt-4")
        result = self.check(facts=empty, url="https://randomblog.com/x", text="rumor", daily_post_count=99)
        assert result.skip is True
        assert result.reason is SkipReason.NO_OFFICIAL_SOURCE

    def test_empty_facts(self):
        result = self.check(facts=ExtractedFacts(vendor="openai", product="gpt-4"))
        assert result.reason is SkipReason.EMPTY_FACTS

    def test_daily_cap(self):
        result = self.check(daily_post_count=5)
        assert result.reason is SkipReason.OVER_DAILY_CAP
        assert result.metadata["max_daily_posts"] == 5

    def test_duplicate_event(self):
        result = self.check(existing_titles=["gpt-4.1 release"])
        assert result.reason is SkipReason.DUP_EVENT

    def test_rumor(self):
        result = self.check(text=GOOD_TEXT + " Sources say a bigger model follows.")
        assert result.reason is SkipReason.RUMOR_ONLY

    def test_spam(self):
        result = self.check(text=GOOD_TEXT + " Buy now.")
        assert result.reason is SkipReason.SPAM_DETECTED

    def test_offensive(self):
        result = self.check(text=GOOD_TEXT + " Harassment of reviewers.")
        assert result.reason is SkipReason.OFFENSIVE_CONTENT

    def test_too_short(self):
        result = self.check(text="GPT-4.1 is out.")
        assert result.reason is SkipReason.CONTENT_TOO_SHORT

    def test_stats_count_skips(self):
        gate = SafetyGate(SafetyConfig(max_daily_posts=1))
        self.check(gate, daily_post_count=3)
        self.check(gate, daily_post_count=3)
        self.check(gate, url="https://randomblog.com/x")
        assert gate.stats() == {
            "total_skips": 3,
            "skip_reasons": {"OVER_DAILY_CAP": 2, "NO_OFFICIAL_SOURCE": 1},
        }
