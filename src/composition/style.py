"""
Tone, emoji and link policy for composed threads.
"""
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from core.personas import THREAD_TONES, Persona
from services.config import StyleConfig

# Pictographic blocks plus the scattered BMP symbols that render as emoji.
# Plain arrows such as ↓ are left alone, the link tweet uses one.
EMOJI_PATTERN = re.compile(
    "(?:[\U0001F600-\U0001F64F]|[\U0001F300-\U0001F5FF]|[\U0001F680-\U0001F6FF]"
    "|[\U0001F100-\U0001F1FF]|[\U0001F900-\U0001F9FF]|[\U0001FA70-\U0001FAFF]"
    "|[\u2600-\u26FF]|[\u2700-\u27BF]|[\u2B00-\u2BFF]"
    "|[\u231A\u231B\u23E9-\u23F3\u23F8-\u23FA\u25AA\u25AB\u25B6\u25C0\u25FB-\u25FE]"
    "|[\u203C\u2049\u2934\u2935\u3030\u303D\u3297\u3299])\uFE0F?"
)

BENCHMARK_TERMS = [
    "benchmark", "performance", "speed", "faster", "slower", "improvement", "better", "worse",
]
BENCHMARK_DISCLAIMER = "(vendor-reported metrics)"

VENDOR_HOSTS = [
    "openai.com", "anthropic.com", "google.com", "meta.com", "microsoft.com",
    "mistral.ai", "cohere.ai", "huggingface.co",
]
BLOG_HOSTS = ["medium.com", "substack.com", "techcrunch.com", "venturebeat.com"]
MEDIA_HOSTS = ["youtube.com", "vimeo.com", "twitter.com", "x.com", "linkedin.com"]


def count_emojis(text: str) -> int:
    return len(EMOJI_PATTERN.findall(text))


def tone_language(config: StyleConfig) -> Persona:
    return THREAD_TONES.get(config.tone, THREAD_TONES["precise"])


def can_add_emoji(text: str, config: StyleConfig) -> bool:
    return config.emoji_enabled and bool(config.emoji_set) and count_emojis(text) < config.emoji_per_tweet_max


def add_benchmark_disclaimer(text: str, config: Optional[StyleConfig] = None) -> str:
    config = config or StyleConfig()
    if not config.disclaim_benchmarks:
        return text
    if BENCHMARK_DISCLAIMER in text:
        return text

    lower = text.lower()
    if any(term in lower for term in BENCHMARK_TERMS):
        return f"{text} {BENCHMARK_DISCLAIMER}"
    return text


def apply_style(
    text: str,
    config: StyleConfig,
    *,
    emoji: Optional[str] = None,
    add_disclaimer: bool = True,
) -> str:
    """
    Disclaimer first, then a leading emoji when one is given and the tweet has room for it.
    """
    styled = text
    if add_disclaimer:
        styled = add_benchmark_disclaimer(styled, config)
    if emoji and can_add_emoji(styled, config):
        styled = f"{emoji} {styled}"
    return styled


def _host_in(host: str, hosts: Iterable[str]) -> bool:
    return any(host == h or host.endswith("." + h) for h in hosts)


def link_type(url: str) -> str:
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return "other"

    if not host:
        return "other"
    if _host_in(host, VENDOR_HOSTS):
        return "vendor"
    if _host_in(host, ["github.com"]):
        return "github"
    if "blog" in host or _host_in(host, BLOG_HOSTS):
        return "blog"
    if _host_in(host, MEDIA_HOSTS):
        return "media"
    return "other"


def select_best_link(links: List[str], config: Optional[StyleConfig] = None) -> Optional[str]:
    """
    First link of the most preferred type. Unranked links keep their order, after ranked ones.
    """
    config = config or StyleConfig()
    candidates = [link for link in links if link]
    if not candidates:
        return None

    preference = config.link_preference

    def rank(link: str) -> int:
        kind = link_type(link)
        return preference.index(kind) if kind in preference else len(preference)

    # sorted() is stable, so ties keep input order
    return sorted(candidates, key=rank)[0]


def get_style_summary(config: Optional[StyleConfig] = None) -> str:
    config = config or StyleConfig()
    emoji_state = "enabled" if config.emoji_enabled else "disabled"
    disclaim = "disclaimed" if config.disclaim_benchmarks else "not disclaimed"
    return (
        f"Style: {config.tone} tone, emoji {emoji_state} (max {config.emoji_per_tweet_max}), "
        f"benchmarks {disclaim}, link preference: {' > '.join(config.link_preference)}"
    )
