"""
Safety gate evaluated on extracted facts before any composition happens.

Checks run in a fixed order and the first failing one decides the outcome.
A rejection is a SkipResult, never an exception.
"""
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from core.schemas import ExtractedFacts
from processing.deduplicator import is_duplicate_title
from services.config import DEFAULT_GITHUB_ORGS, DEFAULT_OFFICIAL_DOMAINS, SafetyConfig

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    NO_OFFICIAL_SOURCE = "NO_OFFICIAL_SOURCE"
    EMPTY_FACTS = "EMPTY_FACTS"
    OVER_DAILY_CAP = "OVER_DAILY_CAP"
    DUP_EVENT = "DUP_EVENT"
    RUMOR_ONLY = "RUMOR_ONLY"
    SPAM_DETECTED = "SPAM_DETECTED"
    OFFENSIVE_CONTENT = "OFFENSIVE_CONTENT"
    CONTENT_TOO_SHORT = "CONTENT_TOO_SHORT"
    INVALID_URL = "INVALID_URL"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"


@dataclass
class SkipResult:
    skip: bool
    reason: Optional[SkipReason] = None
    details: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


RUMOR_PATTERNS: List[re.Pattern] = [
    re.compile(
        r"\b(rumor|rumour|speculation|allegedly|reportedly|supposedly|purportedly|claims|sources say"
        r"|insiders|leaked|unconfirmed|unverified)\b",
        re.I,
    ),
    re.compile(r"\b(might|may|could|possibly|potentially|alleged|suspected|believed to be)\b", re.I),
    re.compile(r"\b(according to|as reported by|sources indicate|word is|buzz is|talk is)\b", re.I),
    re.compile(r"\b(breaking|exclusive|scoop|tip|leak|insider|anonymous)\b", re.I),
]

SPAM_PATTERNS: List[re.Pattern] = [
    re.compile(r"\b(click here|buy now|free trial|limited time|act now|don't miss|exclusive offer)\b", re.I),
    re.compile(r"(\b(guaranteed|instant|immediate|secret|hidden|revealed|shocking)\b|\b100%)", re.I),
    re.compile(r"\b(make money|earn cash|get rich|profit|income|revenue|sales|marketing)\b", re.I),
]

OFFENSIVE_PATTERNS: List[re.Pattern] = [
    re.compile(r"\b(hate|racist|sexist|discriminatory|offensive|inappropriate|harmful|dangerous)\b", re.I),
    re.compile(r"\b(violence|threats?|abuse|harassment|bullying|intimidation)\b", re.I),
]

_GITHUB_RELEASE_PATHS = [
    re.compile(r"^/(?P<org>[^/]+)/[^/]+/releases/?$", re.I),
    re.compile(r"^/(?P<org>[^/]+)/[^/]+/releases/tag/.+$", re.I),
]


def _host_matches(host: str, domains: Iterable[str]) -> bool:
    host = host.lower()
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_official(
    url: str,
    official_domains: Optional[Iterable[str]] = None,
    github_orgs: Optional[Iterable[str]] = None,
) -> bool:
    """
    True for vendor domains (or their subdomains) and for release pages
    of allowlisted GitHub organisations. Any other github.com URL is not official.
    """
    if not is_valid_url(url):
        return False

    domains = DEFAULT_OFFICIAL_DOMAINS if official_domains is None else list(official_domains)
    orgs = DEFAULT_GITHUB_ORGS if github_orgs is None else list(github_orgs)

    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()

    if host in ("github.com", "www.github.com"):
        if parsed.scheme != "https":
            return False
        allowed = {org.lower() for org in orgs}
        for pattern in _GITHUB_RELEASE_PATHS:
            match = pattern.match(parsed.path)
            if match and match.group("org").lower() in allowed:
                return True
        return False

    return _host_matches(host, [d for d in domains if d.lower() != "github.com"])


def is_trusted_domain(domain: str, official_domains: Optional[Iterable[str]] = None) -> bool:
    """Exact match or subdomain of an official domain."""
    domains = DEFAULT_OFFICIAL_DOMAINS if official_domains is None else official_domains
    return _host_matches(domain, domains)


def get_official_domains() -> List[str]:
    return list(DEFAULT_OFFICIAL_DOMAINS)


def contains_rumor_language(text: str) -> bool:
    return any(p.search(text) for p in RUMOR_PATTERNS)


def contains_spam_language(text: str) -> bool:
    return any(p.search(text) for p in SPAM_PATTERNS)


def contains_offensive_language(text: str) -> bool:
    return any(p.search(text) for p in OFFENSIVE_PATTERNS)


def has_empty_facts(facts: ExtractedFacts) -> bool:
    """
    Fewer than two meaningful fact categories. Each category counts once
    no matter how many entries it holds.
    """
    meaningful = [
        bool(facts.features),
        bool(facts.changes),
        bool(facts.prices),
        bool(facts.limits),
        bool(facts.version and facts.version.strip()),
        bool(facts.date and facts.date.strip()),
    ]
    return sum(meaningful) < 2


def is_content_too_short(text: str, min_length: int = 100) -> bool:
    return len(text.strip()) < min_length


def validate_content(title: str, text: str, url: str) -> Dict[str, Any]:
    """
    Lightweight sanity check on raw content, returns every issue found.
    """
    issues: List[str] = []

    if not title or not title.strip():
        issues.append("Title is empty")
    if not text or len(text.strip()) < 50:
        issues.append("Text content too short")
    if not url or not is_valid_url(url):
        issues.append("Invalid URL")

    combined = f"{title or ''} {text or ''}"
    if contains_offensive_language(combined):
        issues.append("Contains offensive content")
    if contains_spam_language(combined):
        issues.append("Contains spam content")

    return {"valid": not issues, "issues": issues}


class SafetyGate:
    """
    Short-circuiting sequence of content checks.
    Keeps an in-process tally of skip reasons; durable recording is the caller's job.
    """

    def __init__(self, config: Optional[SafetyConfig] = None):
        self.config = config or SafetyConfig()
        self._skips: Counter = Counter()

    def _skip(self, reason: SkipReason, details: str, **metadata: Any) -> SkipResult:
        self._skips[reason.value] += 1
        logger.info(
            f"Safety skip: {reason.value} - {details}",
            extra={"reason": reason.value, "details": details, "metadata": metadata},
        )
        return SkipResult(skip=True, reason=reason, details=details, metadata=metadata)

    def check(
        self,
        facts: ExtractedFacts,
        *,
        title: Optional[str] = None,
        text: Optional[str] = None,
        url: Optional[str] = None,
        existing_titles: Iterable[str] = (),
        daily_post_count: int = 0,
    ) -> SkipResult:
        cfg = self.config

        if url and not is_official(url, cfg.official_domains, cfg.official_github_orgs):
            return self._skip(SkipReason.NO_OFFICIAL_SOURCE, f"Non-official source: {url}", url=url, title=title)

        if has_empty_facts(facts):
            return self._skip(
                SkipReason.EMPTY_FACTS,
                "Insufficient facts extracted",
                title=title,
                vendor=facts.vendor,
                product=facts.product,
            )

        if daily_post_count >= cfg.max_daily_posts:
            details = f"Daily limit reached: {daily_post_count}/{cfg.max_daily_posts}"
            return self._skip(
                SkipReason.OVER_DAILY_CAP,
                details,
                daily_post_count=daily_post_count,
                max_daily_posts=cfg.max_daily_posts,
            )

        if title:
            duplicate, existing = is_duplicate_title(
                title, existing_titles, similarity_threshold=cfg.duplicate_title_similarity
            )
            if duplicate:
                return self._skip(
                    SkipReason.DUP_EVENT, f"Duplicate title detected: {title}", title=title, existing_title=existing
                )

        if text:
            preview = text[:200]
            if contains_rumor_language(text):
                return self._skip(SkipReason.RUMOR_ONLY, "Content contains rumor language", text=preview, title=title)
            if contains_spam_language(text):
                return self._skip(SkipReason.SPAM_DETECTED, "Content contains spam language", text=preview, title=title)
            if contains_offensive_language(text):
                return self._skip(
                    SkipReason.OFFENSIVE_CONTENT, "Content contains offensive language", text=preview, title=title
                )
            if is_content_too_short(text, cfg.min_content_length):
                return self._skip(
                    SkipReason.CONTENT_TOO_SHORT,
                    f"Content too short: {len(text)} chars",
                    text_length=len(text),
                    title=title,
                )

        if url and not is_valid_url(url):
            return self._skip(SkipReason.INVALID_URL, f"Invalid URL format: {url}", url=url, title=title)

        return SkipResult(skip=False)

    def stats(self) -> Dict[str, Any]:
        return {
            "total_skips": sum(self._skips.values()),
            "skip_reasons": dict(self._skips),
        }
