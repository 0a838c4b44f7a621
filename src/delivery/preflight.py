"""
Preflight gate, evaluated immediately before a thread reaches a transport.

Independent of the safety gate: it re-checks posting history, the daily cap
and citation domains against the latest state of the facts.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol
from urllib.parse import urlparse

from core.schemas import ExtractedFacts
from services.config import PreflightConfig

logger = logging.getLogger(__name__)


class PostHistory(Protocol):
    async def get_recent_posts(self, vendor: str, product: str, hours: float = 48) -> List[str]:
        ...

    async def count_tweets_since(self, hours: float = 24) -> int:
        ...


@dataclass
class PreflightResult:
    can_post: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duplicate_check: bool = True
    daily_limit_check: bool = True
    citation_check: bool = True


def has_official_citation(citations: List[str], official_domains: List[str]) -> bool:
    for citation in citations:
        try:
            hostname = (urlparse(citation).hostname or "").lower()
        except ValueError:
            continue
        if not hostname:
            continue
        if any(hostname == domain or hostname.endswith(f".{domain}") for domain in official_domains):
            return True
    return False


def is_duplicate_post(posts: List[str], version: Optional[str]) -> bool:
    """
    Any recent post counts as a duplicate, unless a version is known,
    in which case only posts mentioning that version do.
    """
    if not posts:
        return False
    if version:
        needle = version.lower()
        return any(needle in post.lower() for post in posts)
    return True


async def preflight_check(
    facts: ExtractedFacts,
    history: Optional[PostHistory],
    config: Optional[PreflightConfig] = None,
) -> PreflightResult:
    config = config or PreflightConfig()
    errors: List[str] = []
    warnings: List[str] = []

    duplicate_ok = True
    daily_ok = True

    if history is None:
        warnings.append("No posting history available, duplicate and daily checks skipped")
    else:
        try:
            posts = await history.get_recent_posts(facts.vendor, facts.product, config.duplicate_check_hours)
            if is_duplicate_post(posts, facts.version):
                duplicate_ok = False
                label = " ".join(p for p in (facts.vendor, facts.product, facts.version) if p)
                errors.append(f"Duplicate content found for {label} within {config.duplicate_check_hours}h")
        except Exception as e:
            logger.warning(f"Duplicate check failed, allowing post: {e}")
            warnings.append(f"Duplicate check unavailable: {e}")

        try:
            count = await history.count_tweets_since(24)
            if count >= config.max_tweets_per_day:
                daily_ok = False
                errors.append(f"Daily tweet limit exceeded ({count}/{config.max_tweets_per_day})")
            elif count >= config.max_tweets_per_day * 0.8:
                warnings.append(f"Approaching daily limit ({count}/{config.max_tweets_per_day})")
        except Exception as e:
            logger.warning(f"Daily limit check failed, allowing post: {e}")
            warnings.append(f"Daily limit check unavailable: {e}")

    citation_ok = has_official_citation(facts.citations, config.official_domains)
    if not citation_ok:
        errors.append("No official citation domains found in facts.citations")

    result = PreflightResult(
        can_post=not errors,
        errors=errors,
        warnings=warnings,
        duplicate_check=duplicate_ok,
        daily_limit_check=daily_ok,
        citation_check=citation_ok,
    )

    if result.can_post:
        logger.info(f"Preflight passed for {facts.vendor} {facts.product}", extra={"warnings": warnings})
    else:
        logger.warning(
            f"Preflight failed for {facts.vendor} {facts.product}",
            extra={"errors": errors, "warnings": warnings},
        )
    return result
