"""
Thread composer: turns facts and deltas into 1-5 length-bounded tweets.

A thread is draft-only whenever the facts carry no citation. Draft-only
threads are still composed (for review) but must never be posted.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

from composition.quality import apply_quality_filters
from composition.style import apply_style, count_emojis, select_best_link, tone_language
from composition.voice import CompositionSession, truncate_to_length
from core.entities import MediaImage, ThreadComposition, ThreadTweet, parse_timestamp
from core.schemas import ComputedDeltas, ExtractedFacts
from services.config import QualityConfig, StyleConfig, ThreadConfig

logger = logging.getLogger(__name__)

_BULLET_PREFIX = re.compile(r"^[•\-*]\s*")


class MediaFetcher(Protocol):
    async def fetch(self, url: str, product: str, version: Optional[str] = None) -> Optional[MediaImage]:
        ...


def render_bullets(lines: List[str], max_bullets: int) -> List[str]:
    """
    Non-empty lines as "• text", existing bullet or dash markers replaced.
    """
    valid = [line.strip() for line in lines if line and line.strip()][:max_bullets]
    return [f"• {_BULLET_PREFIX.sub('', line)}" for line in valid]


def format_date(value: str) -> Optional[str]:
    """'Jan 5, 2024' style, or None when the date cannot be parsed."""
    if not value:
        return None
    try:
        parsed = parse_timestamp(value)
    except (ValueError, TypeError):
        return None
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def create_highlight(facts: ExtractedFacts, deltas: ComputedDeltas) -> str:
    candidates = [
        deltas.context_window,
        facts.features[0] if facts.features else None,
        deltas.price,
        facts.prices[0] if facts.prices else None,
        deltas.changes[0] if deltas.changes else None,
        facts.changes[0] if facts.changes else None,
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()

    if facts.version:
        return f"version {facts.version} released"
    return "new capabilities announced"


def collect_bullets(facts: ExtractedFacts, deltas: ComputedDeltas) -> List[str]:
    """
    Delta-sourced lines win over raw facts, category by category.
    """
    bullets: List[str] = []
    bullets.extend(deltas.features or facts.features)
    bullets.extend(deltas.changes or facts.changes)

    if deltas.price:
        bullets.append(deltas.price)
    elif facts.prices:
        bullets.append(facts.prices[0])

    if facts.limits:
        bullets.append(facts.limits[0])

    return bullets


def _pick_emoji(style: StyleConfig, session: CompositionSession) -> Optional[str]:
    if not style.emoji_enabled or not style.emoji_set:
        return None
    return session.choice(style.emoji_set)


async def build_thread(
    facts: ExtractedFacts,
    deltas: ComputedDeltas,
    canonical_url: Optional[str] = None,
    *,
    config: Optional[ThreadConfig] = None,
    style: Optional[StyleConfig] = None,
    quality: Optional[QualityConfig] = None,
    session: Optional[CompositionSession] = None,
    media_fetcher: Optional[MediaFetcher] = None,
) -> ThreadComposition:
    config = config or ThreadConfig()
    style = style or StyleConfig()
    quality = quality or QualityConfig()
    session = session or CompositionSession()
    max_len = config.max_tweet_length
    tone = tone_language(style)

    draft_only = not facts.citations
    if draft_only:
        logger.warning(f"No citations for {facts.vendor} {facts.product}, marking thread as draft only")

    tweets: List[ThreadTweet] = []

    # T1
    highlight = create_highlight(facts, deltas)
    product_name = facts.product if config.include_product_name else "AI model"
    opener = session.pick_opener(tone.openers)

    base = f"{opener} {product_name} update: {highlight}"
    first = base
    date_text = format_date(facts.date) if config.include_date else None
    if date_text:
        first += f" ({date_text})"

    first = apply_quality_filters(apply_style(first, style, emoji=_pick_emoji(style, session)), quality)
    if len(first) > max_len:
        first = apply_quality_filters(base, quality)
    if len(first) > max_len:
        first = f"{product_name} update announced"
    first = truncate_to_length(first, max_len)

    media: Optional[MediaImage] = None
    if canonical_url and media_fetcher is not None:
        try:
            media = await media_fetcher.fetch(canonical_url, facts.product, facts.version)
        except Exception as e:
            logger.warning(f"Media preview failed for {canonical_url}: {e}")
            media = None

    tweets.append(ThreadTweet(content=first, order=1, media=media))

    # Bullets, leaving room for the closing link tweet
    bullets = render_bullets(collect_bullets(facts, deltas), config.max_total_bullets)
    per_tweet = max(config.max_bullets_per_tweet, 1)

    for start in range(0, len(bullets), per_tweet):
        if len(tweets) >= config.max_tweets - 1:
            break

        content = "\n".join(bullets[start:start + per_tweet])
        emoji = _pick_emoji(style, session) if count_emojis(content) == 0 else None
        # Over-long bullet tweets are dropped whole, never cut mid-bullet
        content = apply_quality_filters(apply_style(content, style, emoji=emoji), quality, truncate=False)

        if len(content) <= max_len:
            tweets.append(ThreadTweet(content=content, order=len(tweets) + 1))
        else:
            logger.debug(f"Dropping bullet tweet over {max_len} chars")

    # Closing link
    if canonical_url:
        link = select_best_link([canonical_url, *facts.citations], style) or canonical_url
        closer = session.choice(tone.closers)
        content = apply_style(f"{closer} Details ↓ {link}", style, add_disclaimer=False)
        if len(content) <= max_len and len(tweets) < config.max_tweets:
            tweets.append(ThreadTweet(content=content, order=len(tweets) + 1))

    version = f" v{facts.version}" if facts.version else ""
    total = sum(tweet.length for tweet in tweets)
    composition = ThreadComposition(
        tweets=tweets,
        draft_only=draft_only,
        summary=f"{facts.vendor} {facts.product}{version} thread: {len(tweets)} tweets, {total} total chars",
        canonical_url=canonical_url,
    )

    logger.info(
        f"Built thread: {composition.summary}",
        extra={"draft_only": draft_only, "lengths": [t.length for t in tweets]},
    )
    return composition


def validate_thread(composition: ThreadComposition, config: Optional[ThreadConfig] = None) -> Dict[str, Any]:
    config = config or ThreadConfig()
    errors: List[str] = []
    warnings: List[str] = []

    if not composition.tweets:
        errors.append("Thread has no tweets")
    if len(composition.tweets) > 5:
        warnings.append(f"Thread has {len(composition.tweets)} tweets (recommended max: 5)")

    for index, tweet in enumerate(composition.tweets, start=1):
        if tweet.length > config.max_tweet_length:
            errors.append(f"Tweet {index} exceeds {config.max_tweet_length} chars ({tweet.length} chars)")
        if tweet.length > 250:
            warnings.append(f"Tweet {index} is long ({tweet.length} chars)")
        if not tweet.content.strip():
            errors.append(f"Tweet {index} is empty")

    if composition.draft_only:
        warnings.append("Thread marked as draft only (no official citations)")
    if not composition.canonical_url:
        warnings.append("No canonical URL provided")

    return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def format_thread(composition: ThreadComposition) -> str:
    lines = [f"Thread Composition ({len(composition.tweets)} tweets)", "=" * 50]

    if composition.draft_only:
        lines.extend(["DRAFT ONLY - No official citations", ""])

    for index, tweet in enumerate(composition.tweets, start=1):
        emojis = count_emojis(tweet.content)
        emoji_note = f", {emojis} emoji" if emojis else ""
        lines.append(f"T{index} ({tweet.length} chars{emoji_note}):")
        lines.append(f'"{tweet.content}"')
        lines.append("")

    lines.append(f"Total: {composition.total_length} characters")
    lines.append(f"Summary: {composition.summary}")
    return "\n".join(lines)


def create_simple_thread(
    vendor: str,
    product: str,
    version: Optional[str] = None,
    canonical_url: Optional[str] = None,
) -> ThreadComposition:
    """
    Minimal fallback thread. Always draft-only.
    """
    label = f"v{version}" if version else "update"
    tweets = [ThreadTweet(content=f"{product} {label} announced", order=1)]
    if canonical_url:
        tweets.append(ThreadTweet(content=f"Details ↓ {canonical_url}", order=2))

    return ThreadComposition(
        tweets=tweets,
        draft_only=True,
        summary=f"{vendor} {product} simple thread: {len(tweets)} tweets",
        canonical_url=canonical_url,
    )
