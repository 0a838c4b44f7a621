"""
Publisher: posts a gated thread as a reply chain through a transport.
"""
import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Protocol

from core.entities import ThreadComposition, Tweet
from core.schemas import ExtractedFacts
from delivery.base import PostingError, PostingTransport, TransientPostingError
from delivery.preflight import PostHistory, preflight_check
from services.config import PreflightConfig

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

TRANSIENT_ERRORS = (TransientPostingError, ConnectionError, TimeoutError)


class TweetRecorder(Protocol):
    async def insert_tweet(self, tweet: Tweet) -> None:
        ...


@dataclass
class PostResult:
    success: bool
    tweet_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None
    test_mode: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None


async def _with_retry(call: Callable[[], Awaitable[str]], sleep: Sleep, rng: random.Random) -> str:
    """
    One retry after a 1-3s jittered pause for transient failures.
    Everything else propagates immediately.
    """
    try:
        return await call()
    except TRANSIENT_ERRORS as e:
        delay = rng.uniform(1.0, 3.0)
        logger.warning(f"Transient posting error, retrying in {delay:.1f}s: {e}")
        await sleep(delay)
        return await call()


async def _record(
    recorder: Optional[TweetRecorder],
    tweet_id: str,
    content: str,
    order: int,
    *,
    event_id: Optional[str],
    url: Optional[str],
    reply_to: Optional[str],
    test_mode: bool,
) -> None:
    if recorder is None:
        return
    thread_json = json.dumps({"order": order, "reply_to": reply_to, "test_mode": test_mode})
    try:
        await recorder.insert_tweet(
            Tweet(
                id=tweet_id,
                content=content,
                posted_at=datetime.now(timezone.utc),
                event_id=event_id,
                url=url,
                thread_json=thread_json,
            )
        )
    except Exception as e:
        logger.error(f"Failed to record tweet {tweet_id}: {e}")


async def post_thread(
    thread: ThreadComposition,
    transport: PostingTransport,
    *,
    recorder: Optional[TweetRecorder] = None,
    event_id: Optional[str] = None,
    test_mode: bool = False,
    sleep: Sleep = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> PostResult:
    """
    Post T1, then each following segment as a reply to the previous one.
    Media is only ever attached to T1. Draft-only and empty threads are
    refused before the transport is touched.
    """
    rng = rng or random.Random()

    if thread.draft_only:
        logger.warning("Refusing to post draft-only thread", extra={"summary": thread.summary})
        return PostResult(success=False, test_mode=test_mode, skipped=True,
                          skip_reason="Draft only thread", error="Thread is draft only")
    if not thread.tweets:
        return PostResult(success=False, test_mode=test_mode, skipped=True,
                          skip_reason="Empty thread", error="No tweets to post")

    tweet_ids: List[str] = []
    try:
        first = thread.tweets[0]
        previous_id = await _with_retry(lambda: transport.post(first.content, first.media), sleep, rng)
        tweet_ids.append(previous_id)
        await _record(recorder, previous_id, first.content, 1, event_id=event_id,
                      url=thread.canonical_url, reply_to=None, test_mode=test_mode)

        for order, tweet in enumerate(thread.tweets[1:], start=2):
            reply_to = previous_id
            tweet_id = await _with_retry(lambda: transport.reply(tweet.content, reply_to), sleep, rng)
            tweet_ids.append(tweet_id)
            await _record(recorder, tweet_id, tweet.content, order, event_id=event_id,
                          url=None, reply_to=reply_to, test_mode=test_mode)
            previous_id = tweet_id

    except (PostingError, *TRANSIENT_ERRORS) as e:
        logger.error(f"Error posting thread via {transport.name}: {e}", extra={"posted": tweet_ids})
        return PostResult(success=False, tweet_ids=tweet_ids, error=str(e), test_mode=test_mode)

    logger.info(f"Thread posted via {transport.name} ({len(tweet_ids)} tweets)", extra={"tweet_ids": tweet_ids})
    return PostResult(success=True, tweet_ids=tweet_ids, test_mode=test_mode)


async def post_thread_with_safeguards(
    thread: ThreadComposition,
    facts: ExtractedFacts,
    transport: PostingTransport,
    *,
    history: Optional[PostHistory] = None,
    recorder: Optional[TweetRecorder] = None,
    config: Optional[PreflightConfig] = None,
    event_id: Optional[str] = None,
    test_mode: bool = False,
    sleep: Sleep = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> PostResult:
    if thread.draft_only:
        return PostResult(success=False, test_mode=test_mode, skipped=True,
                          skip_reason="Draft only thread", error="Thread is draft only")

    preflight = await preflight_check(facts, history, config)
    if not preflight.can_post:
        return PostResult(
            success=False,
            error=f"Preflight checks failed: {', '.join(preflight.errors)}",
            test_mode=test_mode,
            skipped=True,
            skip_reason="Preflight checks failed",
        )

    return await post_thread(thread, transport, recorder=recorder, event_id=event_id,
                             test_mode=test_mode, sleep=sleep, rng=rng)
