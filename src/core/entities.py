from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

ItemSource = Literal["rss", "web", "github", "x"]
EventKind = Literal["release", "update", "announcement", "launch"]


def generate_item_id(url: str) -> str:
    """
    Stable identifier for an item. Same URL always gives the same id,
    which is what makes upsert-by-URL work.
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.
    Naive values are assumed to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Item:
    """
    Canonical representation of an ingested content item.
    """
    id: str
    source: ItemSource
    url: str
    title: str
    published_at: datetime
    vendor: Optional[str] = None
    product: Optional[str] = None
    summary: Optional[str] = None
    text: Optional[str] = None
    raw: Any = None

    @classmethod
    def create(
        cls,
        *,
        source: ItemSource,
        url: str,
        title: str,
        published_at: str | datetime,
        vendor: Optional[str] = None,
        product: Optional[str] = None,
        summary: Optional[str] = None,
        text: Optional[str] = None,
        raw: Any = None,
    ) -> "Item":
        if not title or not title.strip():
            raise ValueError("Item title must not be empty")

        return cls(
            id=generate_item_id(url),
            source=source,
            url=url,
            title=title.strip(),
            published_at=parse_timestamp(published_at),
            vendor=vendor,
            product=product,
            summary=summary,
            text=text,
            raw=raw,
        )


@dataclass
class CandidateCluster:
    """
    Group of items hypothesised to describe the same release.
    Never persisted; rebuilt on every run.
    """
    vendor: str
    product: str
    items: List[Item]
    confidence: float
    window_start: datetime
    window_end: datetime
    title_similarity: float

    @property
    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    @property
    def urls(self) -> List[str]:
        return [item.url for item in self.items]


@dataclass(frozen=True)
class MediaImage:
    """
    Preview image attached to the first segment of a thread.
    """
    url: str
    alt: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class ThreadTweet:
    content: str
    order: int
    media: Optional[MediaImage] = None

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass
class ThreadComposition:
    """
    Publishable artifact. draft_only threads must never reach a transport.
    """
    tweets: List[ThreadTweet]
    draft_only: bool
    summary: str
    canonical_url: Optional[str] = None

    @property
    def total_length(self) -> int:
        return sum(tweet.length for tweet in self.tweets)


@dataclass(frozen=True)
class Event:
    """
    A detected real-world release, as stored by the persistence layer.
    """
    id: str
    vendor: str
    product: str
    kind: EventKind
    window_start: datetime
    window_end: datetime
    version: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    facts_json: Optional[str] = None
    metadata: Optional[dict] = None


@dataclass(frozen=True)
class Tweet:
    """
    A posted (or test-logged) segment.
    """
    id: str
    content: str
    posted_at: datetime
    event_id: Optional[str] = None
    url: Optional[str] = None
    thread_json: Optional[str] = None
    likes: Optional[int] = None
    retweets: Optional[int] = None
    replies: Optional[int] = None


@dataclass
class PipelineResult:
    """
    End-of-run summary.
    """
    success: bool = False
    items_processed: int = 0
    clusters_found: int = 0
    events_created: int = 0
    threads_posted: int = 0
    errors: List[str] = field(default_factory=list)
    skip_reasons: dict[str, int] = field(default_factory=dict)
    duration_seconds: float = 0.0
