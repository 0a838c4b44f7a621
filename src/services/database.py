import aiosqlite
import json
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from core.entities import Event, Item, Tweet, parse_timestamp
from core.schemas import ExtractedFacts

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cutoff(hours: float) -> str:
    return (_utcnow() - timedelta(hours=hours)).isoformat()


def _row_to_item(row: aiosqlite.Row) -> Item:
    return Item(
        id=row["id"],
        source=row["source"],
        url=row["url"],
        title=row["title"],
        published_at=parse_timestamp(row["published_at"]),
        vendor=row["vendor"],
        product=row["product"],
        summary=row["summary"],
        text=row["text"],
        raw=json.loads(row["raw"]) if row["raw"] else None,
    )


class Database:
    """
    SQLite store for items, events, tweets and skip reasons.
    Items are upserted by URL; events, tweets and skip reasons are append-only.
    """

    def __init__(self, path: str):
        self.path = path
        self._initialized = False

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA foreign_keys=ON;")
        try:
            yield conn
        finally:
            await conn.close()

    async def execute(self, query: str, params: tuple = ()) -> None:
        await self.initialize()
        async with self.connect() as conn:
            await conn.execute(query, params)
            await conn.commit()

    async def fetchone(self, query: str, params: tuple = ()):
        await self.initialize()
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple = ()):
        await self.initialize()
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    async def initialize(self) -> None:
        if not self._initialized:
            await self.init_tables()
            self._initialized = True

    async def init_tables(self) -> None:
        """Initialize database tables."""
        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    source TEXT NOT NULL,
                    vendor TEXT,
                    product TEXT,
                    url TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    summary TEXT,
                    text TEXT,
                    published_at TEXT NOT NULL,
                    raw TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    vendor TEXT NOT NULL,
                    product TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    version TEXT,
                    title TEXT,
                    window_start TEXT NOT NULL,
                    window_end TEXT NOT NULL,
                    description TEXT,
                    facts TEXT,
                    metadata TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS tweets (
                    id TEXT PRIMARY KEY,
                    event_id TEXT REFERENCES events(id),
                    content TEXT NOT NULL,
                    url TEXT,
                    posted_at TEXT NOT NULL,
                    thread_json TEXT,
                    likes INTEGER,
                    retweets INTEGER,
                    replies INTEGER
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS skip_reasons (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    reason TEXT NOT NULL,
                    details TEXT,
                    metadata TEXT,
                    timestamp TEXT NOT NULL
                )
            """)
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_items_published_at ON items(published_at)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_items_vendor_product ON items(vendor, product)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_events_vendor_product ON events(vendor, product)")
            await conn.execute("CREATE INDEX IF NOT EXISTS idx_tweets_posted_at ON tweets(posted_at)")
            await conn.commit()
            logger.info("Database tables initialized")

    # ----------------------------
    # Items
    # ----------------------------
    async def upsert_item(self, item: Item) -> None:
        """Insert an item, or update it in place when its URL is already known."""
        await self.execute(
            """
            INSERT INTO items (id, source, vendor, product, url, title, summary, text, published_at, raw)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(url) DO UPDATE SET
                source = excluded.source,
                vendor = COALESCE(excluded.vendor, items.vendor),
                product = COALESCE(excluded.product, items.product),
                title = excluded.title,
                summary = excluded.summary,
                text = COALESCE(excluded.text, items.text),
                published_at = excluded.published_at,
                raw = excluded.raw
            """,
            (
                item.id, item.source, item.vendor, item.product, item.url, item.title,
                item.summary, item.text, item.published_at.isoformat(),
                json.dumps(item.raw, default=str) if item.raw is not None else None,
            ),
        )

    async def get_items_since(self, hours: float) -> List[Item]:
        rows = await self.fetchall(
            "SELECT * FROM items WHERE published_at >= ? ORDER BY published_at ASC",
            (_cutoff(hours),),
        )
        return [_row_to_item(row) for row in rows]

    async def get_items_by_vendor_product(self, vendor: str, product: str) -> List[Item]:
        rows = await self.fetchall(
            "SELECT * FROM items WHERE vendor = ? AND product = ? ORDER BY published_at DESC",
            (vendor, product),
        )
        return [_row_to_item(row) for row in rows]

    async def count_items_since(self, hours: float) -> int:
        row = await self.fetchone("SELECT COUNT(*) FROM items WHERE published_at >= ?", (_cutoff(hours),))
        return row[0]

    # ----------------------------
    # Events
    # ----------------------------
    async def insert_event(self, event: Event) -> None:
        await self.execute(
            """
            INSERT INTO events (id, vendor, product, kind, version, title, window_start, window_end,
                                description, facts, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.id, event.vendor, event.product, event.kind, event.version, event.title,
                event.window_start.isoformat(), event.window_end.isoformat(), event.description,
                event.facts_json, json.dumps(event.metadata, default=str) if event.metadata else None,
                _utcnow().isoformat(),
            ),
        )

    async def get_prior_facts(self, vendor: str, product: str) -> Optional[ExtractedFacts]:
        """Facts of the most recent stored event for this vendor/product."""
        row = await self.fetchone(
            """SELECT facts FROM events
               WHERE vendor = ? AND product = ? AND facts IS NOT NULL
               ORDER BY created_at DESC LIMIT 1""",
            (vendor, product),
        )
        if row is None:
            return None
        try:
            return ExtractedFacts.model_validate_json(row["facts"])
        except Exception as e:
            logger.warning(f"Stored facts for {vendor}/{product} are unreadable: {e}")
            return None

    async def get_recent_event_titles(self, hours: float = 48) -> List[str]:
        rows = await self.fetchall(
            "SELECT title FROM events WHERE created_at >= ? AND title IS NOT NULL",
            (_cutoff(hours),),
        )
        return [row["title"] for row in rows]

    # ----------------------------
    # Tweets
    # ----------------------------
    async def insert_tweet(self, tweet: Tweet) -> None:
        await self.execute(
            """
            INSERT INTO tweets (id, event_id, content, url, posted_at, thread_json, likes, retweets, replies)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                tweet.id, tweet.event_id, tweet.content, tweet.url, tweet.posted_at.isoformat(),
                tweet.thread_json, tweet.likes, tweet.retweets, tweet.replies,
            ),
        )

    async def count_tweets_since(self, hours: float = 24) -> int:
        """Number of threads started in the window (replies are not counted)."""
        row = await self.fetchone(
            """SELECT COUNT(*) FROM tweets
               WHERE posted_at >= ? AND (thread_json IS NULL OR json_extract(thread_json, '$.order') = 1)""",
            (_cutoff(hours),),
        )
        return row[0]

    async def get_recent_posts(self, vendor: str, product: str, hours: float = 48) -> List[str]:
        """Content of tweets posted for this vendor/product within the window."""
        rows = await self.fetchall(
            """SELECT t.content FROM tweets t
               JOIN events e ON e.id = t.event_id
               WHERE e.vendor = ? AND e.product = ? AND t.posted_at >= ?""",
            (vendor, product, _cutoff(hours)),
        )
        return [row["content"] for row in rows]

    # ----------------------------
    # Skip reasons
    # ----------------------------
    async def record_skip_reason(self, reason: str, details: str, metadata: Dict[str, Any]) -> None:
        await self.execute(
            "INSERT INTO skip_reasons (reason, details, metadata, timestamp) VALUES (?, ?, ?, ?)",
            (reason, details, json.dumps(metadata, default=str), _utcnow().isoformat()),
        )

    async def get_skip_reason_stats(self, recent_limit: int = 10) -> Dict[str, Any]:
        rows = await self.fetchall("SELECT reason, COUNT(*) AS n FROM skip_reasons GROUP BY reason")
        recent = await self.fetchall(
            "SELECT reason, details, timestamp FROM skip_reasons ORDER BY id DESC LIMIT ?",
            (recent_limit,),
        )
        skip_reasons = {row["reason"]: row["n"] for row in rows}
        return {
            "total_skips": sum(skip_reasons.values()),
            "skip_reasons": skip_reasons,
            "recent_skips": [dict(row) for row in recent],
        }
